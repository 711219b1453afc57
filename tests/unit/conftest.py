"""Fixtures for unit tests running against the in-memory gateways."""

import pytest

from git_issue.config import StoreConfig
from git_issue.gateway.object_store.fake import FakeGitObjectStore
from git_issue.gateway.time.fake import FakeTime
from git_issue.issue_store import IssueStore


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def object_store() -> FakeGitObjectStore:
    return FakeGitObjectStore()


@pytest.fixture
def store(object_store: FakeGitObjectStore, fake_time: FakeTime) -> IssueStore:
    return IssueStore(object_store, time=fake_time, config=StoreConfig())
