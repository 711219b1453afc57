"""Fixtures shared by unit and integration tests."""

import pytest

from git_issue.issue import Identity


@pytest.fixture
def alice() -> Identity:
    return Identity(name="Alice Example", email="alice@example.com")


@pytest.fixture
def bob() -> Identity:
    return Identity(name="Bob Example", email="bob@example.com")
