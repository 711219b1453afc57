"""Fixtures for integration tests that drive the real git binary."""

import subprocess
from pathlib import Path

import pytest

from git_issue.gateway.object_store.real import RealGitObjectStore


def init_git_repo(repo_path: Path) -> None:
    """Initialize a repository with a deterministic committer identity."""
    subprocess.run(["git", "init", "--quiet", str(repo_path)], check=True)
    subprocess.run(["git", "config", "user.name", "Test User"], cwd=repo_path, check=True)
    subprocess.run(["git", "config", "user.email", "test@example.com"], cwd=repo_path, check=True)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    repo_path = tmp_path / "repo"
    repo_path.mkdir()
    init_git_repo(repo_path)
    return repo_path


@pytest.fixture
def real_store(repo: Path) -> RealGitObjectStore:
    return RealGitObjectStore.open(repo)


def git(repo_path: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo_path, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@pytest.fixture
def run_git():
    """The `git` helper as a fixture, so test modules need not import conftest."""
    return git
