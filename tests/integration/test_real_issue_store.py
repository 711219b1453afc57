"""Integration tests for IssueStore on a real git repository.

Tests are skipped if the `git` CLI is not installed on the system.
"""

import shutil
from pathlib import Path

import pytest

from git_issue.config import StoreConfig
from git_issue.errors import IssueNotFoundError, NotFoundError
from git_issue.gateway.object_store.types import TreeEntry
from git_issue.identity import resolve_identity
from git_issue.issue import Identity, IssueStatus, Priority
from git_issue.issue_store import IssueFilter, IssueStore

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git CLI not installed")


def test_create_and_read_back(repo: Path, alice: Identity, run_git) -> None:
    store = IssueStore.open(repo)

    issue_id = store.create_issue("Crash on save", "Steps to reproduce", alice)

    assert issue_id == 1
    assert run_git(repo, "cat-file", "blob", "refs/git-issue/meta/next-issue-id") == "2"
    assert run_git(repo, "log", "--format=%s", "refs/git-issue/issues/1") == "Created: Crash on save"
    assert run_git(repo, "ls-tree", "--name-only", "refs/git-issue/issues/1") == "event.json"
    issue = store.get_issue(1)
    assert issue.title == "Crash on save"
    assert issue.created_by == alice


def test_issue_history_is_a_commit_chain(repo: Path, alice: Identity, bob: Identity, run_git) -> None:
    store = IssueStore.open(repo)
    store.create_issue("Crash", "", alice)

    store.update_status(1, IssueStatus.IN_PROGRESS, bob)
    store.add_label(1, "bug", bob)
    comment_id = store.add_comment(1, "On it", bob)
    store.update_priority(1, Priority.HIGH, alice)

    assert comment_id == "1-1"
    assert run_git(repo, "log", "--format=%s", "refs/git-issue/issues/1").splitlines() == [
        "PriorityChanged: none → high",
        "CommentAdded: comment by Bob Example",
        "LabelAdded: bug",
        "StatusChanged: todo → in-progress",
        "Created: Crash",
    ]
    issue = store.get_issue(1)
    assert issue.status == IssueStatus.IN_PROGRESS
    assert issue.labels == ("bug",)
    assert issue.priority == Priority.HIGH
    assert [c.content for c in issue.comments] == ["On it"]


def test_store_state_survives_reopen(repo: Path, alice: Identity) -> None:
    IssueStore.open(repo).create_issue("One", "", alice)
    IssueStore.open(repo).create_issue("Two", "", alice)

    reopened = IssueStore.open(repo)

    assert [issue.title for issue in reopened.list_issues()] == ["One", "Two"]
    assert reopened.peek_next_issue_id() == 3


def test_corrupt_blob_mid_chain_is_skipped(repo: Path, alice: Identity) -> None:
    store = IssueStore.open(repo)
    store.create_issue("Crash", "", alice)
    object_store = store.object_store
    ref_name = store.issue_ref_name(1)
    root = object_store.read_ref(ref_name)
    assert root is not None
    garbage = object_store.write_blob(b"\xde\xad\xbe\xef")
    tree = object_store.write_tree(TreeEntry(name="event.json", object_id=garbage))
    issue = store.get_issue(1)
    broken = object_store.write_commit(tree, [root], alice, "garbage", timestamp=issue.created_at)
    object_store.update_ref(ref_name, broken, root)

    store.add_label(1, "bug", alice)

    assert store.get_issue(1).labels == ("bug",)
    assert [entry.commit_id for entry in store.inspect_issue(1).skipped_commits] == [broken]


def test_list_issues_with_filter(repo: Path, alice: Identity, bob: Identity) -> None:
    store = IssueStore.open(repo)
    store.create_issue("One", "", alice)
    store.create_issue("Two", "", alice)
    store.update_assignee(2, bob, alice)

    assigned = store.list_issues(IssueFilter(assignee_email=bob.email))

    assert [issue.id for issue in assigned] == [2]


def test_config_file_sets_namespace(repo: Path, alice: Identity, run_git) -> None:
    (repo / ".git-issue").mkdir()
    (repo / ".git-issue" / "config.toml").write_text(
        '[store]\nnamespace = "refs/tracker"\n', encoding="utf-8"
    )
    store = IssueStore.open(repo)

    store.create_issue("One", "", alice)

    assert store.config == StoreConfig(namespace="refs/tracker")
    refs = run_git(repo, "for-each-ref", "--format=%(refname)").splitlines()
    assert refs == ["refs/tracker/issues/1", "refs/tracker/meta/next-issue-id"]


def test_get_missing_issue(repo: Path) -> None:
    with pytest.raises(IssueNotFoundError):
        IssueStore.open(repo).get_issue(1)


def test_open_outside_repository(tmp_path: Path) -> None:
    outside = tmp_path / "plain-dir"
    outside.mkdir()

    with pytest.raises(NotFoundError):
        IssueStore.open(outside)


def test_init_then_create(tmp_path: Path, alice: Identity) -> None:
    store = IssueStore.init(tmp_path / "new-repo")

    assert store.create_issue("First", "", alice) == 1


def test_resolve_identity_from_repository_config(repo: Path) -> None:
    store = IssueStore.open(repo)

    identity = resolve_identity({}, store.object_store.get_config)

    assert identity == Identity(name="Test User", email="test@example.com")


def test_author_identity_is_not_validated(repo: Path, run_git) -> None:
    """Test that git's ident rules do not leak into issue authorship."""
    store = IssueStore.open(repo)
    nameless = Identity(name="", email="a@example.com")
    formal = Identity(name="J. Doe Jr.", email="jdoe@example.com")

    issue_id = store.create_issue("t", "d", nameless)
    store.add_comment(issue_id, "noted", formal)

    issue = store.get_issue(issue_id)
    assert issue.created_by == nameless
    assert issue.comments[0].author == formal
    assert run_git(repo, "log", "-1", "--format=%an", store.issue_ref_name(issue_id)) == (
        "J. Doe Jr."
    )
