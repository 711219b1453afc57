"""git-issue: issues stored as event-sourced commit chains inside a git repository.

Every change to an issue is an immutable event committed onto that issue's
chain under `refs/git-issue/issues/<id>`; the current state of an issue is
rebuilt by replaying its chain. See `git_issue.issue_store.IssueStore` for the
entry point.
"""

from git_issue.issue_store import IssueFilter, IssueStore

__all__ = ["IssueFilter", "IssueStore"]
