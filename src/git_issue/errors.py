"""Error taxonomy for the issue store.

Every failure surfaced by the storage layer is one of four kinds:

- NotFoundError: a ref or object is absent
- ConflictError: a ref compare-and-swap lost (retries exhausted when raised
  from IssueStore)
- CorruptError: an object exists but is structurally invalid
- StorageIOError: git itself failed for reasons unrelated to content
"""


class GitIssueError(Exception):
    """Base class for all issue store errors."""


class NotFoundError(GitIssueError):
    """A reference or object does not exist."""


class IssueNotFoundError(NotFoundError):
    """No ref exists for the requested issue id."""

    def __init__(self, issue_id: int) -> None:
        self.issue_id = issue_id
        super().__init__(f"Issue not found: {issue_id}")


class ConflictError(GitIssueError):
    """A ref compare-and-swap failed because the ref moved underneath us."""


class CorruptError(GitIssueError):
    """An object was found but could not be interpreted."""


class StorageIOError(GitIssueError):
    """The backing git repository could not complete an operation."""
