"""Abstract interface over a git object database and its references.

Objects (blobs, trees, commits) are immutable and content-addressed: writing
the same bytes twice returns the same id. The only mutable state is where a
reference points, and the only safe way to move a reference is update_ref's
compare-and-swap.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from git_issue.gateway.object_store.types import CommitInfo, TreeEntry
from git_issue.issue import Identity


class GitObjectStore(ABC):
    """Abstract interface for git object and reference operations.

    All implementations (real, fake) must implement this interface.
    """

    # ============================================================================
    # Object Operations
    # ============================================================================

    @abstractmethod
    def write_blob(self, data: bytes) -> str:
        """Store raw bytes as a blob and return its object id.

        Raises:
            StorageIOError: If the repository rejects the write
        """
        ...

    @abstractmethod
    def read_blob(self, object_id: str) -> bytes:
        """Return the contents of a blob.

        Raises:
            NotFoundError: If no object has this id
            CorruptError: If the object is not a blob
        """
        ...

    @abstractmethod
    def write_tree(self, entry: TreeEntry) -> str:
        """Write a tree containing exactly one entry and return its object id."""
        ...

    @abstractmethod
    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        """Return the entries of a tree, in git's sorted order.

        Raises:
            NotFoundError: If no object has this id
            CorruptError: If the object is not a tree
        """
        ...

    @abstractmethod
    def write_commit(
        self,
        tree_id: str,
        parents: list[str],
        author: Identity,
        message: str,
        *,
        timestamp: datetime,
    ) -> str:
        """Write a commit object and return its id.

        The author identity is used for both author and committer, and both
        dates are set to `timestamp`, so identical inputs give an identical id.

        Args:
            tree_id: Root tree of the commit
            parents: Zero or one parent commit ids
            author: Author and committer identity
            message: Commit message
            timestamp: Author and committer date

        Raises:
            ValueError: If more than one parent is given
        """
        ...

    @abstractmethod
    def read_commit(self, commit_id: str) -> CommitInfo:
        """Parse a commit object.

        Raises:
            NotFoundError: If no object has this id
            CorruptError: If the object is not a commit or cannot be parsed
        """
        ...

    # ============================================================================
    # Reference Operations
    # ============================================================================

    @abstractmethod
    def create_ref(self, name: str, object_id: str) -> None:
        """Create a reference that must not already exist.

        Raises:
            ConflictError: If the reference already exists
        """
        ...

    @abstractmethod
    def update_ref(self, name: str, new_id: str, expected_old_id: str) -> None:
        """Atomically move a reference from expected_old_id to new_id.

        Raises:
            ConflictError: If the reference does not currently point at
                expected_old_id (including when it does not exist)
        """
        ...

    @abstractmethod
    def read_ref(self, name: str) -> str | None:
        """Return the object id a reference points to, or None if it does not exist."""
        ...

    @abstractmethod
    def list_refs(self, prefix: str) -> list[tuple[str, str]]:
        """List (name, object_id) for every reference under prefix, sorted by name."""
        ...

    @abstractmethod
    def delete_ref(self, name: str) -> None:
        """Delete a reference.

        Raises:
            NotFoundError: If the reference does not exist
            ConflictError: If the reference moved while being deleted
        """
        ...

    # ============================================================================
    # Configuration
    # ============================================================================

    @abstractmethod
    def get_config(self, key: str) -> str | None:
        """Return a git config value (e.g. "user.name"), or None if unset."""
        ...
