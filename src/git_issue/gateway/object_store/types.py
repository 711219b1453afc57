"""Data types for git object store operations."""

from dataclasses import dataclass
from datetime import datetime

from git_issue.issue import Identity

BLOB_MODE = "100644"


@dataclass(frozen=True)
class TreeEntry:
    """One named entry of a tree object.

    Attributes:
        name: File name within the tree (e.g. "event.json")
        object_id: Hex object id of the blob the entry points to
        mode: Git file mode, "100644" for a regular file
    """

    name: str
    object_id: str
    mode: str = BLOB_MODE


@dataclass(frozen=True)
class CommitInfo:
    """Parsed contents of a commit object.

    Attributes:
        tree_id: Root tree of the commit
        parents: Parent commit ids (zero or one for event commits)
        author: Commit author
        message: Full commit message without trailing newline
        timestamp: Author date
    """

    tree_id: str
    parents: tuple[str, ...]
    author: Identity
    message: str
    timestamp: datetime


def format_commit(
    tree_id: str,
    parents: list[str],
    author: Identity,
    message: str,
    *,
    timestamp: datetime,
) -> bytes:
    """Serialize a commit object body exactly as git stores it.

    The author is used verbatim for both author and committer. git's own
    ident cleanup (trimming punctuation, rejecting empty names) never runs,
    so every Identity round-trips unchanged.
    """
    signature = f"{author.name} <{author.email}> {int(timestamp.timestamp())} +0000"
    lines = [f"tree {tree_id}"]
    lines.extend(f"parent {parent}" for parent in parents)
    lines.append(f"author {signature}")
    lines.append(f"committer {signature}")
    return ("\n".join(lines) + f"\n\n{message}\n").encode("utf-8")
