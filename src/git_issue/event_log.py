"""Reading and writing chains of event commits.

Each event lives in its own commit: the commit's tree holds exactly one blob
with the event's canonical JSON, and the commit's single parent is the event
before it. A chain is read by following parents back from the head and
reversing, which gives the authoritative oldest-first order.
"""

import logging
from dataclasses import dataclass

from git_issue.config import DEFAULT_EVENT_BLOB_NAME
from git_issue.errors import CorruptError, NotFoundError
from git_issue.events import IssueEvent, decode_event, encode_event, summarize_event
from git_issue.gateway.object_store.abc import GitObjectStore
from git_issue.gateway.object_store.types import BLOB_MODE, TreeEntry
from git_issue.issue import Identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainEntry:
    """One commit of an event chain.

    Exactly one of `event` and `error` is set: `error` explains why the
    commit's payload could not be turned into an event.
    """

    commit_id: str
    event: IssueEvent | None
    error: str | None


class EventLog:
    """Writes single-event commits and reads event chains back."""

    def __init__(
        self, object_store: GitObjectStore, *, blob_name: str = DEFAULT_EVENT_BLOB_NAME
    ) -> None:
        self._object_store = object_store
        self._blob_name = blob_name

    def write_event(
        self,
        parent: str | None,
        event: IssueEvent,
        author: Identity,
        summary: str | None = None,
    ) -> str:
        """Write an event as a new commit on top of parent.

        Args:
            parent: Commit to build on, or None for the root of a new chain
            event: Event to store
            author: Commit author
            summary: Commit message; defaults to "<Variant>: <summary>"

        Returns:
            Id of the new commit. Nothing points at it until a ref is moved.
        """
        tree_id = self.write_event_tree(event)
        return self.commit_event(tree_id, parent, event, author, summary)

    def write_event_tree(self, event: IssueEvent) -> str:
        """Store the event payload and return the id of its single-entry tree."""
        blob_id = self._object_store.write_blob(encode_event(event))
        return self._object_store.write_tree(
            TreeEntry(name=self._blob_name, object_id=blob_id, mode=BLOB_MODE)
        )

    def commit_event(
        self,
        tree_id: str,
        parent: str | None,
        event: IssueEvent,
        author: Identity,
        summary: str | None = None,
    ) -> str:
        """Commit an already-written event tree on top of parent."""
        message = summary if summary is not None else summarize_event(event)
        parents = [parent] if parent is not None else []
        return self._object_store.write_commit(
            tree_id, parents, author, message, timestamp=event.timestamp
        )

    def read_chain(self, head: str) -> list[IssueEvent]:
        """Return the events of the chain ending at head, oldest first.

        Entries whose payload cannot be decoded are skipped (and logged).

        Raises:
            CorruptError: If a commit in the chain is missing or unreadable
        """
        return [entry.event for entry in self.walk_chain(head) if entry.event is not None]

    def walk_chain(self, head: str) -> list[ChainEntry]:
        """Return every commit of the chain ending at head, oldest first.

        Raises:
            CorruptError: If a commit in the chain is missing, is not a commit,
                or the parent links loop
        """
        entries: list[ChainEntry] = []
        seen: set[str] = set()
        commit_id: str | None = head

        while commit_id is not None:
            if commit_id in seen:
                msg = f"Event chain loops back to commit {commit_id}"
                raise CorruptError(msg)
            seen.add(commit_id)

            try:
                commit = self._object_store.read_commit(commit_id)
            except NotFoundError as e:
                msg = f"Event chain is broken at commit {commit_id}: {e}"
                raise CorruptError(msg) from e

            entry = self._read_entry(commit_id, commit.tree_id)
            if entry.error is not None:
                logger.warning("Skipping event commit %s: %s", commit_id, entry.error)
            entries.append(entry)

            if len(commit.parents) > 1:
                logger.warning(
                    "Event commit %s has %d parents; following the first",
                    commit_id,
                    len(commit.parents),
                )
            commit_id = commit.parents[0] if commit.parents else None

        entries.reverse()
        return entries

    def _read_entry(self, commit_id: str, tree_id: str) -> ChainEntry:
        try:
            tree = self._object_store.read_tree(tree_id)
            if len(tree) != 1 or tree[0].mode != BLOB_MODE:
                msg = f"expected a tree with exactly one file, found {len(tree)} entries"
                raise CorruptError(msg)
            event = decode_event(self._object_store.read_blob(tree[0].object_id))
        except (CorruptError, NotFoundError) as e:
            return ChainEntry(commit_id=commit_id, event=None, error=str(e))
        return ChainEntry(commit_id=commit_id, event=event, error=None)
