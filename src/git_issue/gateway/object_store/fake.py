"""In-memory fake object store for testing.

FakeGitObjectStore hashes objects exactly the way git does, so object ids
produced here match the ids a real repository would assign to the same
content. All state lives in memory behind a lock, which makes the fake safe to
share between threads in concurrency tests.
"""

import hashlib
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import NoReturn

from git_issue.errors import ConflictError, CorruptError, NotFoundError, StorageIOError
from git_issue.gateway.object_store.abc import GitObjectStore
from git_issue.gateway.object_store.types import CommitInfo, TreeEntry, format_commit
from git_issue.issue import Identity


def _hash_object(kind: str, body: bytes) -> str:
    header = f"{kind} {len(body)}\0".encode()
    return hashlib.sha1(header + body).hexdigest()


class FakeGitObjectStore(GitObjectStore):
    """In-memory fake implementation of GitObjectStore.

    Constructor Injection:
    ---------------------
    Initial refs and git config values are provided via the constructor.
    Runtime mutations occur through the normal write and ref operations.

    Interleaving Concurrent Writers:
    --------------------------------
    `before_ref_update` is called with the ref name just before every
    update_ref compare-and-swap, outside the store lock. Tests use it to move
    the ref from "another process" between a writer's read and its CAS.

    Mutation Tracking:
    -----------------
    - ref_updates: (name, new_id) for every successful create/update, in order
    - failed_ref_updates: names of refs whose CAS was rejected, in order
    """

    def __init__(
        self,
        *,
        refs: dict[str, str] | None = None,
        config: dict[str, str] | None = None,
        before_ref_update: Callable[[str], None] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}
        self._trees: dict[str, list[TreeEntry]] = {}
        self._commits: dict[str, CommitInfo] = {}
        self._refs: dict[str, str] = dict(refs) if refs is not None else {}
        self._config: dict[str, str] = dict(config) if config is not None else {}
        self._before_ref_update = before_ref_update
        self._ref_updates: list[tuple[str, str]] = []
        self._failed_ref_updates: list[str] = []

    @property
    def refs(self) -> dict[str, str]:
        """Snapshot of all refs for test assertions."""
        with self._lock:
            return dict(self._refs)

    @property
    def ref_updates(self) -> list[tuple[str, str]]:
        with self._lock:
            return list(self._ref_updates)

    @property
    def failed_ref_updates(self) -> list[str]:
        with self._lock:
            return list(self._failed_ref_updates)

    # ============================================================================
    # Object Operations
    # ============================================================================

    def write_blob(self, data: bytes) -> str:
        object_id = _hash_object("blob", data)
        with self._lock:
            self._blobs[object_id] = bytes(data)
        return object_id

    def read_blob(self, object_id: str) -> bytes:
        with self._lock:
            if object_id in self._blobs:
                return self._blobs[object_id]
            self._raise_unreadable(object_id, "blob")

    def write_tree(self, entry: TreeEntry) -> str:
        with self._lock:
            if entry.object_id not in self._blobs:
                msg = f"Failed to write tree: entry {entry.object_id} is not a blob"
                raise StorageIOError(msg)
            body = f"{entry.mode} {entry.name}\0".encode() + bytes.fromhex(entry.object_id)
            object_id = _hash_object("tree", body)
            self._trees[object_id] = [entry]
        return object_id

    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        with self._lock:
            if tree_id in self._trees:
                return list(self._trees[tree_id])
            self._raise_unreadable(tree_id, "tree")

    def write_commit(
        self,
        tree_id: str,
        parents: list[str],
        author: Identity,
        message: str,
        *,
        timestamp: datetime,
    ) -> str:
        if len(parents) > 1:
            msg = f"Event commits have at most one parent, got {len(parents)}"
            raise ValueError(msg)

        body = format_commit(tree_id, parents, author, message, timestamp=timestamp)
        object_id = _hash_object("commit", body)

        with self._lock:
            if tree_id not in self._trees:
                msg = f"Failed to write commit: {tree_id} is not a tree"
                raise StorageIOError(msg)
            for parent in parents:
                if parent not in self._commits:
                    msg = f"Failed to write commit: parent {parent} is not a commit"
                    raise StorageIOError(msg)
            self._commits[object_id] = CommitInfo(
                tree_id=tree_id,
                parents=tuple(parents),
                author=author,
                message=message,
                timestamp=datetime.fromtimestamp(int(timestamp.timestamp()), UTC),
            )
        return object_id

    def read_commit(self, commit_id: str) -> CommitInfo:
        with self._lock:
            if commit_id in self._commits:
                return self._commits[commit_id]
            self._raise_unreadable(commit_id, "commit")

    # ============================================================================
    # Reference Operations
    # ============================================================================

    def create_ref(self, name: str, object_id: str) -> None:
        with self._lock:
            if name in self._refs:
                self._failed_ref_updates.append(name)
                msg = f"Reference {name} was modified concurrently: reference already exists"
                raise ConflictError(msg)
            self._require_object(object_id)
            self._refs[name] = object_id
            self._ref_updates.append((name, object_id))

    def update_ref(self, name: str, new_id: str, expected_old_id: str) -> None:
        if self._before_ref_update is not None:
            self._before_ref_update(name)
        with self._lock:
            current = self._refs.get(name)
            if current != expected_old_id:
                self._failed_ref_updates.append(name)
                msg = (
                    f"Reference {name} was modified concurrently: "
                    f"is at {current} but expected {expected_old_id}"
                )
                raise ConflictError(msg)
            self._require_object(new_id)
            self._refs[name] = new_id
            self._ref_updates.append((name, new_id))

    def read_ref(self, name: str) -> str | None:
        with self._lock:
            return self._refs.get(name)

    def list_refs(self, prefix: str) -> list[tuple[str, str]]:
        with self._lock:
            return sorted((name, oid) for name, oid in self._refs.items() if name.startswith(prefix))

    def delete_ref(self, name: str) -> None:
        with self._lock:
            if name not in self._refs:
                msg = f"Reference not found: {name}"
                raise NotFoundError(msg)
            del self._refs[name]

    # ============================================================================
    # Configuration
    # ============================================================================

    def get_config(self, key: str) -> str | None:
        return self._config.get(key)

    # ============================================================================
    # Helpers (call with the lock held)
    # ============================================================================

    def _kind_of(self, object_id: str) -> str | None:
        if object_id in self._blobs:
            return "blob"
        if object_id in self._trees:
            return "tree"
        if object_id in self._commits:
            return "commit"
        return None

    def _require_object(self, object_id: str) -> None:
        if self._kind_of(object_id) is None:
            msg = f"Failed to update reference: {object_id} does not exist"
            raise StorageIOError(msg)

    def _raise_unreadable(self, object_id: str, expected_type: str) -> NoReturn:
        actual_type = self._kind_of(object_id)
        if actual_type is None:
            msg = f"Object not found: {object_id}"
            raise NotFoundError(msg)
        msg = f"Invalid object type for {object_id}: expected {expected_type}, got {actual_type}"
        raise CorruptError(msg)
