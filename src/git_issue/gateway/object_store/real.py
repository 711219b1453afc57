"""Production object store implementation using git plumbing commands."""

import os
import re
import subprocess
from datetime import UTC, datetime
from pathlib import Path
from typing import NoReturn

from git_issue.errors import ConflictError, CorruptError, NotFoundError, StorageIOError
from git_issue.gateway.object_store.abc import GitObjectStore
from git_issue.gateway.object_store.types import CommitInfo, TreeEntry, format_commit
from git_issue.issue import Identity
from git_issue.subprocess_utils import (
    decode_output,
    run_subprocess,
    run_subprocess_with_context,
)

# Phrases git uses when an update-ref loses a race or finds the ref in an
# unexpected state. Output is forced to the C locale so these are stable.
_REF_CONFLICT_MARKERS = (
    "cannot lock ref",
    "reference already exists",
    "but expected",
    "unable to resolve reference",
    "File exists",
)

_AUTHOR_PATTERN = re.compile(
    r"^(?P<name>.*?) ?<(?P<email>[^>]*)> (?P<seconds>-?\d+) (?P<offset>[+-]\d{4})$"
)


class RealGitObjectStore(GitObjectStore):
    """Object store backed by a real git repository.

    Every operation shells out to git in `repo_root`. Nothing is cached, so
    several instances (or processes) can share one repository.
    """

    def __init__(self, repo_root: Path) -> None:
        self._repo_root = repo_root
        self._env = {**os.environ, "LC_ALL": "C", "LANGUAGE": ""}

    @classmethod
    def open(cls, repo_root: Path) -> "RealGitObjectStore":
        """Open an existing repository.

        Raises:
            NotFoundError: If repo_root is not inside a git repository
        """
        result = run_subprocess(cmd=["git", "rev-parse", "--git-dir"], cwd=repo_root)
        if result.returncode != 0:
            msg = f"Repository not found at path: {repo_root}"
            raise NotFoundError(msg)
        return cls(repo_root)

    @classmethod
    def init(cls, repo_root: Path) -> "RealGitObjectStore":
        """Create (or reinitialize) a repository at repo_root and open it."""
        repo_root.mkdir(parents=True, exist_ok=True)
        run_subprocess_with_context(
            cmd=["git", "init", "--quiet"],
            operation_context=f"initialize repository at {repo_root}",
            cwd=repo_root,
        )
        return cls(repo_root)

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    # ============================================================================
    # Object Operations
    # ============================================================================

    def write_blob(self, data: bytes) -> str:
        result = self._git(["hash-object", "-w", "--stdin"], "write blob", input=data)
        return decode_output(result.stdout)

    def read_blob(self, object_id: str) -> bytes:
        result = self._run(["cat-file", "blob", object_id])
        if result.returncode != 0:
            self._raise_unreadable(object_id, "blob")
        return result.stdout

    def write_tree(self, entry: TreeEntry) -> str:
        line = f"{entry.mode} blob {entry.object_id}\t{entry.name}\n"
        result = self._git(["mktree"], "write tree", input=line.encode("utf-8"))
        return decode_output(result.stdout)

    def read_tree(self, tree_id: str) -> list[TreeEntry]:
        result = self._run(["cat-file", "tree", tree_id])
        if result.returncode != 0:
            self._raise_unreadable(tree_id, "tree")
        return _parse_tree(result.stdout, hash_size=len(tree_id) // 2)

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

        # Written as a raw object: commit-tree would rewrite or reject the author ident
        body = format_commit(tree_id, parents, author, message, timestamp=timestamp)
        result = self._git(
            ["hash-object", "-t", "commit", "-w", "--literally", "--stdin"],
            "write commit",
            input=body,
        )
        return decode_output(result.stdout)

    def read_commit(self, commit_id: str) -> CommitInfo:
        result = self._run(["cat-file", "commit", commit_id])
        if result.returncode != 0:
            self._raise_unreadable(commit_id, "commit")
        return _parse_commit(commit_id, result.stdout)

    # ============================================================================
    # Reference Operations
    # ============================================================================

    def create_ref(self, name: str, object_id: str) -> None:
        # An empty old value tells git the ref must not exist yet
        self._update_ref([name, object_id, ""], name)

    def update_ref(self, name: str, new_id: str, expected_old_id: str) -> None:
        self._update_ref([name, new_id, expected_old_id], name)

    def read_ref(self, name: str) -> str | None:
        result = self._run(["rev-parse", "--verify", "--quiet", name])
        if result.returncode != 0:
            return None
        return decode_output(result.stdout)

    def list_refs(self, prefix: str) -> list[tuple[str, str]]:
        result = self._git(
            ["for-each-ref", "--format=%(refname) %(objectname)", prefix.rstrip("/")],
            f"list refs under {prefix}",
        )
        refs: list[tuple[str, str]] = []
        for line in decode_output(result.stdout).splitlines():
            if not line:
                continue
            name, _, object_id = line.partition(" ")
            if name.startswith(prefix):
                refs.append((name, object_id))
        return sorted(refs)

    def delete_ref(self, name: str) -> None:
        current = self.read_ref(name)
        if current is None:
            msg = f"Reference not found: {name}"
            raise NotFoundError(msg)
        self._update_ref(["-d", name, current], name)

    # ============================================================================
    # Configuration
    # ============================================================================

    def get_config(self, key: str) -> str | None:
        result = self._run(["config", "--get", key])
        if result.returncode != 0:
            return None
        return decode_output(result.stdout)

    # ============================================================================
    # Helpers
    # ============================================================================

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[bytes]:
        return run_subprocess(cmd=["git", *args], cwd=self._repo_root, env=self._env)

    def _git(
        self,
        args: list[str],
        operation_context: str,
        *,
        input: bytes | None = None,
    ) -> subprocess.CompletedProcess[bytes]:
        return run_subprocess_with_context(
            cmd=["git", *args],
            operation_context=operation_context,
            cwd=self._repo_root,
            input=input,
            env=self._env,
        )

    def _update_ref(self, args: list[str], name: str) -> None:
        result = self._run(["update-ref", *args])
        if result.returncode == 0:
            return
        stderr = decode_output(result.stderr)
        if any(marker in stderr for marker in _REF_CONFLICT_MARKERS):
            msg = f"Reference {name} was modified concurrently: {stderr}"
            raise ConflictError(msg)
        msg = f"Failed to update reference {name}: {stderr}"
        raise StorageIOError(msg)

    def _raise_unreadable(self, object_id: str, expected_type: str) -> NoReturn:
        """Explain why reading an object as expected_type failed."""
        result = self._run(["cat-file", "-t", object_id])
        if result.returncode != 0:
            msg = f"Object not found: {object_id}"
            raise NotFoundError(msg)
        actual_type = decode_output(result.stdout)
        if actual_type != expected_type:
            msg = f"Invalid object type for {object_id}: expected {expected_type}, got {actual_type}"
            raise CorruptError(msg)
        msg = f"Failed to read {expected_type} {object_id}"
        raise StorageIOError(msg)


def _parse_tree(data: bytes, *, hash_size: int) -> list[TreeEntry]:
    """Parse git's binary tree format: `<mode> <name>\\0<raw hash>` repeated."""
    entries: list[TreeEntry] = []
    position = 0
    while position < len(data):
        space = data.index(b" ", position)
        nul = data.index(b"\0", space)
        mode = data[position:space].decode("ascii")
        name = data[space + 1 : nul].decode("utf-8", errors="replace")
        raw_hash = data[nul + 1 : nul + 1 + hash_size]
        entries.append(TreeEntry(name=name, object_id=raw_hash.hex(), mode=mode.zfill(6)))
        position = nul + 1 + hash_size
    return entries


def _parse_commit(commit_id: str, data: bytes) -> CommitInfo:
    header_bytes, _, message_bytes = data.partition(b"\n\n")
    tree_id: str | None = None
    parents: list[str] = []
    author: Identity | None = None
    timestamp: datetime | None = None

    for line in header_bytes.decode("utf-8", errors="replace").splitlines():
        # Continuation lines (e.g. gpgsig) start with a space
        if line.startswith(" "):
            continue
        key, _, value = line.partition(" ")
        if key == "tree":
            tree_id = value
        elif key == "parent":
            parents.append(value)
        elif key == "author":
            match = _AUTHOR_PATTERN.match(value)
            if match is None:
                msg = f"Commit {commit_id} has an unparseable author line: {value!r}"
                raise CorruptError(msg)
            author = Identity(name=match["name"], email=match["email"])
            timestamp = datetime.fromtimestamp(int(match["seconds"]), UTC)

    if tree_id is None or author is None or timestamp is None:
        msg = f"Commit {commit_id} is missing its tree or author header"
        raise CorruptError(msg)

    return CommitInfo(
        tree_id=tree_id,
        parents=tuple(parents),
        author=author,
        message=message_bytes.decode("utf-8", errors="replace").rstrip("\n"),
        timestamp=timestamp,
    )
