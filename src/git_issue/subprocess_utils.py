"""Helpers for running git subprocesses with useful failure context."""

import logging
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from git_issue.errors import StorageIOError

logger = logging.getLogger(__name__)


def run_subprocess(
    *,
    cmd: Sequence[str],
    cwd: Path,
    input: bytes | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a command and return the completed process without checking the exit code.

    Output is captured as bytes so that blob contents survive unchanged.

    Raises:
        StorageIOError: If the executable cannot be started at all
    """
    logger.debug("running %s in %s", " ".join(cmd), cwd)
    try:
        return subprocess.run(
            list(cmd),
            cwd=cwd,
            input=input,
            env=dict(env) if env is not None else None,
            capture_output=True,
            check=False,
        )
    except OSError as e:
        msg = f"Failed to run {cmd[0]}: {e}"
        raise StorageIOError(msg) from e


def run_subprocess_with_context(
    *,
    cmd: Sequence[str],
    operation_context: str,
    cwd: Path,
    input: bytes | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a command, raising StorageIOError with context if it exits non-zero.

    Args:
        cmd: Command and arguments
        operation_context: Short description of what the command is for,
            included in the error message (e.g. "write blob")
        cwd: Working directory
        input: Bytes to feed on stdin
        env: Full environment for the child process (None = inherit)

    Returns:
        The completed process, with stdout/stderr as bytes

    Raises:
        StorageIOError: If the command fails
    """
    result = run_subprocess(cmd=cmd, cwd=cwd, input=input, env=env)
    if result.returncode != 0:
        msg = (
            f"Failed to {operation_context}: `{' '.join(cmd)}` exited with "
            f"{result.returncode}: {decode_output(result.stderr)}"
        )
        raise StorageIOError(msg)
    return result


def decode_output(output: bytes) -> str:
    """Decode captured subprocess output for messages and parsing."""
    return output.decode("utf-8", errors="replace").strip()
