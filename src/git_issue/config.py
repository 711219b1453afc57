"""Store configuration loaded from `.git-issue/config.toml`."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

DEFAULT_NAMESPACE = "refs/git-issue"
DEFAULT_MAX_RETRIES = 10
DEFAULT_RETRY_BACKOFF_SECONDS = 0.01
DEFAULT_EVENT_BLOB_NAME = "event.json"


@dataclass(frozen=True)
class StoreConfig:
    """Tunables of an IssueStore.

    Example config.toml:
      [store]
      namespace = "refs/git-issue"
      max_retries = 10
      retry_backoff_seconds = 0.01
      event_blob_name = "event.json"
    """

    namespace: str = DEFAULT_NAMESPACE
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    event_blob_name: str = DEFAULT_EVENT_BLOB_NAME

    def __post_init__(self) -> None:
        if not self.namespace.startswith("refs/") or self.namespace.endswith("/"):
            msg = f"namespace must start with 'refs/' and not end with '/': {self.namespace!r}"
            raise ValueError(msg)
        if self.max_retries < 0:
            msg = f"max_retries must be non-negative, got {self.max_retries}"
            raise ValueError(msg)
        if self.retry_backoff_seconds < 0:
            msg = f"retry_backoff_seconds must be non-negative, got {self.retry_backoff_seconds}"
            raise ValueError(msg)
        if not self.event_blob_name or "/" in self.event_blob_name:
            msg = f"event_blob_name must be a plain file name: {self.event_blob_name!r}"
            raise ValueError(msg)

    @property
    def issues_prefix(self) -> str:
        return f"{self.namespace}/issues/"

    @property
    def next_issue_id_ref(self) -> str:
        return f"{self.namespace}/meta/next-issue-id"


def load_config(repo_root: Path) -> StoreConfig:
    """Load .git-issue/config.toml from the repository if present; otherwise return defaults.

    Raises:
        ValueError: If a [store] value has the wrong type or is out of range
    """
    cfg_path = repo_root / ".git-issue" / "config.toml"
    if not cfg_path.exists():
        return StoreConfig()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    store = data.get("store", {})
    if not isinstance(store, dict):
        msg = f"[store] in {cfg_path} must be a table"
        raise ValueError(msg)

    unknown = set(store) - {"namespace", "max_retries", "retry_backoff_seconds", "event_blob_name"}
    if unknown:
        msg = f"Unknown [store] keys in {cfg_path}: {', '.join(sorted(unknown))}"
        raise ValueError(msg)

    return StoreConfig(
        namespace=_typed(store, "namespace", str, DEFAULT_NAMESPACE),
        max_retries=_typed(store, "max_retries", int, DEFAULT_MAX_RETRIES),
        retry_backoff_seconds=float(
            _typed(store, "retry_backoff_seconds", (int, float), DEFAULT_RETRY_BACKOFF_SECONDS)
        ),
        event_blob_name=_typed(store, "event_blob_name", str, DEFAULT_EVENT_BLOB_NAME),
    )


def _typed(
    table: dict[str, Any], key: str, expected: type | tuple[type, ...], default: Any
) -> Any:
    value = table.get(key, default)
    # bool is an int subclass; "max_retries = true" is not a count
    if isinstance(value, bool) or not isinstance(value, expected):
        msg = f"[store] {key} has invalid value {value!r}"
        raise ValueError(msg)
    return value
