"""Issue persistence on top of git refs and event chains.

Layout under the configured namespace (default `refs/git-issue`):

    <ns>/issues/<id>           -> head commit of the issue's event chain
    <ns>/meta/next-issue-id    -> blob holding the next unallocated id

Both refs only ever move through compare-and-swap. Writers never lock: a
writer that loses a race re-reads the ref, re-parents its own event onto the
winner's head and tries again, up to `StoreConfig.max_retries` times.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from git_issue.config import StoreConfig, load_config
from git_issue.errors import ConflictError, CorruptError, IssueNotFoundError, NotFoundError
from git_issue.event_log import ChainEntry, EventLog
from git_issue.events import (
    AssigneeChanged,
    CommentAdded,
    Created,
    CreatedByChanged,
    DescriptionChanged,
    IssueEvent,
    LabelAdded,
    LabelRemoved,
    PriorityChanged,
    StatusChanged,
    TitleChanged,
)
from git_issue.gateway.object_store.abc import GitObjectStore
from git_issue.gateway.object_store.real import RealGitObjectStore
from git_issue.gateway.time.abc import Time
from git_issue.gateway.time.real import RealTime
from git_issue.issue import Identity, Issue, IssueId, IssueStatus, Priority
from git_issue.replay import ReplayDiagnostic, fold_events, replay
from git_issue.retry import linear_backoff, with_cas_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssueFilter:
    """Criteria for list_issues. Unset criteria match everything; set ones must all match.

    Attributes:
        status: Only issues with this status
        label: Only issues carrying this label
        assignee_email: Only issues assigned to this email
        predicate: Arbitrary extra test applied last
    """

    status: IssueStatus | None = None
    label: str | None = None
    assignee_email: str | None = None
    predicate: Callable[[Issue], bool] | None = None

    def matches(self, issue: Issue) -> bool:
        if self.status is not None and issue.status != self.status:
            return False
        if self.label is not None and self.label not in issue.labels:
            return False
        if self.assignee_email is not None:
            if issue.assignee is None or issue.assignee.email != self.assignee_email:
                return False
        if self.predicate is not None and not self.predicate(issue):
            return False
        return True


@dataclass(frozen=True)
class IssueInspection:
    """An issue together with everything replay had to tolerate to build it.

    Attributes:
        issue: The replayed issue
        diagnostics: Replay discrepancies, positioned within the decoded events
        skipped_commits: Chain commits whose payload could not be decoded
    """

    issue: Issue
    diagnostics: tuple[ReplayDiagnostic, ...]
    skipped_commits: tuple[ChainEntry, ...]

    @property
    def is_clean(self) -> bool:
        return not self.diagnostics and not self.skipped_commits


class IssueStore:
    """Creates, mutates and reads issues stored as git event chains."""

    def __init__(
        self,
        object_store: GitObjectStore,
        *,
        time: Time,
        config: StoreConfig | None = None,
    ) -> None:
        self._object_store = object_store
        self._time = time
        self._config = config if config is not None else StoreConfig()
        self._event_log = EventLog(object_store, blob_name=self._config.event_blob_name)
        self._retry_delays = linear_backoff(
            self._config.max_retries, self._config.retry_backoff_seconds
        )

    @classmethod
    def open(cls, repo_root: Path, config: StoreConfig | None = None) -> "IssueStore":
        """Open the issue store of an existing git repository.

        Without an explicit config, `.git-issue/config.toml` is honored.

        Raises:
            NotFoundError: If repo_root is not inside a git repository
        """
        object_store = RealGitObjectStore.open(repo_root)
        if config is None:
            config = load_config(repo_root)
        return cls(object_store, time=RealTime(), config=config)

    @classmethod
    def init(cls, repo_root: Path, config: StoreConfig | None = None) -> "IssueStore":
        """Initialize a git repository at repo_root and open its issue store."""
        object_store = RealGitObjectStore.init(repo_root)
        if config is None:
            config = load_config(repo_root)
        return cls(object_store, time=RealTime(), config=config)

    @property
    def object_store(self) -> GitObjectStore:
        return self._object_store

    @property
    def config(self) -> StoreConfig:
        return self._config

    def issue_ref_name(self, issue_id: IssueId) -> str:
        return f"{self._config.issues_prefix}{issue_id}"

    # ============================================================================
    # Core Operations
    # ============================================================================

    def create_issue(self, title: str, description: str, author: Identity) -> IssueId:
        """Allocate a new id and start its event chain with a Created event.

        Returns:
            The newly allocated issue id

        Raises:
            ConflictError: If id allocation kept losing races
            CorruptError: If a ref already exists for the freshly allocated id
        """
        issue_id = self._allocate_issue_id()

        event = Created(
            title=title,
            description=description,
            author=author,
            timestamp=self._time.now(),
        )
        root_commit = self._event_log.write_event(None, event, author)

        ref_name = self.issue_ref_name(issue_id)
        try:
            self._object_store.create_ref(ref_name, root_commit)
        except ConflictError as e:
            msg = f"Issue ref {ref_name} already exists for newly allocated id {issue_id}"
            raise CorruptError(msg) from e

        logger.debug("Created issue %d at %s", issue_id, root_commit)
        return issue_id

    def apply_event(self, issue_id: IssueId, event: IssueEvent, author: Identity) -> None:
        """Append an event to an existing issue's chain.

        Raises:
            ValueError: If the event is a Created event
            IssueNotFoundError: If the issue does not exist
            ConflictError: If the append kept losing races with other writers
        """
        self._append_event(issue_id, event, author)

    def get_issue(self, issue_id: IssueId) -> Issue:
        """Rebuild the current state of an issue from its chain.

        Raises:
            IssueNotFoundError: If the issue does not exist
            CorruptError: If the chain is broken or has no Created event
        """
        head = self._require_head(issue_id)
        return fold_events(issue_id, self._event_log.read_chain(head))

    def list_issues(self, issue_filter: IssueFilter | None = None) -> list[Issue]:
        """Return all readable issues matching issue_filter, ordered by id."""
        return list(self.iter_issues(issue_filter))

    def iter_issues(self, issue_filter: IssueFilter | None = None) -> Iterator[Issue]:
        """Lazily replay issues in ascending id order.

        Refs whose id is not a number, and issues whose chain cannot be
        replayed, are skipped with a warning.
        """
        for issue_id, head in self._issue_heads():
            try:
                issue = fold_events(issue_id, self._event_log.read_chain(head))
            except CorruptError as e:
                logger.warning("Skipping issue %d: %s", issue_id, e)
                continue
            if issue_filter is None or issue_filter.matches(issue):
                yield issue

    # ============================================================================
    # Inspection
    # ============================================================================

    def inspect_issue(self, issue_id: IssueId) -> IssueInspection:
        """Replay an issue and report every entry that was skipped or inconsistent.

        Raises:
            IssueNotFoundError: If the issue does not exist
            CorruptError: If the chain is broken or has no Created event
        """
        head = self._require_head(issue_id)
        entries = self._event_log.walk_chain(head)
        events = [entry.event for entry in entries if entry.event is not None]
        result = replay(issue_id, events)
        return IssueInspection(
            issue=result.issue,
            diagnostics=result.diagnostics,
            skipped_commits=tuple(entry for entry in entries if entry.event is None),
        )

    def get_issue_events(self, issue_id: IssueId) -> list[IssueEvent]:
        """Return the decodable events of an issue, oldest first.

        Raises:
            IssueNotFoundError: If the issue does not exist
        """
        return self._event_log.read_chain(self._require_head(issue_id))

    def issue_exists(self, issue_id: IssueId) -> bool:
        return self._object_store.read_ref(self.issue_ref_name(issue_id)) is not None

    def list_issue_ids(self) -> list[IssueId]:
        return [issue_id for issue_id, _ in self._issue_heads()]

    def peek_next_issue_id(self) -> IssueId:
        """Return the id the next create_issue would get, without allocating it."""
        counter_blob = self._object_store.read_ref(self._config.next_issue_id_ref)
        if counter_blob is None:
            return 1
        return self._read_counter(counter_blob)

    # ============================================================================
    # Convenience Commands
    # ============================================================================

    def update_status(self, issue_id: IssueId, new_status: IssueStatus, author: Identity) -> bool:
        """Move an issue to new_status. Returns False if it already had it."""
        current = self.get_issue(issue_id)
        if current.status == new_status:
            return False
        event = StatusChanged(
            from_status=current.status,
            to_status=new_status,
            author=author,
            timestamp=self._time.now(),
        )
        self._append_event(issue_id, event, author)
        return True

    def add_comment(self, issue_id: IssueId, content: str, author: Identity) -> str:
        """Add a comment and return its id ("{issue_id}-{sequence}")."""
        event = CommentAdded(content=content, author=author, timestamp=self._time.now())
        commit_id = self._append_event(issue_id, event, author)
        # Concurrent comments may have landed first; count up to our own commit
        issue = fold_events(issue_id, self._event_log.read_chain(commit_id))
        return issue.comments[-1].id

    def add_label(self, issue_id: IssueId, label: str, author: Identity) -> bool:
        """Add a label. Returns False if the issue already carried it."""
        if label in self.get_issue(issue_id).labels:
            return False
        event = LabelAdded(label=label, author=author, timestamp=self._time.now())
        self._append_event(issue_id, event, author)
        return True

    def remove_label(self, issue_id: IssueId, label: str, author: Identity) -> bool:
        """Remove a label. Returns False if the issue did not carry it."""
        if label not in self.get_issue(issue_id).labels:
            return False
        event = LabelRemoved(label=label, author=author, timestamp=self._time.now())
        self._append_event(issue_id, event, author)
        return True

    def update_title(self, issue_id: IssueId, new_title: str, author: Identity) -> bool:
        current = self.get_issue(issue_id)
        if current.title == new_title:
            return False
        event = TitleChanged(
            old_title=current.title,
            new_title=new_title,
            author=author,
            timestamp=self._time.now(),
        )
        self._append_event(issue_id, event, author)
        return True

    def update_description(
        self, issue_id: IssueId, new_description: str, author: Identity
    ) -> bool:
        current = self.get_issue(issue_id)
        if current.description == new_description:
            return False
        event = DescriptionChanged(
            old_description=current.description,
            new_description=new_description,
            author=author,
            timestamp=self._time.now(),
        )
        self._append_event(issue_id, event, author)
        return True

    def update_assignee(
        self, issue_id: IssueId, assignee: Identity | None, author: Identity
    ) -> bool:
        """Assign the issue (or unassign it with None). Returns False if unchanged."""
        if self.get_issue(issue_id).assignee == assignee:
            return False
        event = AssigneeChanged(assignee=assignee, author=author, timestamp=self._time.now())
        self._append_event(issue_id, event, author)
        return True

    def update_priority(self, issue_id: IssueId, new_priority: Priority, author: Identity) -> bool:
        current = self.get_issue(issue_id)
        if current.priority == new_priority:
            return False
        event = PriorityChanged(
            old_priority=current.priority,
            new_priority=new_priority,
            author=author,
            timestamp=self._time.now(),
        )
        self._append_event(issue_id, event, author)
        return True

    def update_created_by(
        self, issue_id: IssueId, new_created_by: Identity, author: Identity
    ) -> bool:
        """Reattribute who created the issue, e.g. after importing from another tracker."""
        current = self.get_issue(issue_id)
        if current.created_by == new_created_by:
            return False
        event = CreatedByChanged(
            old_created_by=current.created_by,
            new_created_by=new_created_by,
            author=author,
            timestamp=self._time.now(),
        )
        self._append_event(issue_id, event, author)
        return True

    # ============================================================================
    # Helpers
    # ============================================================================

    def _require_head(self, issue_id: IssueId) -> str:
        head = self._object_store.read_ref(self.issue_ref_name(issue_id))
        if head is None:
            raise IssueNotFoundError(issue_id)
        return head

    def _issue_heads(self) -> list[tuple[IssueId, str]]:
        prefix = self._config.issues_prefix
        heads: list[tuple[IssueId, str]] = []
        for ref_name, head in self._object_store.list_refs(prefix):
            suffix = ref_name.removeprefix(prefix)
            if not (suffix.isascii() and suffix.isdigit()):
                logger.warning("Ignoring issue ref with non-numeric id: %s", ref_name)
                continue
            heads.append((int(suffix), head))
        return sorted(heads)

    def _append_event(self, issue_id: IssueId, event: IssueEvent, author: Identity) -> str:
        """Append event to the chain, re-parenting on lost races. Returns the new head."""
        if isinstance(event, Created):
            msg = "Created events start a chain; use create_issue"
            raise ValueError(msg)

        ref_name = self.issue_ref_name(issue_id)
        self._require_head(issue_id)
        tree_id = self._event_log.write_event_tree(event)

        def attempt() -> str:
            head = self._object_store.read_ref(ref_name)
            if head is None:
                raise IssueNotFoundError(issue_id)
            commit_id = self._event_log.commit_event(tree_id, head, event, author)
            self._object_store.update_ref(ref_name, commit_id, head)
            return commit_id

        commit_id = with_cas_retry(
            self._time,
            f"append {event.variant} to issue {issue_id}",
            attempt,
            self._retry_delays,
        )
        logger.debug("Issue %d advanced to %s (%s)", issue_id, commit_id, event.variant)
        return commit_id

    def _allocate_issue_id(self) -> IssueId:
        return with_cas_retry(
            self._time, "allocate issue id", self._try_allocate_issue_id, self._retry_delays
        )

    def _try_allocate_issue_id(self) -> IssueId:
        ref_name = self._config.next_issue_id_ref
        counter_blob = self._object_store.read_ref(ref_name)
        issue_id = 1 if counter_blob is None else self._read_counter(counter_blob)

        # The counter only grows, so a given value's blob id never reappears later
        next_blob = self._object_store.write_blob(str(issue_id + 1).encode("ascii"))
        if counter_blob is None:
            self._object_store.create_ref(ref_name, next_blob)
        else:
            self._object_store.update_ref(ref_name, next_blob, counter_blob)
        return issue_id

    def _read_counter(self, counter_blob: str) -> IssueId:
        try:
            text = self._object_store.read_blob(counter_blob).decode("ascii").strip()
        except NotFoundError as e:
            msg = f"Issue id counter blob {counter_blob} is missing"
            raise CorruptError(msg) from e
        except UnicodeDecodeError as e:
            msg = f"Issue id counter blob {counter_blob} is not ASCII"
            raise CorruptError(msg) from e
        if not text.isdigit() or int(text) < 1:
            msg = f"Issue id counter blob {counter_blob} holds {text!r}, not a positive integer"
            raise CorruptError(msg)
        return int(text)
