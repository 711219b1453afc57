"""Rebuilding issue state by folding its events.

Replay is a pure function of the issue id and the ordered event list. It never
touches the object store, so the same chain always yields the same Issue.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from git_issue.errors import CorruptError
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
from git_issue.issue import Comment, Identity, Issue, IssueId, IssueStatus, Priority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayDiagnostic:
    """Something about the chain that replay tolerated rather than rejected.

    Attributes:
        position: Zero-based index of the event in the replayed list
        event_type: Variant name of the event
        message: What was wrong
    """

    position: int
    event_type: str
    message: str


@dataclass(frozen=True)
class ReplayResult:
    issue: Issue
    diagnostics: tuple[ReplayDiagnostic, ...]


@dataclass
class _IssueState:
    title: str
    description: str
    created_by: Identity
    created_at: datetime
    updated_at: datetime
    status: IssueStatus = IssueStatus.TODO
    priority: Priority = Priority.NONE
    labels: list[str] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    assignee: Identity | None = None

    def freeze(self, issue_id: IssueId) -> Issue:
        return Issue(
            id=issue_id,
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            labels=tuple(self.labels),
            comments=tuple(self.comments),
            assignee=self.assignee,
            created_by=self.created_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def fold_events(issue_id: IssueId, events: list[IssueEvent]) -> Issue:
    """Replay events and return only the resulting issue."""
    return replay(issue_id, events).issue


def replay(issue_id: IssueId, events: list[IssueEvent]) -> ReplayResult:
    """Fold an oldest-first event list into the current issue state.

    Events before the first Created, and any later Created, are skipped. A
    StatusChanged whose `from` disagrees with the replayed status is still
    applied. All three cases are reported as diagnostics.

    Raises:
        CorruptError: If no Created event is present
    """
    diagnostics: list[ReplayDiagnostic] = []
    state: _IssueState | None = None

    for position, event in enumerate(events):
        if state is None:
            if isinstance(event, Created):
                state = _IssueState(
                    title=event.title,
                    description=event.description,
                    created_by=event.author,
                    created_at=event.timestamp,
                    updated_at=event.timestamp,
                )
            else:
                diagnostics.append(
                    ReplayDiagnostic(position, event.variant, "event precedes Created; skipped")
                )
            continue

        problem = _apply(issue_id, state, event)
        if problem is not None:
            diagnostics.append(ReplayDiagnostic(position, event.variant, problem))

    if state is None:
        msg = f"Issue {issue_id} has no Created event"
        raise CorruptError(msg)

    for diagnostic in diagnostics:
        logger.warning(
            "Issue %d event %d (%s): %s",
            issue_id,
            diagnostic.position,
            diagnostic.event_type,
            diagnostic.message,
        )
    return ReplayResult(issue=state.freeze(issue_id), diagnostics=tuple(diagnostics))


def _apply(issue_id: IssueId, state: _IssueState, event: IssueEvent) -> str | None:
    """Apply one post-creation event in place. Returns a diagnostic message, if any."""
    problem: str | None = None
    match event:
        case Created():
            return "duplicate Created event; skipped"
        case StatusChanged(from_status=from_status, to_status=to_status):
            if from_status != state.status:
                problem = f"expected status {from_status} but issue was {state.status}"
            state.status = to_status
        case CommentAdded(content=content, author=author, timestamp=timestamp):
            comment_id = f"{issue_id}-{len(state.comments) + 1}"
            state.comments.append(
                Comment(id=comment_id, content=content, author=author, created_at=timestamp)
            )
        case LabelAdded(label=label):
            if label not in state.labels:
                state.labels.append(label)
        case LabelRemoved(label=label):
            if label in state.labels:
                state.labels.remove(label)
        case TitleChanged(new_title=new_title):
            state.title = new_title
        case AssigneeChanged(assignee=assignee):
            state.assignee = assignee
        case DescriptionChanged(new_description=new_description):
            state.description = new_description
        case PriorityChanged(new_priority=new_priority):
            state.priority = new_priority
        case CreatedByChanged(new_created_by=new_created_by):
            state.created_by = new_created_by
    state.updated_at = event.timestamp
    return problem
