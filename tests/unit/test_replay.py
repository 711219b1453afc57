"""Tests for folding event lists into issues."""

from datetime import UTC, datetime, timedelta

import pytest

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
from git_issue.issue import Identity, IssueStatus, Priority
from git_issue.replay import fold_events, replay

ALICE = Identity(name="Alice", email="alice@example.com")
BOB = Identity(name="Bob", email="bob@example.com")
T0 = datetime(2024, 1, 15, 14, 30, 0, tzinfo=UTC)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def created(minutes: int = 0) -> Created:
    return Created(title="Login fails", description="Steps...", author=ALICE, timestamp=at(minutes))


def test_created_initializes_issue() -> None:
    issue = fold_events(7, [created()])

    assert issue.id == 7
    assert issue.title == "Login fails"
    assert issue.description == "Steps..."
    assert issue.status == IssueStatus.TODO
    assert issue.priority == Priority.NONE
    assert issue.labels == ()
    assert issue.comments == ()
    assert issue.assignee is None
    assert issue.created_by == ALICE
    assert issue.created_at == T0
    assert issue.updated_at == T0


def test_status_change_applies_to_status() -> None:
    events: list[IssueEvent] = [
        created(),
        StatusChanged(
            from_status=IssueStatus.TODO,
            to_status=IssueStatus.IN_PROGRESS,
            author=BOB,
            timestamp=at(1),
        ),
    ]

    result = replay(1, events)

    assert result.issue.status == IssueStatus.IN_PROGRESS
    assert result.issue.updated_at == at(1)
    assert result.diagnostics == ()


def test_status_from_mismatch_is_applied_and_reported() -> None:
    """Test that a stale `from` does not block the transition but is surfaced."""
    events: list[IssueEvent] = [
        created(),
        StatusChanged(
            from_status=IssueStatus.IN_PROGRESS,
            to_status=IssueStatus.DONE,
            author=BOB,
            timestamp=at(1),
        ),
    ]

    result = replay(1, events)

    assert result.issue.status == IssueStatus.DONE
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.position == 1
    assert diagnostic.event_type == "StatusChanged"
    assert "expected status in-progress but issue was todo" in diagnostic.message


def test_comments_get_sequential_ids_in_replay_order() -> None:
    events: list[IssueEvent] = [
        created(),
        CommentAdded(content="first", author=BOB, timestamp=at(1)),
        CommentAdded(content="second", author=ALICE, timestamp=at(2)),
    ]

    issue = fold_events(1, events)

    assert [(c.id, c.content, c.author) for c in issue.comments] == [
        ("1-1", "first", BOB),
        ("1-2", "second", ALICE),
    ]
    assert issue.comments[1].created_at == at(2)


def test_label_added_twice_appears_once() -> None:
    events: list[IssueEvent] = [
        created(),
        LabelAdded(label="bug", author=ALICE, timestamp=at(1)),
        LabelAdded(label="ui", author=ALICE, timestamp=at(2)),
        LabelAdded(label="bug", author=BOB, timestamp=at(3)),
    ]

    issue = fold_events(1, events)

    assert issue.labels == ("bug", "ui")
    assert issue.updated_at == at(3)


def test_removing_absent_label_is_a_noop() -> None:
    events: list[IssueEvent] = [
        created(),
        LabelAdded(label="bug", author=ALICE, timestamp=at(1)),
        LabelRemoved(label="wontfix", author=ALICE, timestamp=at(2)),
        LabelRemoved(label="bug", author=ALICE, timestamp=at(3)),
    ]

    result = replay(1, events)

    assert result.issue.labels == ()
    assert result.diagnostics == ()


def test_field_changes_set_their_fields() -> None:
    events: list[IssueEvent] = [
        created(),
        TitleChanged(old_title="Login fails", new_title="SSO login fails", author=ALICE, timestamp=at(1)),
        DescriptionChanged(old_description="Steps...", new_description="", author=ALICE, timestamp=at(2)),
        PriorityChanged(old_priority=Priority.NONE, new_priority=Priority.HIGH, author=ALICE, timestamp=at(3)),
        AssigneeChanged(assignee=BOB, author=ALICE, timestamp=at(4)),
    ]

    issue = fold_events(1, events)

    assert issue.title == "SSO login fails"
    assert issue.description == ""
    assert issue.priority == Priority.HIGH
    assert issue.assignee == BOB
    assert issue.updated_at == at(4)


def test_assignee_can_be_cleared() -> None:
    events: list[IssueEvent] = [
        created(),
        AssigneeChanged(assignee=BOB, author=ALICE, timestamp=at(1)),
        AssigneeChanged(assignee=None, author=ALICE, timestamp=at(2)),
    ]

    assert fold_events(1, events).assignee is None


def test_events_before_created_are_skipped() -> None:
    events: list[IssueEvent] = [
        LabelAdded(label="orphan", author=ALICE, timestamp=at(0)),
        created(1),
        LabelAdded(label="bug", author=ALICE, timestamp=at(2)),
    ]

    result = replay(1, events)

    assert result.issue.labels == ("bug",)
    assert result.issue.created_at == at(1)
    assert [(d.position, d.event_type) for d in result.diagnostics] == [(0, "LabelAdded")]


def test_second_created_is_skipped() -> None:
    events: list[IssueEvent] = [
        created(),
        Created(title="Other", description="", author=BOB, timestamp=at(1)),
    ]

    result = replay(1, events)

    assert result.issue.title == "Login fails"
    assert result.issue.created_by == ALICE
    assert result.issue.updated_at == T0
    assert [(d.position, d.event_type) for d in result.diagnostics] == [(1, "Created")]


def test_replay_without_created_is_corrupt() -> None:
    events: list[IssueEvent] = [LabelAdded(label="bug", author=ALICE, timestamp=T0)]

    with pytest.raises(CorruptError, match="Issue 3 has no Created event"):
        replay(3, events)


def test_replay_of_empty_list_is_corrupt() -> None:
    with pytest.raises(CorruptError):
        fold_events(1, [])


def test_replay_is_pure() -> None:
    """Test that replaying the same events twice gives equal issues and leaves input intact."""
    events: list[IssueEvent] = [
        created(),
        CommentAdded(content="hi", author=BOB, timestamp=at(1)),
        LabelAdded(label="bug", author=BOB, timestamp=at(2)),
    ]
    snapshot = list(events)

    assert fold_events(1, events) == fold_events(1, events)
    assert events == snapshot


def test_created_by_can_be_reattributed() -> None:
    events: list[IssueEvent] = [
        created(),
        CreatedByChanged(old_created_by=ALICE, new_created_by=BOB, author=ALICE, timestamp=at(1)),
    ]

    issue = fold_events(1, events)

    assert issue.created_by == BOB
    assert issue.created_at == T0
    assert issue.updated_at == at(1)
