"""Issue events and their canonical JSON encoding.

Events are the only persisted representation of change. Each variant is a
frozen pydantic model; a stored event is a single JSON object keyed by the
variant name:

    {"StatusChanged": {"from": "Todo", "to": "InProgress", "author": {...}, "timestamp": "..."}}

Fields are written in declaration order with compact separators, so encoding
the same event always yields the same bytes (and therefore the same blob id).
"""

import json
from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError

from git_issue.errors import CorruptError
from git_issue.issue import Identity, IssueStatus, Priority


def _ensure_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


class _EventModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @property
    def variant(self) -> str:
        """Variant name used as the JSON tag and commit message prefix."""
        return type(self).__name__


class Created(_EventModel):
    title: str
    description: str
    author: Identity
    timestamp: UtcDatetime


class StatusChanged(_EventModel):
    from_status: IssueStatus = Field(alias="from")
    to_status: IssueStatus = Field(alias="to")
    author: Identity
    timestamp: UtcDatetime


class CommentAdded(_EventModel):
    content: str
    author: Identity
    timestamp: UtcDatetime


class LabelAdded(_EventModel):
    label: str
    author: Identity
    timestamp: UtcDatetime


class LabelRemoved(_EventModel):
    label: str
    author: Identity
    timestamp: UtcDatetime


class TitleChanged(_EventModel):
    old_title: str
    new_title: str
    author: Identity
    timestamp: UtcDatetime


class AssigneeChanged(_EventModel):
    assignee: Identity | None
    author: Identity
    timestamp: UtcDatetime


class DescriptionChanged(_EventModel):
    old_description: str
    new_description: str
    author: Identity
    timestamp: UtcDatetime


class PriorityChanged(_EventModel):
    old_priority: Priority
    new_priority: Priority
    author: Identity
    timestamp: UtcDatetime


class CreatedByChanged(_EventModel):
    old_created_by: Identity
    new_created_by: Identity
    author: Identity
    timestamp: UtcDatetime


IssueEvent = (
    Created
    | StatusChanged
    | CommentAdded
    | LabelAdded
    | LabelRemoved
    | TitleChanged
    | AssigneeChanged
    | DescriptionChanged
    | PriorityChanged
    | CreatedByChanged
)

EVENT_TYPES: dict[str, type[IssueEvent]] = {
    cls.__name__: cls
    for cls in (
        Created,
        StatusChanged,
        CommentAdded,
        LabelAdded,
        LabelRemoved,
        TitleChanged,
        AssigneeChanged,
        DescriptionChanged,
        PriorityChanged,
        CreatedByChanged,
    )
}


def encode_event(event: IssueEvent) -> bytes:
    """Serialize an event to its canonical JSON bytes."""
    payload = {event.variant: event.model_dump(mode="json", by_alias=True)}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_event(data: bytes) -> IssueEvent:
    """Parse canonical JSON bytes back into an event.

    Raises:
        CorruptError: If the bytes are not UTF-8 JSON, the object does not have
            exactly one key, the key names no known variant, or the fields
            fail validation
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        msg = f"Event payload is not valid JSON: {e}"
        raise CorruptError(msg) from e

    if not isinstance(document, dict) or len(document) != 1:
        msg = "Event payload must be an object with exactly one variant key"
        raise CorruptError(msg)

    ((variant, fields),) = document.items()
    event_type = EVENT_TYPES.get(variant)
    if event_type is None:
        msg = f"Unknown event variant: {variant!r}"
        raise CorruptError(msg)

    try:
        return event_type.model_validate(fields)
    except ValidationError as e:
        msg = f"Invalid {variant} event: {e}"
        raise CorruptError(msg) from e


def summarize_event(event: IssueEvent) -> str:
    """Build the one-line commit message for an event.

    Informational only; nothing is ever parsed back out of it.
    """
    match event:
        case Created(title=title):
            detail = title
        case StatusChanged(from_status=from_status, to_status=to_status):
            detail = f"{from_status} → {to_status}"
        case CommentAdded(author=author):
            detail = f"comment by {author.name}"
        case LabelAdded(label=label) | LabelRemoved(label=label):
            detail = label
        case TitleChanged(new_title=new_title):
            detail = new_title
        case AssigneeChanged(assignee=None):
            detail = "unassigned"
        case AssigneeChanged(assignee=Identity(name=name)):
            detail = name
        case DescriptionChanged():
            return event.variant
        case PriorityChanged(old_priority=old_priority, new_priority=new_priority):
            detail = f"{old_priority} → {new_priority}"
        case CreatedByChanged(new_created_by=new_created_by):
            detail = new_created_by.email
    # Commit messages are a single line
    if detail:
        detail = detail.splitlines()[0]
    return f"{event.variant}: {detail}"
