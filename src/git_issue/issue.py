"""Issue domain types.

`Issue` is the derived aggregate returned by replay. It is never persisted;
only the events that produce it are.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

IssueId = int


class Identity(BaseModel):
    """Author attribution carried on every event. Descriptive only, never validated."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    email: str

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"


class IssueStatus(Enum):
    """Kanban status of an issue.

    Values are the serialized names used inside event JSON.
    """

    TODO = "Todo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"

    def __str__(self) -> str:
        return _STATUS_DISPLAY[self]

    @classmethod
    def parse(cls, text: str) -> "IssueStatus":
        """Parse user-facing status text (todo, in-progress, inprogress, done).

        Raises:
            ValueError: If the text names no status
        """
        key = text.strip().lower()
        for status, aliases in _STATUS_ALIASES.items():
            if key in aliases:
                return status
        msg = f"Invalid status: {text}"
        raise ValueError(msg)


_STATUS_DISPLAY = {
    IssueStatus.TODO: "todo",
    IssueStatus.IN_PROGRESS: "in-progress",
    IssueStatus.DONE: "done",
}

_STATUS_ALIASES = {
    IssueStatus.TODO: ("todo",),
    IssueStatus.IN_PROGRESS: ("in-progress", "inprogress"),
    IssueStatus.DONE: ("done",),
}


class Priority(Enum):
    """Issue priority. Lower level means more urgent, except NONE (0) which means unset."""

    NONE = "None"
    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def level(self) -> int:
        return _PRIORITY_LEVELS.index(self)

    def __str__(self) -> str:
        return self.value.lower()

    @classmethod
    def from_level(cls, level: int) -> "Priority | None":
        if 0 <= level < len(_PRIORITY_LEVELS):
            return _PRIORITY_LEVELS[level]
        return None

    @classmethod
    def parse(cls, text: str) -> "Priority":
        """Parse a priority name or its numeric level (0-4).

        Raises:
            ValueError: If the text names no priority
        """
        key = text.strip().lower()
        for priority in _PRIORITY_LEVELS:
            if key in (str(priority), str(priority.level)):
                return priority
        msg = (
            f"Invalid priority '{text}'. "
            "Valid options: none, urgent, high, medium, low (or 0-4)"
        )
        raise ValueError(msg)


_PRIORITY_LEVELS = (
    Priority.NONE,
    Priority.URGENT,
    Priority.HIGH,
    Priority.MEDIUM,
    Priority.LOW,
)


@dataclass(frozen=True)
class Comment:
    """A comment on an issue.

    Attributes:
        id: "{issue_id}-{sequence}", sequence 1-based in replay order
        content: Comment body
        author: Who wrote it
        created_at: Timestamp of the CommentAdded event
    """

    id: str
    content: str
    author: Identity
    created_at: datetime


@dataclass(frozen=True)
class Issue:
    """Current state of an issue, rebuilt by replaying its event chain.

    Attributes:
        labels: Duplicate-free, in the order labels were first added
        comments: In replay order
        assignee: None when unassigned
    """

    id: IssueId
    title: str
    description: str
    status: IssueStatus
    priority: Priority
    labels: tuple[str, ...]
    comments: tuple[Comment, ...]
    assignee: Identity | None
    created_by: Identity
    created_at: datetime
    updated_at: datetime
