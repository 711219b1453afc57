"""Tests for the issue domain types."""

import pytest
from pydantic import ValidationError

from git_issue.issue import Identity, IssueStatus, Priority


def test_identity_str_is_git_style() -> None:
    """Test that an identity renders like a git author line."""
    identity = Identity(name="Alice Example", email="alice@example.com")

    assert str(identity) == "Alice Example <alice@example.com>"


def test_identity_is_frozen() -> None:
    identity = Identity(name="Alice", email="alice@example.com")

    with pytest.raises(ValidationError):
        identity.name = "Mallory"  # type: ignore[misc]


def test_identities_compare_by_value() -> None:
    assert Identity(name="A", email="a@x") == Identity(name="A", email="a@x")
    assert Identity(name="A", email="a@x") != Identity(name="A", email="b@x")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("todo", IssueStatus.TODO),
        ("TODO", IssueStatus.TODO),
        ("in-progress", IssueStatus.IN_PROGRESS),
        ("inprogress", IssueStatus.IN_PROGRESS),
        (" Done ", IssueStatus.DONE),
    ],
)
def test_status_parse_accepts_user_spellings(text: str, expected: IssueStatus) -> None:
    assert IssueStatus.parse(text) == expected


def test_status_parse_rejects_unknown_text() -> None:
    with pytest.raises(ValueError, match="Invalid status: blocked"):
        IssueStatus.parse("blocked")


def test_status_display_and_serialized_names_differ() -> None:
    """Test that display text is kebab-case while the stored value is the variant name."""
    assert str(IssueStatus.IN_PROGRESS) == "in-progress"
    assert IssueStatus.IN_PROGRESS.value == "InProgress"


def test_priority_levels_follow_urgency() -> None:
    assert [p.level for p in Priority] == [0, 1, 2, 3, 4]
    assert Priority.from_level(1) == Priority.URGENT
    assert Priority.from_level(5) is None


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("high", Priority.HIGH),
        ("Low", Priority.LOW),
        ("0", Priority.NONE),
        ("3", Priority.MEDIUM),
    ],
)
def test_priority_parse_accepts_names_and_levels(text: str, expected: Priority) -> None:
    assert Priority.parse(text) == expected


def test_priority_parse_rejects_unknown_text() -> None:
    with pytest.raises(ValueError, match="Invalid priority 'critical'"):
        Priority.parse("critical")
