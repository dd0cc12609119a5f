"""Core data models for Reviewflow."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ReviewState(Enum):
    """State of a submitted pull request review."""

    APPROVED = "APPROVED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"
    COMMENTED = "COMMENTED"
    DISMISSED = "DISMISSED"
    PENDING = "PENDING"

    @classmethod
    def parse(cls, value: str | None) -> "ReviewState":
        """Parse GitHub review states (REST uses upper-case, webhooks lower-case)."""
        normalized = str(value or "").strip().upper()
        if normalized == "REQUEST_CHANGES":
            normalized = "CHANGES_REQUESTED"
        try:
            return cls(normalized)
        except ValueError:
            return cls.COMMENTED


class StatusState(Enum):
    """Commit status / check-run conclusion published for a pull request."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class Label:
    """A concrete repository label."""

    id: int | None
    name: str
    color: str
    description: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Label":
        return cls(
            id=data.get("id"),
            name=data.get("name", ""),
            color=str(data.get("color", "")).lower(),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class Review:
    """One reviewer's current review on a pull request."""

    login: str
    user_id: int | None
    group: str | None
    state: ReviewState


@dataclass
class ReviewSnapshot:
    """Open (non-dismissed) reviews on a pull request, one per reviewer.

    Built fresh for every event from the reviews listing; never cached.
    """

    reviews: list[Review] = field(default_factory=list)

    def for_group(self, group: str) -> list[Review]:
        return [review for review in self.reviews if review.group == group]

    def group_has_state(self, group: str, state: ReviewState) -> bool:
        return any(review.state == state for review in self.for_group(group))

    def has_changes_requested(self, group: str) -> bool:
        return self.group_has_state(group, ReviewState.CHANGES_REQUESTED)

    def has_approved(self, group: str) -> bool:
        return self.group_has_state(group, ReviewState.APPROVED)


@dataclass(frozen=True)
class LabelDelta:
    """Logical label keys to add to and remove from a pull request."""

    add: frozenset[str] = frozenset()
    remove: frozenset[str] = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.add and not self.remove


@dataclass(frozen=True)
class StatusResult:
    """Derived pass/fail state for the pull request status check."""

    state: StatusState
    description: str


@dataclass
class SlackMember:
    """A configured person resolved against the Slack workspace."""

    email: str
    user_id: str
    im_channel_id: str | None = None
