"""Core review-flow components: contexts, label state machine, status checks."""

from reviewflow.core.config import LabelConfig, OrgConfig, OrgConfigLoader, ReviewLabels
from reviewflow.core.label_sync import LabelSynchronizer
from reviewflow.core.models import (
    Label,
    LabelDelta,
    Review,
    ReviewSnapshot,
    ReviewState,
    SlackMember,
    StatusResult,
    StatusState,
)
from reviewflow.core.reviewer_groups import ReviewerGroupIndex
from reviewflow.core.review_labels import LabelDeltaBuilder, ReviewLabelStateMachine, build_review_snapshot
from reviewflow.core.status_check import StatusPublisher, derive_status

__all__ = [
    "LabelConfig",
    "OrgConfig",
    "OrgConfigLoader",
    "ReviewLabels",
    "LabelSynchronizer",
    "Label",
    "LabelDelta",
    "Review",
    "ReviewSnapshot",
    "ReviewState",
    "SlackMember",
    "StatusResult",
    "StatusState",
    "ReviewerGroupIndex",
    "LabelDeltaBuilder",
    "ReviewLabelStateMachine",
    "build_review_snapshot",
    "StatusPublisher",
    "derive_status",
]
