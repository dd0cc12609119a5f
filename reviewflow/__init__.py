"""
Reviewflow - GitHub review labels, status checks and Slack notifications
driven by pull request webhooks.
"""

__version__ = "0.1.0"

from reviewflow.core.config import ConfigError, OrgConfig, OrgConfigLoader
from reviewflow.core.models import LabelDelta, ReviewSnapshot, ReviewState, StatusResult
from reviewflow.core.org_context import OrgContext, OrgContextCache
from reviewflow.core.repo_context import RepoContext, RepoContextCache
from reviewflow.core.review_labels import ReviewLabelStateMachine
from reviewflow.core.single_flight import SingleFlightCache
from reviewflow.core.status_check import derive_status

__all__ = [
    # Version
    "__version__",
    # Configuration
    "ConfigError",
    "OrgConfig",
    "OrgConfigLoader",
    # Models
    "LabelDelta",
    "ReviewSnapshot",
    "ReviewState",
    "StatusResult",
    # Contexts
    "OrgContext",
    "OrgContextCache",
    "RepoContext",
    "RepoContextCache",
    "SingleFlightCache",
    # Review flow
    "ReviewLabelStateMachine",
    "derive_status",
]
