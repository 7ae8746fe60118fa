"""SQLAlchemy ORM models."""

from proposal_api.db.models.auth import Profile
from proposal_api.db.models.notifications import Notification, PushSubscription
from proposal_api.db.models.proposals import FollowUpLog, Proposal

__all__ = [
    "FollowUpLog",
    "Notification",
    "Profile",
    "Proposal",
    "PushSubscription",
]
