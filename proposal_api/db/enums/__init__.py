"""Enum definitions for application constants."""

from proposal_api.db.enums.auth import ROLES_CAN_MANAGE_FOLLOW_UPS, Role
from proposal_api.db.enums.notifications import NotificationType, PushTransport
from proposal_api.db.enums.proposals import (
    ACTIVE_PROPOSAL_STATUSES,
    UPCOMING_REMINDER_STATUSES,
    FollowUpAction,
    ProposalStatus,
)

__all__ = [
    "ACTIVE_PROPOSAL_STATUSES",
    "FollowUpAction",
    "NotificationType",
    "ProposalStatus",
    "PushTransport",
    "ROLES_CAN_MANAGE_FOLLOW_UPS",
    "Role",
    "UPCOMING_REMINDER_STATUSES",
]
