"""Proposal and follow-up enums."""

from enum import Enum


class ProposalStatus(str, Enum):
    """Lifecycle status of a proposal."""

    DRAFT = "draft"
    SENT = "sent"
    REVISED = "revised"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Statuses still subject to follow-up tracking
ACTIVE_PROPOSAL_STATUSES = frozenset(
    {ProposalStatus.DRAFT, ProposalStatus.SENT, ProposalStatus.REVISED}
)

# Statuses checked by the "follow-up due tomorrow" reminder (drafts have not reached the customer)
UPCOMING_REMINDER_STATUSES = frozenset({ProposalStatus.SENT, ProposalStatus.REVISED})


class FollowUpAction(str, Enum):
    """Follow-up log action types."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    MISSED = "missed"
