"""Pydantic schemas for proposal follow-ups."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from proposal_api.db.enums import FollowUpAction, NotificationType
from proposal_api.services.follow_up_status import BadgeTier, FollowUpStateKind


class FollowUpScheduleRequest(BaseModel):
    """Request to schedule (or reschedule) the next follow-up."""
    follow_up_date: date
    notes: str | None = Field(None, max_length=2000)


class FollowUpCompleteRequest(BaseModel):
    """Request to mark the current follow-up as done."""
    notes: str | None = Field(None, max_length=2000)


class FollowUpBadgeRead(BaseModel):
    tier: BadgeTier
    label: str
    days_until: int | None = None


class FollowUpRead(BaseModel):
    """Current follow-up state of a proposal."""
    proposal_id: UUID
    proposal_no: str
    customer_name: str
    status: str
    representative_id: UUID | None
    next_follow_up_date: date | None
    missed_follow_up_count: int
    last_contact_date: date | None
    state: FollowUpStateKind
    badge: FollowUpBadgeRead


class FollowUpLogRead(BaseModel):
    """Follow-up history entry."""
    id: UUID
    proposal_id: UUID
    representative_id: UUID | None
    action_type: FollowUpAction
    scheduled_date: date
    completed_at: datetime | None
    notes: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class PushResultRead(BaseModel):
    success: bool
    subscription_id: UUID
    transport: str
    error: str | None = None
    permanent: bool = False


class DispatchResultRead(BaseModel):
    """Per-subscription delivery outcome of a single push fan-out."""
    results: list[PushResultRead]
    success_count: int
    failure_count: int
    removed_count: int


class FollowUpReminderResponse(BaseModel):
    notification_id: UUID
    notification_type: NotificationType
    push: DispatchResultRead
