"""Pydantic schemas for notifications and push subscriptions."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from proposal_api.db.enums import PushTransport


class NotificationRead(BaseModel):
    """Notification response."""
    id: UUID
    type: str
    title: str
    message: str
    proposal_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Paginated notification list."""
    items: list[NotificationRead]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Unread count only (for polling)."""
    count: int


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionCreate(BaseModel):
    """
    Register a device.

    Browsers send the PushSubscription JSON (`endpoint` + `keys`); mobile
    clients send their device or relay token as `endpoint`.
    """
    endpoint: str = Field(..., min_length=1, max_length=4096)
    transport: PushTransport | None = None
    keys: PushSubscriptionKeys | None = None
    user_agent: str | None = Field(None, max_length=255)


class PushSubscriptionRead(BaseModel):
    id: UUID
    endpoint: str
    transport: PushTransport
    user_agent: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SendPushRequest(BaseModel):
    """Internal send-push request (title/body/url payload)."""
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1, max_length=2000)
    url: str | None = None
