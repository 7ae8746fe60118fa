"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications plus the admin summary trigger used by the
follow-up sweep. Push delivery lives in push_dispatcher; this module never
sends to devices.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from proposal_api.core.async_utils import run_async
from proposal_api.core.config import settings
from proposal_api.core.websocket import manager
from proposal_api.db.enums import NotificationType, Role
from proposal_api.db.models import Notification, Profile

logger = logging.getLogger(__name__)


# =============================================================================
# Realtime feed
# =============================================================================


def serialize_notification(notification: Notification) -> dict:
    return {
        "id": str(notification.id),
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "proposal_id": str(notification.proposal_id) if notification.proposal_id else None,
        "is_read": notification.is_read,
        "created_at": notification.created_at.isoformat() if notification.created_at else None,
    }


def publish_inserted(notifications: list[Notification]) -> None:
    """Publish newly inserted notifications to recipients' live connections."""
    for notification in notifications:
        if not manager.is_connected(notification.user_id):
            continue
        try:
            run_async(
                manager.send_to_user(
                    notification.user_id,
                    {"type": "notification", "data": serialize_notification(notification)},
                ),
                timeout=5,
            )
        except Exception:
            # Realtime is best-effort; clients reload the list on reconnect
            logger.warning(
                "Realtime publish failed for notification %s", notification.id, exc_info=True
            )


# =============================================================================
# Notification CRUD
# =============================================================================


def build_notification(
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    proposal_id: Optional[UUID] = None,
    dedupe_key: Optional[str] = None,
) -> Notification:
    return Notification(
        user_id=user_id,
        proposal_id=proposal_id,
        type=type.value,
        title=title,
        message=message,
        dedupe_key=dedupe_key,
        is_read=False,
    )


def is_duplicate(
    db: Session,
    user_id: UUID,
    dedupe_key: str,
    window_hours: int | None = None,
) -> bool:
    """Check for an existing notification with this dedupe key for the user."""
    query = db.query(Notification.id).filter(
        Notification.dedupe_key == dedupe_key,
        Notification.user_id == user_id,
    )
    if window_hours is not None:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=window_hours)
        query = query.filter(Notification.created_at > cutoff)
    return query.first() is not None


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    proposal_id: Optional[UUID] = None,
    dedupe_key: Optional[str] = None,
    dedupe_window_hours: int | None = None,
) -> Optional[Notification]:
    """
    Create a notification.

    Dedupes by dedupe_key + user_id within the window (default from settings).
    Returns None when a duplicate exists.
    """
    if dedupe_key:
        window = (
            settings.NOTIFICATION_DEDUPE_WINDOW_HOURS
            if dedupe_window_hours is None
            else dedupe_window_hours
        )
        if is_duplicate(db, user_id, dedupe_key, window):
            return None  # Already notified

    notification = build_notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        proposal_id=proposal_id,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    publish_inserted([notification])
    return notification


def create_notifications(db: Session, notifications: list[Notification]) -> list[Notification]:
    """
    Insert a batch of notifications in one commit.

    Raises on store errors after rolling back the batch; callers decide
    whether that is fatal.
    """
    if not notifications:
        return []
    try:
        db.add_all(notifications)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for notification in notifications:
        db.refresh(notification)
    publish_inserted(notifications)
    return notifications


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    notification_types: list[str] | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.is_read.is_(False))

    if notification_types:
        query = query.filter(Notification.type.in_(notification_types))

    return (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).count()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
) -> Optional[Notification]:
    """Mark a notification as read. The flag flips once; later calls are no-ops."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()

    if notification and not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    count = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.is_read.is_(False),
    ).update(
        {"is_read": True, "read_at": datetime.now(timezone.utc)},
        synchronize_session=False,
    )
    db.commit()
    return count


# =============================================================================
# Notification Triggers
# =============================================================================


def get_admin_ids(db: Session) -> list[UUID]:
    rows = db.query(Profile.id).filter(
        Profile.role == Role.ADMIN.value,
        Profile.is_active.is_(True),
    ).all()
    return [row[0] for row in rows]


def notify_admins(
    db: Session,
    title: str,
    message: str,
    type: NotificationType = NotificationType.SYSTEM,
) -> list[Notification]:
    """Send the same notification to every active admin."""
    notifications = [
        build_notification(user_id=admin_id, type=type, title=title, message=message)
        for admin_id in get_admin_ids(db)
    ]
    return create_notifications(db, notifications)
