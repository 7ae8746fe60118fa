"""Push subscription registration and cleanup."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from proposal_api.db.enums import PushTransport
from proposal_api.db.models import PushSubscription

logger = logging.getLogger(__name__)

RELAY_TOKEN_PREFIXES = ("ExponentPushToken[", "ExpoPushToken[")


def infer_transport(endpoint: str, p256dh: str | None = None, auth: str | None = None) -> PushTransport:
    """
    Decide the transport for a client that did not send one.

    Runs once at registration; the result is stored on the row.
    """
    if p256dh and auth:
        return PushTransport.WEB_PUSH
    if endpoint.startswith(RELAY_TOKEN_PREFIXES):
        return PushTransport.RELAY_PUSH
    return PushTransport.NATIVE_PUSH


def list_subscriptions(db: Session, user_id: UUID) -> list[PushSubscription]:
    return (
        db.query(PushSubscription)
        .filter(PushSubscription.user_id == user_id)
        .order_by(PushSubscription.created_at)
        .all()
    )


def register_subscription(
    db: Session,
    user_id: UUID,
    endpoint: str,
    transport: PushTransport | None = None,
    p256dh: str | None = None,
    auth: str | None = None,
    user_agent: str | None = None,
) -> PushSubscription:
    """
    Register a device endpoint for a user.

    Idempotent on (user_id, endpoint): re-registering refreshes keys and
    returns the existing row.

    Raises:
        ValueError: web_push without p256dh/auth keys
    """
    resolved = transport or infer_transport(endpoint, p256dh, auth)
    if resolved == PushTransport.WEB_PUSH and not (p256dh and auth):
        raise ValueError("Web push subscriptions require p256dh and auth keys")

    existing = db.query(PushSubscription).filter(
        PushSubscription.user_id == user_id,
        PushSubscription.endpoint == endpoint,
    ).first()

    if existing:
        existing.transport = resolved.value
        if p256dh and auth:
            existing.p256dh = p256dh
            existing.auth = auth
            existing.keys = {"p256dh": p256dh, "auth": auth}
        if user_agent:
            existing.user_agent = user_agent
        db.commit()
        db.refresh(existing)
        return existing

    subscription = PushSubscription(
        user_id=user_id,
        endpoint=endpoint,
        transport=resolved.value,
        p256dh=p256dh,
        auth=auth,
        keys={"p256dh": p256dh, "auth": auth} if p256dh and auth else None,
        user_agent=user_agent,
    )
    db.add(subscription)
    try:
        db.commit()
    except IntegrityError:
        # Concurrent registration of the same endpoint won the insert
        db.rollback()
        return db.query(PushSubscription).filter(
            PushSubscription.user_id == user_id,
            PushSubscription.endpoint == endpoint,
        ).one()
    db.refresh(subscription)
    logger.info("Registered %s push subscription %s", resolved.value, subscription.id)
    return subscription


def unregister_subscription(db: Session, subscription_id: UUID, user_id: UUID) -> bool:
    """Delete a user's own subscription. Returns False when not found."""
    deleted = db.query(PushSubscription).filter(
        PushSubscription.id == subscription_id,
        PushSubscription.user_id == user_id,
    ).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def delete_subscriptions(db: Session, subscription_ids: list[UUID]) -> int:
    """Remove subscriptions whose endpoints the transport reported as gone."""
    if not subscription_ids:
        return 0
    deleted = db.query(PushSubscription).filter(
        PushSubscription.id.in_(subscription_ids)
    ).delete(synchronize_session=False)
    db.commit()
    return deleted
