"""
Push subscriptions Router - /me/push-subscriptions endpoints.

Devices register here once; the transport is fixed at registration.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from proposal_api.core.config import settings
from proposal_api.core.deps import get_current_session, get_db, require_csrf_header
from proposal_api.schemas.auth import UserSession
from proposal_api.schemas.notification import PushSubscriptionCreate, PushSubscriptionRead
from proposal_api.services import push_subscription_service


router = APIRouter(prefix="/me", tags=["push"])


@router.get("/push/vapid-public-key")
def get_vapid_public_key():
    """Public VAPID key browsers need to create a subscription."""
    if not settings.web_push_enabled:
        raise HTTPException(status_code=404, detail="Web push not configured")
    return {"public_key": settings.VAPID_PUBLIC_KEY}


@router.get("/push-subscriptions", response_model=list[PushSubscriptionRead])
def list_push_subscriptions(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    subscriptions = push_subscription_service.list_subscriptions(db, session.user_id)
    return [PushSubscriptionRead.model_validate(s) for s in subscriptions]


@router.post(
    "/push-subscriptions",
    response_model=PushSubscriptionRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def register_push_subscription(
    data: PushSubscriptionCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Register (or refresh) a device endpoint for the current user."""
    try:
        subscription = push_subscription_service.register_subscription(
            db,
            user_id=session.user_id,
            endpoint=data.endpoint,
            transport=data.transport,
            p256dh=data.keys.p256dh if data.keys else None,
            auth=data.keys.auth if data.keys else None,
            user_agent=data.user_agent,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return PushSubscriptionRead.model_validate(subscription)


@router.delete(
    "/push-subscriptions/{subscription_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_push_subscription(
    subscription_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    if not push_subscription_service.unregister_subscription(db, subscription_id, session.user_id):
        raise HTTPException(status_code=404, detail="Subscription not found")
