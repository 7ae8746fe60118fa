"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron (Render/Railway/GH Actions).
"""

import logging

from fastapi import APIRouter, Header, HTTPException

from proposal_api.core.async_utils import run_async
from proposal_api.core.config import settings
from proposal_api.core.security import verify_secret
from proposal_api.db.session import SessionLocal
from proposal_api.schemas.follow_up import DispatchResultRead
from proposal_api.schemas.notification import SendPushRequest
from proposal_api.services import follow_up_sweep_service
from proposal_api.services.push_dispatcher import PushDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/scheduled", tags=["internal"])


def verify_internal_secret(x_internal_secret: str | None):
    """Verify the internal secret header."""
    if not settings.INTERNAL_SECRET:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if not verify_secret(x_internal_secret, settings.INTERNAL_SECRET):
        raise HTTPException(status_code=403, detail="Invalid internal secret")


@router.post("/follow-up-sweep")
def follow_up_sweep(x_internal_secret: str | None = Header(None)):
    """
    Daily sweep for missed follow-ups.

    Clears overdue schedules, increments missed counts, logs each miss and
    notifies representatives plus an admin summary.
    """
    verify_internal_secret(x_internal_secret)
    with SessionLocal() as db:
        return follow_up_sweep_service.process_missed_follow_ups(db)


@router.post("/stale-proposal-reminders")
def stale_proposal_reminders(x_internal_secret: str | None = Header(None)):
    """Remind representatives about active proposals with no recent activity."""
    verify_internal_secret(x_internal_secret)
    with SessionLocal() as db:
        return follow_up_sweep_service.process_stale_proposal_reminders(db)


@router.post("/upcoming-follow-up-reminders")
def upcoming_follow_up_reminders(x_internal_secret: str | None = Header(None)):
    """Remind representatives of follow-ups due tomorrow."""
    verify_internal_secret(x_internal_secret)
    with SessionLocal() as db:
        return follow_up_sweep_service.process_upcoming_follow_up_reminders(db)


@router.post("/send-push", response_model=DispatchResultRead)
def send_push(data: SendPushRequest, x_internal_secret: str | None = Header(None)):
    """
    Push a title/body/url message to every device of one user.

    Does not create an in-app notification.
    """
    verify_internal_secret(x_internal_secret)
    with SessionLocal() as db:
        outcome = run_async(
            PushDispatcher().dispatch(
                db,
                data.user_id,
                data.title,
                data.body,
                data={"url": data.url} if data.url else None,
            )
        )
    return DispatchResultRead.model_validate(outcome.as_dict())
