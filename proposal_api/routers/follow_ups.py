"""
Follow-ups Router - /proposals/{proposal_id}/follow-up endpoints.

Schedule, complete, history, and the manual "send reminder now" trigger.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from proposal_api.core.async_utils import run_async
from proposal_api.core.deps import (
    can_manage_follow_up,
    get_current_session,
    get_db,
    require_csrf_header,
)
from proposal_api.core.structured_logging import build_log_context
from proposal_api.db.models import Proposal
from proposal_api.schemas.auth import UserSession
from proposal_api.schemas.follow_up import (
    DispatchResultRead,
    FollowUpBadgeRead,
    FollowUpCompleteRequest,
    FollowUpLogRead,
    FollowUpRead,
    FollowUpReminderResponse,
    FollowUpScheduleRequest,
)
from proposal_api.services import follow_up_service
from proposal_api.services.follow_up_service import (
    FollowUpNotFoundError,
    FollowUpReminderError,
    FollowUpValidationError,
    FollowUpView,
)
from proposal_api.services.push_dispatcher import PushDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["follow-ups"])


def get_push_dispatcher() -> PushDispatcher:
    return PushDispatcher()


def _to_read(view: FollowUpView) -> FollowUpRead:
    proposal = view.proposal
    return FollowUpRead(
        proposal_id=proposal.id,
        proposal_no=proposal.proposal_no,
        customer_name=proposal.customer_name,
        status=proposal.status,
        representative_id=proposal.representative_id,
        next_follow_up_date=proposal.next_follow_up_date,
        missed_follow_up_count=proposal.missed_follow_up_count,
        last_contact_date=proposal.last_contact_date,
        state=view.state.kind,
        badge=FollowUpBadgeRead(
            tier=view.badge.tier,
            label=view.badge.label,
            days_until=view.badge.days_until,
        ),
    )


def _load_for_write(db: Session, proposal_id: UUID, session: UserSession) -> Proposal:
    try:
        proposal = follow_up_service.get_proposal(db, proposal_id)
    except FollowUpNotFoundError:
        raise HTTPException(status_code=404, detail="Proposal not found")
    if not can_manage_follow_up(session, proposal.representative_id):
        raise HTTPException(status_code=403, detail="Not allowed to manage this proposal")
    return proposal


@router.get("/{proposal_id}/follow-up", response_model=FollowUpRead)
def get_follow_up(
    proposal_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Current follow-up date, missed count, derived state and badge."""
    try:
        view = follow_up_service.get_follow_up(db, proposal_id)
    except FollowUpNotFoundError:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return _to_read(view)


@router.get("/{proposal_id}/follow-up/history", response_model=list[FollowUpLogRead])
def get_follow_up_history(
    proposal_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        entries = follow_up_service.list_history(db, proposal_id)
    except FollowUpNotFoundError:
        raise HTTPException(status_code=404, detail="Proposal not found")
    return [FollowUpLogRead.model_validate(entry) for entry in entries]


@router.post(
    "/{proposal_id}/follow-up",
    response_model=FollowUpRead,
    dependencies=[Depends(require_csrf_header)],
)
def schedule_follow_up(
    proposal_id: UUID,
    data: FollowUpScheduleRequest,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Schedule or reschedule the next follow-up."""
    _load_for_write(db, proposal_id, session)
    try:
        follow_up_service.schedule(db, proposal_id, data.follow_up_date, data.notes)
    except FollowUpValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return _to_read(follow_up_service.get_follow_up(db, proposal_id))


@router.post(
    "/{proposal_id}/follow-up/complete",
    response_model=FollowUpRead,
    dependencies=[Depends(require_csrf_header)],
)
def complete_follow_up(
    proposal_id: UUID,
    data: FollowUpCompleteRequest | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark the current follow-up as done."""
    _load_for_write(db, proposal_id, session)
    follow_up_service.complete(db, proposal_id, data.notes if data else None)
    return _to_read(follow_up_service.get_follow_up(db, proposal_id))


@router.post(
    "/{proposal_id}/follow-up/remind",
    response_model=FollowUpReminderResponse,
    dependencies=[Depends(require_csrf_header)],
)
def send_follow_up_reminder(
    proposal_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
    dispatcher: PushDispatcher = Depends(get_push_dispatcher),
):
    """
    Send a reminder to the representative right now.

    The in-app notification is persisted before push fan-out; push failures
    are reported per device in the response.
    """
    _load_for_write(db, proposal_id, session)
    try:
        notification = follow_up_service.create_manual_reminder(db, proposal_id)
    except FollowUpReminderError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        outcome = run_async(dispatcher.dispatch_notifications(db, [notification]))[0]
    except Exception as e:
        logger.exception(
            "Manual reminder push failed",
            extra=build_log_context(proposal_id=str(proposal_id), user_id=str(session.user_id)),
        )
        raise HTTPException(status_code=502, detail=f"{type(e).__name__}: {e}")

    return FollowUpReminderResponse(
        notification_id=notification.id,
        notification_type=notification.type,
        push=DispatchResultRead.model_validate(outcome.as_dict()),
    )
