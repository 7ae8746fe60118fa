"""
Follow-up scheduling service.

Schedule and complete operations for a single proposal, history reads and
the manual "send reminder now" trigger. Each write updates the proposal and
appends a FollowUpLog row in the same commit. Writes are last-write-wins;
store errors propagate and the caller re-invokes the whole operation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from proposal_api.core.config import settings
from proposal_api.core.structured_logging import build_log_context
from proposal_api.db.base import today_utc, utcnow
from proposal_api.db.enums import FollowUpAction, NotificationType
from proposal_api.db.models import FollowUpLog, Notification, Proposal
from proposal_api.services import notification_service
from proposal_api.services.follow_up_status import (
    FollowUpBadge,
    FollowUpState,
    classify,
    derive_state,
)

logger = logging.getLogger(__name__)


class FollowUpNotFoundError(LookupError):
    """Proposal does not exist."""


class FollowUpValidationError(ValueError):
    """Rejected before any write was attempted."""


class FollowUpReminderError(RuntimeError):
    """Manual reminder could not be created; message carries the raw reason."""


@dataclass
class FollowUpView:
    proposal: Proposal
    state: FollowUpState
    badge: FollowUpBadge


def get_proposal(db: Session, proposal_id: UUID) -> Proposal:
    proposal = db.query(Proposal).filter(Proposal.id == proposal_id).first()
    if not proposal:
        raise FollowUpNotFoundError(f"Proposal {proposal_id} not found")
    return proposal


def get_follow_up(db: Session, proposal_id: UUID, today: date | None = None) -> FollowUpView:
    """Current follow-up fields with derived state and badge."""
    proposal = get_proposal(db, proposal_id)
    today = today or today_utc()
    return FollowUpView(
        proposal=proposal,
        state=derive_state(proposal.next_follow_up_date, proposal.missed_follow_up_count, today),
        badge=classify(
            proposal.next_follow_up_date,
            proposal.missed_follow_up_count,
            today,
            soon_days=settings.FOLLOW_UP_SOON_DAYS,
        ),
    )


def list_history(db: Session, proposal_id: UUID) -> list[FollowUpLog]:
    """Follow-up log entries for a proposal, oldest first."""
    get_proposal(db, proposal_id)
    return (
        db.query(FollowUpLog)
        .filter(FollowUpLog.proposal_id == proposal_id)
        .order_by(FollowUpLog.created_at, FollowUpLog.id)
        .all()
    )


def _log_entry(
    proposal: Proposal,
    action: FollowUpAction,
    scheduled_date: date,
    notes: str | None,
    completed_at: datetime | None = None,
) -> FollowUpLog:
    return FollowUpLog(
        proposal_id=proposal.id,
        representative_id=proposal.representative_id,
        action_type=action.value,
        scheduled_date=scheduled_date,
        completed_at=completed_at,
        notes=notes,
    )


def schedule(
    db: Session,
    proposal_id: UUID,
    follow_up_date: date,
    notes: str | None = None,
    today: date | None = None,
) -> Proposal:
    """
    Set the next follow-up date and log it.

    Leaves missed_follow_up_count untouched.

    Raises:
        FollowUpValidationError: date before today
        FollowUpNotFoundError: unknown proposal
    """
    today = today or today_utc()
    if follow_up_date < today:
        raise FollowUpValidationError("Follow-up date must be today or later")

    proposal = get_proposal(db, proposal_id)
    proposal.next_follow_up_date = follow_up_date
    db.add(
        _log_entry(
            proposal,
            FollowUpAction.SCHEDULED,
            follow_up_date,
            notes or f"Follow-up scheduled for {proposal.customer_name}",
        )
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(proposal)

    logger.info(
        "Follow-up scheduled for %s",
        follow_up_date.isoformat(),
        extra=build_log_context(proposal_id=str(proposal.id)),
    )
    return proposal


def complete(
    db: Session,
    proposal_id: UUID,
    notes: str | None = None,
    now: datetime | None = None,
) -> Proposal:
    """
    Mark the current follow-up as done.

    Clears the schedule and records today as the last contact. When no
    schedule exists the log entry falls back to today as scheduled_date.
    """
    now = now or utcnow()
    proposal = get_proposal(db, proposal_id)

    scheduled_date = proposal.next_follow_up_date or now.date()
    proposal.next_follow_up_date = None
    proposal.last_contact_date = now.date()
    db.add(
        _log_entry(
            proposal,
            FollowUpAction.COMPLETED,
            scheduled_date,
            notes or "Follow-up completed",
            completed_at=now,
        )
    )
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(proposal)

    logger.info(
        "Follow-up completed",
        extra=build_log_context(proposal_id=str(proposal.id)),
    )
    return proposal


def create_manual_reminder(db: Session, proposal_id: UUID) -> Notification:
    """
    Persist a reminder for the proposal's representative right now.

    No dedupe: an explicit user action always produces a notification.

    Raises:
        FollowUpReminderError: no representative, or the insert failed
    """
    proposal = get_proposal(db, proposal_id)
    if not proposal.representative_id:
        raise FollowUpReminderError(f"Proposal {proposal.proposal_no} has no representative")

    if proposal.next_follow_up_date:
        message = (
            f"Reminder: proposal {proposal.proposal_no} for {proposal.customer_name} "
            f"has a follow-up on {proposal.next_follow_up_date.isoformat()}."
        )
    else:
        message = (
            f"Reminder: proposal {proposal.proposal_no} for {proposal.customer_name} "
            "needs a follow-up."
        )

    try:
        notification = notification_service.create_notification(
            db=db,
            user_id=proposal.representative_id,
            type=NotificationType.REMINDER,
            title=f"Follow-up reminder: {proposal.proposal_no}",
            message=message,
            proposal_id=proposal.id,
        )
    except Exception as exc:
        db.rollback()
        logger.exception(
            "Manual reminder insert failed",
            extra=build_log_context(proposal_id=str(proposal.id)),
        )
        raise FollowUpReminderError(f"{type(exc).__name__}: {exc}") from exc
    return notification
