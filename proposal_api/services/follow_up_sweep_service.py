"""
Service layer for scheduled follow-up sweeps.

Entry points for the daily cron:
- process_missed_follow_ups: overdue schedules become missed follow-ups
- process_stale_proposal_reminders: active proposals with no activity
- process_upcoming_follow_up_reminders: follow-ups due tomorrow

Per-proposal failures are recorded and skipped; a failure to load the
eligible set propagates and fails the run. Notification delivery is never
transactional with proposal state.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from proposal_api.core.async_utils import run_async
from proposal_api.core.config import settings
from proposal_api.core.structured_logging import build_log_context
from proposal_api.db.base import today_utc, utcnow
from proposal_api.db.enums import (
    ACTIVE_PROPOSAL_STATUSES,
    UPCOMING_REMINDER_STATUSES,
    FollowUpAction,
    NotificationType,
)
from proposal_api.db.models import FollowUpLog, Notification, Proposal
from proposal_api.services import notification_service
from proposal_api.services.push_dispatcher import PushDispatcher

logger = logging.getLogger(__name__)

ACTIVE_STATUS_VALUES = sorted(s.value for s in ACTIVE_PROPOSAL_STATUSES)
UPCOMING_STATUS_VALUES = sorted(s.value for s in UPCOMING_REMINDER_STATUSES)


def _push_notifications(
    db: Session,
    notifications: list[Notification],
    dispatcher: PushDispatcher | None,
) -> int:
    """Fan persisted notifications out to devices. Returns delivery attempts."""
    if not notifications:
        return 0
    dispatcher = dispatcher or PushDispatcher()
    try:
        outcomes = run_async(dispatcher.dispatch_notifications(db, notifications))
    except Exception:
        logger.exception("Push fan-out failed for %s notifications", len(notifications))
        return 0
    return sum(len(outcome.results) for outcome in outcomes)


# =============================================================================
# Missed follow-ups
# =============================================================================


def get_overdue_proposals(db: Session, today: date) -> list[Proposal]:
    """Active proposals whose follow-up date is before today."""
    return (
        db.query(Proposal)
        .filter(
            Proposal.next_follow_up_date.is_not(None),
            Proposal.next_follow_up_date < today,
            Proposal.status.in_(ACTIVE_STATUS_VALUES),
        )
        .order_by(Proposal.next_follow_up_date, Proposal.id)
        .all()
    )


def mark_follow_up_missed(db: Session, proposal: Proposal) -> int | None:
    """
    Log the miss, increment the counter and clear the schedule in one commit.

    The update only applies while the schedule is unchanged, so an
    overlapping run or a concurrent reschedule cannot be counted twice.
    Returns the new missed count, or None when the row had already moved on.
    """
    prior_date = proposal.next_follow_up_date
    db.add(
        FollowUpLog(
            proposal_id=proposal.id,
            representative_id=proposal.representative_id,
            action_type=FollowUpAction.MISSED.value,
            scheduled_date=prior_date,
            notes=f"Automatic: follow-up scheduled for {prior_date.isoformat()} was missed",
        )
    )
    db.flush()

    result = db.execute(
        update(Proposal)
        .where(
            Proposal.id == proposal.id,
            Proposal.next_follow_up_date == prior_date,
        )
        .values(
            missed_follow_up_count=Proposal.missed_follow_up_count + 1,
            next_follow_up_date=None,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        return None

    db.commit()
    db.refresh(proposal)
    return proposal.missed_follow_up_count


def process_missed_follow_ups(
    db: Session,
    today: date | None = None,
    dispatcher: PushDispatcher | None = None,
) -> dict:
    """
    Reconcile overdue follow-ups.

    Entry point for the daily follow-up sweep. Running it twice on the same
    day is a no-op the second time: the first run clears every date it
    processes.
    """
    today = today or today_utc()
    logger.info("Missed follow-up sweep running for %s", today.isoformat())

    overdue = get_overdue_proposals(db, today)
    logger.info("Found %s overdue follow-ups", len(overdue))

    # Snapshot before commits/rollbacks expire the loaded rows
    candidates = [
        (p, p.id, p.proposal_no, p.customer_name, p.representative_id, p.next_follow_up_date)
        for p in overdue
    ]

    processed_ids: list[UUID] = []
    pending: list[Notification] = []
    errors: list[dict] = []

    for proposal, proposal_id, proposal_no, customer_name, representative_id, prior_date in candidates:
        log_context = build_log_context(proposal_id=str(proposal_id), job="missed_follow_ups")
        try:
            missed_count = mark_follow_up_missed(db, proposal)
        except Exception as e:
            db.rollback()
            logger.exception("Failed to mark follow-up missed", extra=log_context)
            errors.append({"proposal_id": str(proposal_id), "error": str(e)})
            continue

        if missed_count is None:
            logger.info("Follow-up already reconciled elsewhere, skipping", extra=log_context)
            continue

        processed_ids.append(proposal_id)

        if representative_id:
            pending.append(
                notification_service.build_notification(
                    user_id=representative_id,
                    type=NotificationType.REMINDER,
                    title="Missed follow-up",
                    message=(
                        f"The follow-up for proposal {proposal_no} ({customer_name}) was missed. "
                        f"Missed {missed_count} time(s) in total."
                    ),
                    proposal_id=proposal_id,
                    dedupe_key=f"missed_follow_up:{proposal_id}:{prior_date.isoformat()}",
                )
            )

    created: list[Notification] = []
    try:
        created = notification_service.create_notifications(db, pending)
    except Exception as e:
        # Proposal updates above stay committed
        logger.exception("Missed follow-up notification insert failed")
        errors.append({"stage": "notifications", "error": str(e)})

    if processed_ids:
        try:
            created += notification_service.notify_admins(
                db,
                title="Daily follow-up report",
                message=(
                    f"{len(processed_ids)} follow-up(s) were missed today. "
                    "See the reports for details."
                ),
            )
        except Exception as e:
            logger.exception("Admin summary notification failed")
            errors.append({"stage": "admin_summary", "error": str(e)})

    push_attempts = _push_notifications(db, created, dispatcher)

    result = {
        "date": today.isoformat(),
        "processed_count": len(processed_ids),
        "processed_ids": [str(pid) for pid in processed_ids],
        "notifications_created": len(created),
        "push_attempts": push_attempts,
        "errors": errors,
    }
    logger.info(
        "Missed follow-up sweep complete (processed=%s notifications=%s errors=%s)",
        result["processed_count"],
        result["notifications_created"],
        len(errors),
    )
    return result


# =============================================================================
# Stale proposals
# =============================================================================


def get_stale_proposals(db: Session, threshold: datetime) -> list[Proposal]:
    """Active proposals older than threshold and not reminded since threshold."""
    return (
        db.query(Proposal)
        .filter(
            Proposal.status.in_(ACTIVE_STATUS_VALUES),
            Proposal.created_at < threshold,
            or_(
                Proposal.last_reminder_sent_at.is_(None),
                Proposal.last_reminder_sent_at < threshold,
            ),
        )
        .order_by(Proposal.created_at, Proposal.id)
        .all()
    )


def process_stale_proposal_reminders(
    db: Session,
    now: datetime | None = None,
    dispatcher: PushDispatcher | None = None,
) -> dict:
    """
    Remind representatives about proposals with no activity.

    Independent of the missed follow-up path: no follow-up fields or log
    entries are touched, only last_reminder_sent_at.
    """
    now = now or utcnow()
    stale_days = settings.STALE_PROPOSAL_DAYS
    threshold = now - timedelta(days=stale_days)

    stale = get_stale_proposals(db, threshold)
    logger.info("Found %s stale proposals (threshold=%s days)", len(stale), stale_days)

    candidates = [
        (p, p.id, p.proposal_no, p.customer_name, p.representative_id) for p in stale
    ]

    created: list[Notification] = []
    errors: list[dict] = []

    for proposal, proposal_id, proposal_no, customer_name, representative_id in candidates:
        log_context = build_log_context(proposal_id=str(proposal_id), job="stale_proposals")
        if not representative_id:
            logger.info("Stale proposal has no representative, skipping", extra=log_context)
            continue

        notification = notification_service.build_notification(
            user_id=representative_id,
            type=NotificationType.REMINDER,
            title=f"Reminder: {proposal_no}",
            message=(
                f"No action has been taken on the proposal for {customer_name} "
                f"in {stale_days} days. Please follow up."
            ),
            proposal_id=proposal_id,
            dedupe_key=f"stale_proposal:{proposal_id}:{now.date().isoformat()}",
        )
        try:
            db.add(notification)
            proposal.last_reminder_sent_at = now
            db.commit()
            db.refresh(notification)
        except Exception as e:
            db.rollback()
            logger.exception("Failed to record stale proposal reminder", extra=log_context)
            errors.append({"proposal_id": str(proposal_id), "error": str(e)})
            continue
        created.append(notification)

    notification_service.publish_inserted(created)
    push_attempts = _push_notifications(db, created, dispatcher)

    logger.info(
        "Stale proposal reminders complete (processed=%s errors=%s)", len(created), len(errors)
    )
    return {
        "processed_count": len(created),
        "notifications_created": len(created),
        "push_attempts": push_attempts,
        "errors": errors,
    }


# =============================================================================
# Upcoming follow-ups
# =============================================================================


def process_upcoming_follow_up_reminders(
    db: Session,
    today: date | None = None,
    dispatcher: PushDispatcher | None = None,
) -> dict:
    """Remind representatives of follow-ups due tomorrow (deduped per proposal/day)."""
    today = today or today_utc()
    tomorrow = today + timedelta(days=1)

    proposals = (
        db.query(Proposal)
        .filter(
            Proposal.status.in_(UPCOMING_STATUS_VALUES),
            Proposal.next_follow_up_date == tomorrow,
            Proposal.representative_id.is_not(None),
        )
        .order_by(Proposal.id)
        .all()
    )
    logger.info("Found %s follow-ups due %s", len(proposals), tomorrow.isoformat())

    candidates = [
        (p.id, p.proposal_no, p.customer_name, p.representative_id) for p in proposals
    ]

    created: list[Notification] = []
    errors: list[dict] = []

    for proposal_id, proposal_no, customer_name, representative_id in candidates:
        try:
            notification = notification_service.create_notification(
                db=db,
                user_id=representative_id,
                type=NotificationType.REMINDER,
                title="Follow-up tomorrow",
                message=f"Proposal {proposal_no} ({customer_name}) has a follow-up due tomorrow.",
                proposal_id=proposal_id,
                dedupe_key=f"upcoming_follow_up:{proposal_id}:{tomorrow.isoformat()}",
            )
        except Exception as e:
            db.rollback()
            logger.exception(
                "Failed to create upcoming follow-up reminder",
                extra=build_log_context(proposal_id=str(proposal_id), job="upcoming_follow_ups"),
            )
            errors.append({"proposal_id": str(proposal_id), "error": str(e)})
            continue
        if notification:
            created.append(notification)

    push_attempts = _push_notifications(db, created, dispatcher)

    return {
        "date": today.isoformat(),
        "processed_count": len(candidates),
        "notifications_created": len(created),
        "push_attempts": push_attempts,
        "errors": errors,
    }
