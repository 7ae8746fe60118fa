"""
Follow-up state derivation and badge classification.

Follow-up lifecycle is not stored as an enum: it is derived from
`next_follow_up_date` and `missed_follow_up_count`. These helpers make the
derived state explicit and are pure (no store access), so list views and
the scheduling interface render the same urgency.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Union

from proposal_api.db.base import today_utc

SOON_WINDOW_DAYS = 3


class FollowUpStateKind(str, Enum):
    UNSCHEDULED = "unscheduled"
    SCHEDULED = "scheduled"
    OVERDUE = "overdue"


class BadgeTier(str, Enum):
    """Display urgency tier, most urgent first."""

    OVERDUE_WARNING = "overdue_warning"
    OVERDUE = "overdue"
    TODAY = "today"
    SOON = "soon"
    SCHEDULED = "scheduled"
    UNSCHEDULED = "unscheduled"


@dataclass(frozen=True)
class Unscheduled:
    missed_count: int
    kind: FollowUpStateKind = FollowUpStateKind.UNSCHEDULED


@dataclass(frozen=True)
class Scheduled:
    due_date: date
    days_until: int
    kind: FollowUpStateKind = FollowUpStateKind.SCHEDULED


@dataclass(frozen=True)
class Overdue:
    """Past-due schedule awaiting the sweep; only the sweep moves it to Unscheduled."""

    due_date: date
    days_late: int
    kind: FollowUpStateKind = FollowUpStateKind.OVERDUE


FollowUpState = Union[Unscheduled, Scheduled, Overdue]


@dataclass(frozen=True)
class FollowUpBadge:
    tier: BadgeTier
    label: str
    days_until: int | None = None


def _as_date(value: date | datetime) -> date:
    # datetime is a date subclass; truncate time-of-day
    if isinstance(value, datetime):
        return value.date()
    return value


def days_until(follow_up_date: date | datetime, today: date | datetime) -> int:
    """Whole calendar days from today to the follow-up date (negative when past)."""
    return (_as_date(follow_up_date) - _as_date(today)).days


def derive_state(
    next_follow_up_date: date | datetime | None,
    missed_count: int = 0,
    today: date | datetime | None = None,
) -> FollowUpState:
    """Derive the follow-up state from the denormalized proposal fields."""
    if next_follow_up_date is None:
        return Unscheduled(missed_count=missed_count or 0)

    diff = days_until(next_follow_up_date, today or today_utc())
    if diff < 0:
        return Overdue(due_date=_as_date(next_follow_up_date), days_late=abs(diff))
    return Scheduled(due_date=_as_date(next_follow_up_date), days_until=diff)


def format_badge_date(value: date) -> str:
    """Short day-month label, e.g. '7 Mar'."""
    return f"{value.day} {value.strftime('%b')}"


def classify(
    next_follow_up_date: date | datetime | None,
    missed_count: int = 0,
    today: date | datetime | None = None,
    *,
    soon_days: int = SOON_WINDOW_DAYS,
) -> FollowUpBadge:
    """
    Map follow-up fields to a display tier and label.

    Rules are evaluated in order:
    1. no date, missed > 0 -> overdue_warning ("{n} missed")
    2. no date, missed == 0 -> unscheduled ("Schedule")
    3. date in the past -> overdue ("{n} days late")
    4. date is today -> today
    5. within `soon_days` -> soon ("{n} days")
    6. otherwise -> scheduled (formatted date)
    """
    state = derive_state(next_follow_up_date, missed_count, today)

    if isinstance(state, Unscheduled):
        if state.missed_count > 0:
            return FollowUpBadge(BadgeTier.OVERDUE_WARNING, f"{state.missed_count} missed")
        return FollowUpBadge(BadgeTier.UNSCHEDULED, "Schedule")

    if isinstance(state, Overdue):
        return FollowUpBadge(
            BadgeTier.OVERDUE, f"{state.days_late} days late", days_until=-state.days_late
        )

    if state.days_until == 0:
        return FollowUpBadge(BadgeTier.TODAY, "Today", days_until=0)
    if state.days_until <= soon_days:
        return FollowUpBadge(
            BadgeTier.SOON, f"{state.days_until} days", days_until=state.days_until
        )
    return FollowUpBadge(
        BadgeTier.SCHEDULED, format_badge_date(state.due_date), days_until=state.days_until
    )
