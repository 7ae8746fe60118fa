"""Tests for follow-up state derivation and badge classification."""

from datetime import date, datetime, timedelta

import pytest

from proposal_api.services.follow_up_status import (
    BadgeTier,
    FollowUpStateKind,
    Overdue,
    Scheduled,
    Unscheduled,
    classify,
    days_until,
    derive_state,
    format_badge_date,
)

TODAY = date(2024, 3, 7)


@pytest.mark.parametrize(
    "next_date, missed, tier, label",
    [
        (None, 0, BadgeTier.UNSCHEDULED, "Schedule"),
        (None, 3, BadgeTier.OVERDUE_WARNING, "3 missed"),
        (TODAY, 0, BadgeTier.TODAY, "Today"),
        (TODAY + timedelta(days=1), 0, BadgeTier.SOON, "1 days"),
        (TODAY + timedelta(days=3), 0, BadgeTier.SOON, "3 days"),
        (TODAY + timedelta(days=4), 0, BadgeTier.SCHEDULED, "11 Mar"),
        (TODAY - timedelta(days=1), 0, BadgeTier.OVERDUE, "1 days late"),
        (TODAY - timedelta(days=10), 2, BadgeTier.OVERDUE, "10 days late"),
    ],
)
def test_classify_boundaries(next_date, missed, tier, label):
    badge = classify(next_date, missed, today=TODAY)
    assert badge.tier == tier
    assert badge.label == label


def test_classify_date_wins_over_missed_count():
    # A rescheduled proposal shows its schedule, not its miss history
    badge = classify(TODAY + timedelta(days=2), 5, today=TODAY)
    assert badge.tier == BadgeTier.SOON


def test_classify_custom_soon_window():
    assert classify(TODAY + timedelta(days=5), today=TODAY, soon_days=7).tier == BadgeTier.SOON
    assert classify(TODAY + timedelta(days=1), today=TODAY, soon_days=0).tier == BadgeTier.SCHEDULED


def test_classify_days_until_is_signed():
    assert classify(TODAY - timedelta(days=2), today=TODAY).days_until == -2
    assert classify(TODAY + timedelta(days=9), today=TODAY).days_until == 9
    assert classify(None, today=TODAY).days_until is None


def test_days_until_truncates_time_of_day():
    late_evening = datetime(2024, 3, 7, 23, 59)
    assert days_until(date(2024, 3, 8), late_evening) == 1
    assert days_until(datetime(2024, 3, 6, 0, 1), TODAY) == -1


def test_derive_state_variants():
    assert derive_state(None, 2, TODAY) == Unscheduled(missed_count=2)
    assert derive_state(TODAY, 0, TODAY) == Scheduled(due_date=TODAY, days_until=0)
    assert derive_state(TODAY - timedelta(days=4), 0, TODAY) == Overdue(
        due_date=TODAY - timedelta(days=4), days_late=4
    )


def test_state_kinds():
    assert derive_state(None, today=TODAY).kind == FollowUpStateKind.UNSCHEDULED
    assert derive_state(TODAY, today=TODAY).kind == FollowUpStateKind.SCHEDULED
    assert derive_state(TODAY - timedelta(days=1), today=TODAY).kind == FollowUpStateKind.OVERDUE


def test_format_badge_date():
    assert format_badge_date(date(2024, 12, 1)) == "1 Dec"
