"""Tests for structured logging helpers."""

from proposal_api.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        user_id="user-1",
        proposal_id="proposal-1",
        job="missed_follow_ups",
        route="/proposals",
        method="POST",
    )

    assert context == {
        "user_id": "user-1",
        "proposal_id": "proposal-1",
        "job": "missed_follow_ups",
        "route": "/proposals",
        "method": "POST",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        user_id="",
        proposal_id=None,
        subscription_id="sub-1",
    )

    assert context == {"subscription_id": "sub-1"}
