"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    user_id: str | None = None,
    proposal_id: str | None = None,
    subscription_id: str | None = None,
    job: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if proposal_id:
        context["proposal_id"] = proposal_id
    if subscription_id:
        context["subscription_id"] = subscription_id
    if job:
        context["job"] = job
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
