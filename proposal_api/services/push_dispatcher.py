"""
Push dispatcher - fans a message out to every device a user registered.

Each subscription gets one independent attempt on its stored transport.
Outcomes are collected per subscription; a failed send never fails the
call. Subscriptions the transport reports as permanently invalid are
deleted. Notification rows are never read or written here.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from proposal_api.core.config import settings
from proposal_api.core.structured_logging import build_log_context
from proposal_api.db.enums import PushTransport
from proposal_api.db.models import Notification, PushSubscription
from proposal_api.services import push_subscription_service
from proposal_api.services.push_transports import (
    PushMessage,
    PushSender,
    PushSendError,
    default_senders,
)

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    success: bool
    subscription_id: UUID
    transport: str
    error: str | None = None
    permanent: bool = False


@dataclass
class DispatchResult:
    results: list[PushResult] = field(default_factory=list)
    removed_count: int = 0

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def as_dict(self) -> dict:
        return {
            "results": [
                {
                    "success": r.success,
                    "subscription_id": r.subscription_id,
                    "transport": r.transport,
                    "error": r.error,
                    "permanent": r.permanent,
                }
                for r in self.results
            ],
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "removed_count": self.removed_count,
        }


def notification_link(notification: Notification) -> str:
    base = settings.FRONTEND_URL.rstrip("/")
    if notification.proposal_id:
        return f"{base}/proposals?id={notification.proposal_id}"
    return f"{base}/notifications"


class PushDispatcher:
    """Delivers push messages across relay, native and web transports."""

    def __init__(
        self,
        senders: Mapping[PushTransport, PushSender] | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        self.senders = dict(senders) if senders is not None else default_senders()
        self.http_transport = http_transport
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS

    async def _send_one(
        self,
        subscription: PushSubscription,
        message: PushMessage,
        client: httpx.AsyncClient,
    ) -> PushResult:
        subscription_id = subscription.id
        try:
            transport = PushTransport(subscription.transport)
        except ValueError:
            return PushResult(
                success=False,
                subscription_id=subscription_id,
                transport=subscription.transport,
                error=f"Unknown transport '{subscription.transport}'",
            )

        sender = self.senders.get(transport)
        if sender is None:
            return PushResult(
                success=False,
                subscription_id=subscription_id,
                transport=transport.value,
                error=f"No sender configured for {transport.value}",
            )

        try:
            await sender.send(subscription, message, client)
        except PushSendError as exc:
            logger.warning(
                "Push to %s subscription failed (permanent=%s): %s",
                transport.value,
                exc.permanent,
                exc,
                extra=build_log_context(subscription_id=str(subscription_id)),
            )
            return PushResult(
                success=False,
                subscription_id=subscription_id,
                transport=transport.value,
                error=str(exc),
                permanent=exc.permanent,
            )
        except Exception as exc:
            logger.exception(
                "Unexpected push error for subscription %s",
                subscription_id,
                extra=build_log_context(subscription_id=str(subscription_id)),
            )
            return PushResult(
                success=False,
                subscription_id=subscription_id,
                transport=transport.value,
                error=f"{type(exc).__name__}: {exc}",
            )

        return PushResult(success=True, subscription_id=subscription_id, transport=transport.value)

    async def dispatch(
        self,
        db: Session,
        user_id: UUID,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """
        Send one message to all of a user's subscriptions concurrently.

        Store errors while loading subscriptions propagate; everything after
        that is reported in the result.
        """
        subscriptions = push_subscription_service.list_subscriptions(db, user_id)
        if not subscriptions:
            return DispatchResult()

        message = PushMessage(title=title, body=body, data=data or {})
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.http_transport) as client:
            results = await asyncio.gather(
                *(self._send_one(sub, message, client) for sub in subscriptions)
            )

        outcome = DispatchResult(results=list(results))
        gone = [r.subscription_id for r in outcome.results if r.permanent]
        if gone:
            try:
                outcome.removed_count = push_subscription_service.delete_subscriptions(db, gone)
            except Exception:
                db.rollback()
                logger.exception("Failed to remove %s invalid push subscriptions", len(gone))

        logger.info(
            "Push dispatch finished (subscriptions=%s success=%s removed=%s)",
            len(outcome.results),
            outcome.success_count,
            outcome.removed_count,
            extra=build_log_context(user_id=str(user_id)),
        )
        return outcome

    async def dispatch_notifications(
        self,
        db: Session,
        notifications: Iterable[Notification],
    ) -> list[DispatchResult]:
        """Push persisted notifications to their recipients, one dispatch each."""
        outcomes = []
        for notification in notifications:
            outcomes.append(
                await self.dispatch(
                    db,
                    notification.user_id,
                    notification.title,
                    notification.message,
                    data={
                        "url": notification_link(notification),
                        "notification_id": str(notification.id),
                        "proposal_id": (
                            str(notification.proposal_id) if notification.proposal_id else None
                        ),
                        "type": notification.type,
                    },
                )
            )
        return outcomes
