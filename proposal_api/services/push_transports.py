"""
Push transport senders.

One sender per PushTransport. A sender makes exactly one delivery attempt
and raises PushSendError on failure; `permanent=True` marks the recipient
as gone so the dispatcher can drop the subscription.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import anyio
import httpx
from pywebpush import WebPushException, webpush

from proposal_api.core.config import settings
from proposal_api.db.enums import PushTransport
from proposal_api.db.models import PushSubscription

logger = logging.getLogger(__name__)

EXPO_PERMANENT_ERRORS = {"DeviceNotRegistered"}
FCM_PERMANENT_ERRORS = {"NotRegistered", "InvalidRegistration"}
WEB_PUSH_GONE_STATUSES = {404, 410}


@dataclass
class PushMessage:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


class PushSendError(Exception):
    """Delivery to one subscription failed."""

    def __init__(self, message: str, *, permanent: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.permanent = permanent
        self.status_code = status_code


class PushSender(Protocol):
    transport: PushTransport

    async def send(
        self,
        subscription: PushSubscription,
        message: PushMessage,
        client: httpx.AsyncClient,
    ) -> None: ...


def _error_text(response: httpx.Response) -> str:
    return f"HTTP {response.status_code}: {response.text[:300]}"


class RelayPushSender:
    """Vendor-hosted push relay (Expo push API)."""

    transport = PushTransport.RELAY_PUSH

    def __init__(self, url: str | None = None, access_token: str | None = None):
        self.url = url or settings.EXPO_PUSH_URL
        self.access_token = access_token if access_token is not None else settings.EXPO_ACCESS_TOKEN

    async def send(self, subscription, message, client):
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        payload = {
            "to": subscription.endpoint,
            "title": message.title,
            "body": message.body,
            "data": message.data,
            "sound": "default",
        }
        try:
            response = await client.post(self.url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise PushSendError(f"Relay request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            raise PushSendError(_error_text(response), status_code=response.status_code)

        ticket = response.json().get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            error_code = (ticket.get("details") or {}).get("error")
            raise PushSendError(
                error_code or ticket.get("message") or "Relay push rejected",
                permanent=error_code in EXPO_PERMANENT_ERRORS,
            )


class NativePushSender:
    """Native messaging (legacy FCM HTTP, server key auth)."""

    transport = PushTransport.NATIVE_PUSH

    def __init__(self, server_key: str | None = None, url: str | None = None):
        self.server_key = server_key if server_key is not None else settings.FCM_SERVER_KEY
        self.url = url or settings.FCM_SEND_URL

    async def send(self, subscription, message, client):
        if not self.server_key:
            raise PushSendError("FCM_SERVER_KEY not configured")

        payload = {
            "to": subscription.endpoint,
            "notification": {"title": message.title, "body": message.body},
            "data": message.data,
        }
        headers = {"Authorization": f"key={self.server_key}"}
        try:
            response = await client.post(self.url, json=payload, headers=headers)
        except httpx.RequestError as exc:
            raise PushSendError(f"FCM request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            raise PushSendError(_error_text(response), status_code=response.status_code)

        results = response.json().get("results") or []
        error_code = results[0].get("error") if results else None
        if error_code:
            raise PushSendError(error_code, permanent=error_code in FCM_PERMANENT_ERRORS)


class WebPushSender:
    """Browser Web Push with a VAPID-signed, encrypted payload."""

    transport = PushTransport.WEB_PUSH

    def __init__(
        self,
        vapid_private_key: str | None = None,
        vapid_email: str | None = None,
        timeout: float | None = None,
    ):
        self.vapid_private_key = (
            vapid_private_key if vapid_private_key is not None else settings.VAPID_PRIVATE_KEY
        )
        self.vapid_email = vapid_email or settings.VAPID_EMAIL
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS

    def _send_sync(self, subscription_info: dict, data: str) -> None:
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=self.vapid_private_key,
            vapid_claims={"sub": self.vapid_email},
            timeout=self.timeout,
        )

    async def send(self, subscription, message, client):
        if not self.vapid_private_key:
            raise PushSendError("VAPID keys not configured")
        if not subscription.p256dh or not subscription.auth:
            raise PushSendError("Subscription is missing p256dh/auth keys")

        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
        }
        # Service worker reads {title, body, url}
        data = json.dumps(
            {
                "title": message.title,
                "body": message.body,
                "url": message.data.get("url"),
                "data": message.data,
            }
        )
        try:
            # pywebpush is blocking (requests)
            await anyio.to_thread.run_sync(self._send_sync, subscription_info, data)
        except WebPushException as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            raise PushSendError(
                f"Web push failed ({status_code}): {exc.message}",
                permanent=status_code in WEB_PUSH_GONE_STATUSES,
                status_code=status_code,
            ) from exc


def default_senders() -> dict[PushTransport, PushSender]:
    return {
        PushTransport.RELAY_PUSH: RelayPushSender(),
        PushTransport.NATIVE_PUSH: NativePushSender(),
        PushTransport.WEB_PUSH: WebPushSender(),
    }
