"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    REMINDER = "reminder"  # Follow-up reminders (missed, stale, due tomorrow, manual)
    STATUS = "status"  # Proposal status changes
    SYSTEM = "system"  # Admin summaries


class PushTransport(str, Enum):
    """Delivery channel of a push subscription, fixed at registration."""

    NATIVE_PUSH = "native_push"  # FCM device token
    WEB_PUSH = "web_push"  # Browser Push API endpoint + keys
    RELAY_PUSH = "relay_push"  # Expo push relay token
