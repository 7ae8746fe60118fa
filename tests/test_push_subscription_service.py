"""Tests for push subscription registration."""

import pytest

from proposal_api.db.enums import PushTransport
from proposal_api.db.models import PushSubscription
from proposal_api.services import push_subscription_service


@pytest.mark.parametrize(
    "endpoint, keys, expected",
    [
        ("https://fcm.googleapis.com/fcm/send/abc", ("p", "a"), PushTransport.WEB_PUSH),
        ("ExponentPushToken[xyz]", None, PushTransport.RELAY_PUSH),
        ("ExpoPushToken[xyz]", None, PushTransport.RELAY_PUSH),
        ("dGhpcyBpcyBhIGRldmljZSB0b2tlbg", None, PushTransport.NATIVE_PUSH),
    ],
)
def test_infer_transport(endpoint, keys, expected):
    p256dh, auth = keys or (None, None)
    assert push_subscription_service.infer_transport(endpoint, p256dh, auth) == expected


def test_register_is_idempotent_per_endpoint(db, representative):
    first = push_subscription_service.register_subscription(
        db, representative.id, "https://push.test/1", p256dh="p1", auth="a1"
    )
    second = push_subscription_service.register_subscription(
        db, representative.id, "https://push.test/1", p256dh="p2", auth="a2", user_agent="Firefox"
    )

    assert first.id == second.id
    assert second.p256dh == "p2"
    assert second.keys == {"p256dh": "p2", "auth": "a2"}
    assert second.user_agent == "Firefox"
    assert db.query(PushSubscription).count() == 1


def test_same_endpoint_for_different_users(db, representative, other_representative):
    push_subscription_service.register_subscription(db, representative.id, "ExponentPushToken[a]")
    push_subscription_service.register_subscription(db, other_representative.id, "ExponentPushToken[a]")

    assert db.query(PushSubscription).count() == 2


def test_explicit_transport_is_stored(db, representative):
    sub = push_subscription_service.register_subscription(
        db, representative.id, "ExponentPushToken[a]", transport=PushTransport.NATIVE_PUSH
    )
    assert sub.transport == PushTransport.NATIVE_PUSH.value


def test_web_push_requires_keys(db, representative):
    with pytest.raises(ValueError):
        push_subscription_service.register_subscription(
            db, representative.id, "https://push.test/1", transport=PushTransport.WEB_PUSH
        )


def test_unregister_only_own_subscription(db, representative, other_representative):
    sub = push_subscription_service.register_subscription(db, representative.id, "token-1")

    assert push_subscription_service.unregister_subscription(db, sub.id, other_representative.id) is False
    assert push_subscription_service.unregister_subscription(db, sub.id, representative.id) is True
    assert db.query(PushSubscription).count() == 0
