"""Tests for /proposals/{id}/follow-up endpoints."""

from datetime import timedelta
from uuid import uuid4

from proposal_api.db.base import today_utc
from proposal_api.db.enums import PushTransport
from proposal_api.db.models import Notification, PushSubscription


def _url(proposal_id, suffix=""):
    return f"/proposals/{proposal_id}/follow-up{suffix}"


async def test_get_follow_up_unscheduled(authed_client, make_proposal):
    proposal = make_proposal(missed_follow_up_count=2)

    response = await authed_client.get(_url(proposal.id))

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "unscheduled"
    assert body["badge"] == {"tier": "overdue_warning", "label": "2 missed", "days_until": None}


async def test_schedule_and_history(authed_client, make_proposal):
    proposal = make_proposal()
    follow_up_date = today_utc() + timedelta(days=10)

    response = await authed_client.post(
        _url(proposal.id), json={"follow_up_date": follow_up_date.isoformat(), "notes": "Call CFO"}
    )

    assert response.status_code == 200
    assert response.json()["next_follow_up_date"] == follow_up_date.isoformat()
    assert response.json()["state"] == "scheduled"

    history = await authed_client.get(_url(proposal.id, "/history"))
    assert history.status_code == 200
    entries = history.json()
    assert len(entries) == 1
    assert entries[0]["action_type"] == "scheduled"
    assert entries[0]["notes"] == "Call CFO"


async def test_schedule_past_date_is_rejected(authed_client, make_proposal):
    proposal = make_proposal()
    yesterday = today_utc() - timedelta(days=1)

    response = await authed_client.post(_url(proposal.id), json={"follow_up_date": yesterday.isoformat()})

    assert response.status_code == 422
    assert (await authed_client.get(_url(proposal.id, "/history"))).json() == []


async def test_complete_clears_schedule(authed_client, make_proposal):
    proposal = make_proposal(next_follow_up_date=today_utc() + timedelta(days=1))

    response = await authed_client.post(_url(proposal.id, "/complete"), json={"notes": "Done"})

    assert response.status_code == 200
    body = response.json()
    assert body["next_follow_up_date"] is None
    assert body["last_contact_date"] == today_utc().isoformat()


async def test_mutations_require_csrf_header(client, make_proposal, rep_auth):
    proposal = make_proposal()

    response = await client.post(
        _url(proposal.id, "/complete"),
        headers={"Authorization": f"Bearer {rep_auth.token}"},
    )

    assert response.status_code == 403


async def test_requires_authentication(client, make_proposal):
    proposal = make_proposal()
    assert (await client.get(_url(proposal.id))).status_code == 401

    bad = await client.get(_url(proposal.id), headers={"Authorization": "Bearer not-a-jwt"})
    assert bad.status_code == 401


async def test_other_representative_cannot_schedule(
    client, make_proposal, other_representative, auth_headers
):
    proposal = make_proposal()

    response = await client.post(
        _url(proposal.id),
        json={"follow_up_date": (today_utc() + timedelta(days=2)).isoformat()},
        headers=auth_headers(other_representative),
    )

    assert response.status_code == 403


async def test_manager_can_schedule_any_proposal(
    client, make_proposal, manager_profile, auth_headers
):
    proposal = make_proposal()

    response = await client.post(
        _url(proposal.id),
        json={"follow_up_date": (today_utc() + timedelta(days=2)).isoformat()},
        headers=auth_headers(manager_profile),
    )

    assert response.status_code == 200


async def test_unknown_proposal_is_404(authed_client):
    assert (await authed_client.get(_url(uuid4()))).status_code == 404
    assert (await authed_client.post(_url(uuid4(), "/complete"))).status_code == 404


async def test_send_reminder_now(
    authed_client, db, representative, make_proposal, make_subscription, fake_senders
):
    proposal = make_proposal()
    make_subscription(representative, "ExponentPushToken[abc]", PushTransport.RELAY_PUSH)

    response = await authed_client.post(_url(proposal.id, "/remind"))

    assert response.status_code == 200
    body = response.json()
    assert body["notification_type"] == "reminder"
    assert body["push"]["success_count"] == 1
    assert body["push"]["failure_count"] == 0
    assert len(fake_senders[PushTransport.RELAY_PUSH].sent) == 1
    assert db.query(Notification).filter(Notification.user_id == representative.id).count() == 1


async def test_send_reminder_without_representative_shows_reason(
    client, make_proposal, manager_profile, auth_headers
):
    proposal = make_proposal(representative_id=None)

    response = await client.post(_url(proposal.id, "/remind"), headers=auth_headers(manager_profile))

    assert response.status_code == 400
    assert "has no representative" in response.json()["detail"]


async def test_send_reminder_reports_unknown_stored_transport(
    authed_client, db, representative, make_proposal, make_subscription
):
    proposal = make_proposal()
    make_subscription(representative, "ExponentPushToken[abc]", PushTransport.RELAY_PUSH)
    db.add(PushSubscription(user_id=representative.id, endpoint="legacy-token", transport="carrier"))
    db.commit()

    response = await authed_client.post(_url(proposal.id, "/remind"))

    assert response.status_code == 200
    push = response.json()["push"]
    assert push["success_count"] == 1
    assert push["failure_count"] == 1
    failed = next(r for r in push["results"] if not r["success"])
    assert failed["transport"] == "carrier"
    assert failed["error"] == "Unknown transport 'carrier'"
