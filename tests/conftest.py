"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created per test
- Profiles, proposals and push subscriptions
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
- Fake push senders so no test talks to a real transport
"""
import os
import uuid
from dataclasses import dataclass
from datetime import date
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["INTERNAL_SECRET"] = ""
os.environ["VAPID_PRIVATE_KEY"] = ""
os.environ["FCM_SERVER_KEY"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from proposal_api.core.deps import get_db
from proposal_api.core.security import create_access_token
from proposal_api.core.websocket import manager
from proposal_api.db.base import Base
from proposal_api.db.enums import ProposalStatus, PushTransport, Role
from proposal_api.db.models import Profile, Proposal, PushSubscription
from proposal_api.db.session import SessionLocal, engine
from proposal_api.main import app
from proposal_api.routers.follow_ups import get_push_dispatcher
from proposal_api.services.push_dispatcher import PushDispatcher
from proposal_api.services.push_transports import PushSendError


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code is free to commit."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        manager._connections.clear()


def _make_profile(db: Session, role: Role, name: str) -> Profile:
    profile = Profile(
        id=uuid.uuid4(),
        email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@test.com",
        full_name=name,
        role=role.value,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture(scope="function")
def representative(db: Session) -> Profile:
    return _make_profile(db, Role.REPRESENTATIVE, "Rep")


@pytest.fixture(scope="function")
def other_representative(db: Session) -> Profile:
    return _make_profile(db, Role.REPRESENTATIVE, "Other")


@pytest.fixture(scope="function")
def manager_profile(db: Session) -> Profile:
    return _make_profile(db, Role.MANAGER, "Manager")


@pytest.fixture(scope="function")
def admin(db: Session) -> Profile:
    return _make_profile(db, Role.ADMIN, "Admin")


@pytest.fixture(scope="function")
def make_proposal(db: Session, representative: Profile):
    """Factory for proposals owned by `representative` unless told otherwise."""
    counter = {"n": 0}

    def _make(
        next_follow_up_date: date | None = None,
        status: ProposalStatus = ProposalStatus.SENT,
        missed_follow_up_count: int = 0,
        representative_id=...,
        **kwargs,
    ) -> Proposal:
        counter["n"] += 1
        proposal = Proposal(
            proposal_no=f"P-{counter['n']:04d}",
            customer_name=kwargs.pop("customer_name", f"Customer {counter['n']}"),
            status=status.value,
            representative_id=(
                representative.id if representative_id is ... else representative_id
            ),
            next_follow_up_date=next_follow_up_date,
            missed_follow_up_count=missed_follow_up_count,
            **kwargs,
        )
        db.add(proposal)
        db.commit()
        db.refresh(proposal)
        return proposal

    return _make


@pytest.fixture(scope="function")
def make_subscription(db: Session):
    def _make(user: Profile, endpoint: str, transport: PushTransport, **kwargs) -> PushSubscription:
        subscription = PushSubscription(
            user_id=user.id,
            endpoint=endpoint,
            transport=transport.value,
            **kwargs,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make


# =============================================================================
# Push Fakes
# =============================================================================

class FakeSender:
    """Records sends; raises the configured PushSendError per endpoint."""

    def __init__(self, transport: PushTransport, errors: dict[str, PushSendError] | None = None):
        self.transport = transport
        self.errors = errors or {}
        self.sent: list[tuple[str, object]] = []

    async def send(self, subscription, message, client):
        self.sent.append((subscription.endpoint, message))
        error = self.errors.get(subscription.endpoint)
        if error:
            raise error


@pytest.fixture(scope="function")
def fake_senders() -> dict[PushTransport, FakeSender]:
    return {transport: FakeSender(transport) for transport in PushTransport}


@pytest.fixture(scope="function")
def dispatcher(fake_senders) -> PushDispatcher:
    return PushDispatcher(senders=fake_senders)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    profile: Profile
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "X-Requested-With": "XMLHttpRequest",  # CSRF header
        }


def auth_for(profile: Profile) -> TestAuth:
    return TestAuth(profile=profile, token=create_access_token(profile.id, profile.role))


@pytest.fixture(scope="function")
def rep_auth(representative: Profile) -> TestAuth:
    return auth_for(representative)


@pytest.fixture(scope="function")
def auth_headers():
    """Headers (bearer token + CSRF) for any profile."""
    return lambda profile: auth_for(profile).headers


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, dispatcher: PushDispatcher) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient; pass auth headers per request."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    dispatcher: PushDispatcher,
    rep_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as `representative`, with CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_push_dispatcher] = lambda: dispatcher

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers=rep_auth.headers,
    ) as c:
        yield c

    app.dependency_overrides.clear()
