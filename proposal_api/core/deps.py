"""FastAPI dependencies for authentication, authorization, and database access."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from proposal_api.core.security import decode_access_token
from proposal_api.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "access_token"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def extract_token(request: Request) -> str | None:
    """Bearer header first, then the session cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(COOKIE_NAME)


def resolve_session(token: str | None, db: Session):
    """
    Validate a token and build the session context.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - Profile exists and is active
    - Role is a known value

    Raises:
        HTTPException 401: Authentication failed
        HTTPException 403: Unknown role
    """
    # Import here to avoid circular imports
    from proposal_api.db.enums import Role
    from proposal_api.db.models import Profile
    from proposal_api.schemas.auth import UserSession

    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_access_token(token)
        user_id = UUID(payload["sub"])
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=401, detail="User not found")

    if not profile.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Validate role is a known enum value - return 403 not 500
    if not Role.has_value(profile.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{profile.role}'. Contact administrator."
        )

    return UserSession(
        user_id=profile.id,
        role=Role(profile.role),
        email=profile.email,
        full_name=profile.full_name,
    )


def get_current_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get full session context: user_id, role.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    return resolve_session(extract_token(request), db)


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


# =============================================================================
# Permission Check Helpers
# =============================================================================

def can_manage_follow_up(session, representative_id: UUID | None) -> bool:
    """Owner of the proposal, or manager+."""
    from proposal_api.db.enums import ROLES_CAN_MANAGE_FOLLOW_UPS
    return (
        session.user_id == representative_id
        or session.role in ROLES_CAN_MANAGE_FOLLOW_UPS
    )
