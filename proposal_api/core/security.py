"""Security utilities for auth-backend JWTs and internal secrets."""

import hmac
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from proposal_api.core.config import settings


# =============================================================================
# Access Token (issued by the auth backend, verified here)
# =============================================================================

def create_access_token(
    user_id: UUID,
    role: str,
    expires_hours: int = 1,
) -> str:
    """
    Create a signed access JWT in the auth backend's format.

    Used by the CLI and tests; production tokens come from the auth service.
    """
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=expires_hours),
    }
    if settings.JWT_AUDIENCE:
        payload["aud"] = settings.JWT_AUDIENCE
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    options = {} if settings.JWT_AUDIENCE else {"verify_aud": False}
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                audience=settings.JWT_AUDIENCE or None,
                options=options,
            )
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


def verify_secret(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison for shared secrets."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided, expected)
