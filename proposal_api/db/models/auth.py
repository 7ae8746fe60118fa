"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import String, Uuid, func, true
from sqlalchemy.orm import Mapped, mapped_column

from proposal_api.db.base import Base, utcnow
from proposal_api.db.enums import Role


class Profile(Base):
    """
    Application user.

    Identity lives in the external auth backend; the profile id equals the
    JWT `sub` claim.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50), nullable=False, default=Role.REPRESENTATIVE.value
    )
    is_active: Mapped[bool] = mapped_column(default=True, server_default=true())

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
