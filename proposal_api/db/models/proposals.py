"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from proposal_api.db.base import Base, utcnow
from proposal_api.db.enums import ProposalStatus


class Proposal(Base):
    """
    Business proposal sent to a customer.

    Follow-up state is denormalized onto the row: a pending schedule is a
    non-null `next_follow_up_date`; missed cycles accumulate in
    `missed_follow_up_count`.
    """

    __tablename__ = "proposals"
    __table_args__ = (
        CheckConstraint("missed_follow_up_count >= 0", name="ck_proposals_missed_non_negative"),
        Index("idx_proposals_follow_up", "status", "next_follow_up_date"),
        Index("idx_proposals_representative", "representative_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    proposal_no: Mapped[str] = mapped_column(String(100), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProposalStatus.DRAFT.value
    )

    # Weak reference: deleting a profile keeps the proposal
    representative_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    representative_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Follow-up tracking
    next_follow_up_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    missed_follow_up_count: Mapped[int] = mapped_column(default=0, server_default="0")
    last_contact_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_reminder_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )


class FollowUpLog(Base):
    """
    Append-only audit trail of follow-up events.

    Rows are written by the sweep (missed) and the scheduling interface
    (scheduled, completed); never updated or deleted.
    """

    __tablename__ = "follow_up_logs"
    __table_args__ = (
        Index("idx_follow_up_logs_proposal", "proposal_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("proposals.id", ondelete="CASCADE"), nullable=False
    )
    representative_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    action_type: Mapped[str] = mapped_column(String(20), nullable=False)
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Set client-side so same-second entries keep insertion order
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
