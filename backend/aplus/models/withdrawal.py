"""
A+ Marketplace Backend — Withdrawal SQLAlchemy Model
======================================================

What:  A seller's request to transfer part of their balance to a bank account.
Who:   WithdrawalService.

State machine:
    pending ──► accepted ──► completed
       │
       ├──► rejected
       └──► completed   (direct completion; see WithdrawalService)

completed and rejected are terminal. The balance is debited exactly once,
in the same transaction that moves the row to completed.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Numeric, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from aplus.database import Base
from aplus.models.user import utcnow

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_COMPLETED = "completed"

WITHDRAWAL_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_REJECTED, STATUS_COMPLETED)


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=STATUS_PENDING, server_default=text("'pending'")
    )
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Bank Details ──────────────────────────────────────────────────────
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    iban: Mapped[str] = mapped_column(String(64), nullable=False)

    # ── Transfer Receipt (set on completion) ──────────────────────────────
    routing_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    routing_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawals_amount_positive"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed')",
            name="ck_withdrawals_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Withdrawal(id={self.id}, amount={self.amount}, status='{self.status}')>"
