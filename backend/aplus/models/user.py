"""
A+ Marketplace Backend — User SQLAlchemy Model
================================================

What:  ORM model for the `users` table: identity, role, and the seller's
       ledger fields (balance, number of sales, withdrawal allowance).
Who:   UserService (identity), PurchaseService (credits), WithdrawalService
       (debits and allowance), ProfitService (reporting).

Ledger fields are only changed through in-database increments
(`balance = balance + :x`), never read-modify-write.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, Numeric, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from aplus.database import Base

ROLE_STUDENT = "student"
ROLE_ADMIN = "admin"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """A registered student or administrator."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name: Mapped[str] = mapped_column(String(120), nullable=False)
    # Stored lower-cased; see UserService.register
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ROLE_STUDENT, server_default=text("'student'")
    )
    university: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Stored file URL; None falls back to a generated avatar
    avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # ── Seller Ledger ─────────────────────────────────────────────────────
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default=text("0")
    )
    number_of_sales: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    # Withdrawal requests left in the current calendar month
    withdrawal_times: Mapped[int] = mapped_column(
        Integer, nullable=False, default=2, server_default=text("2")
    )
    last_withdrawal_reset: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
