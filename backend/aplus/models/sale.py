"""
A+ Marketplace Backend — Sale SQLAlchemy Model
================================================

What:  Immutable record of one completed note purchase.
Who:   Created only by PurchaseService; read by SaleService.

Invariant: amount (seller payout) + commission == price. Rows are never
updated after insert.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from aplus.database import Base
from aplus.models.user import utcnow

SALE_STATUS_COMPLETED = "completed"


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    seller_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    buyer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    note_title: Mapped[str] = mapped_column(String(255), nullable=False)

    # ── Money ─────────────────────────────────────────────────────────────
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    commission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # ── Payment ───────────────────────────────────────────────────────────
    invoice_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=SALE_STATUS_COMPLETED)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False, default="card")
    message: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("note_id", "buyer_id", name="uq_sales_note_buyer"),
        Index("idx_sales_seller_created", "seller_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, note_id={self.note_id}, amount={self.amount})>"
