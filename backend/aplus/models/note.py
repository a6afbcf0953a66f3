"""
A+ Marketplace Backend — Note SQLAlchemy Models
=================================================

What:  ORM models for study notes offered for sale and everything attached
       to them: purchase snapshots, reviews and likes.
Who:   NoteService (catalog, reviews, likes), PurchaseService (settlement).

Table Design:
    - notes.file_path / cover_url: public URLs returned by the file storage
    - note_purchases: one row per (note, buyer). The unique constraint is
      the purchase idempotency key; the row also keeps a snapshot of the
      note so the buyer's library survives edits and deletion of the note
    - note_reviews: one review per (note, user)
    - note_likes: composite primary key (user, note)
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    true,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from aplus.database import Base
from aplus.models.user import utcnow


class Note(Base):
    """A sellable study note (PDF document plus listing metadata)."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Weak reference to users.id, resolved by lookup
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default=text("0")
    )

    # ── Files ─────────────────────────────────────────────────────────────
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    contact_method: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ── Academic Metadata ─────────────────────────────────────────────────
    pages_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    college: Mapped[str] = mapped_column(String(255), nullable=False)
    university: Mapped[str] = mapped_column(String(255), nullable=False)

    downloads: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    is_publish: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    terms_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_notes_price_non_negative"),
        Index("idx_notes_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', price={self.price})>"


class NotePurchase(Base):
    """A buyer's access grant to a note, with a snapshot of the note at purchase time."""

    __tablename__ = "note_purchases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    buyer_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    sale_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cover_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)

    purchased_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("note_id", "buyer_id", name="uq_note_purchases_note_buyer"),
    )


class NoteReview(Base):
    """A 1–5 star review left on a note; one per user per note."""

    __tablename__ = "note_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    user_name: Mapped[str] = mapped_column(String(120), nullable=False)
    user_avatar: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="uq_note_reviews_note_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_note_reviews_rating_range"),
    )


class NoteLike(Base):
    __tablename__ = "note_likes"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
