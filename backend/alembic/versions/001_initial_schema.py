"""Create marketplace schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates every marketplace table: users, notes (+ purchases, reviews,
       likes), sales, withdrawals, notifications, courses (+ modules,
       lessons), announcements (+ responses) and customer ratings.

Idempotency keys:
    note_purchases (note_id, buyer_id) and sales (note_id, buyer_id) are
    unique; the purchase flow relies on them to reject concurrent duplicates.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    # ── Users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default=sa.text("'student'")),
        sa.Column("university", sa.String(255), nullable=True),
        sa.Column("avatar", sa.String(512), nullable=True),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("number_of_sales", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("withdrawal_times", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column("last_withdrawal_reset", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # ── Notes ─────────────────────────────────────────────────────────────
    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("cover_url", sa.String(512), nullable=True),
        sa.Column("contact_method", sa.String(255), nullable=True),
        sa.Column("pages_number", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("college", sa.String(255), nullable=False),
        sa.Column("university", sa.String(255), nullable=False),
        sa.Column("downloads", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_publish", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("terms_accepted", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="ck_notes_price_non_negative"),
    )
    op.create_index("ix_notes_owner_id", "notes", ["owner_id"])
    op.create_index("idx_notes_created_at", "notes", [sa.text("created_at DESC")])

    op.create_table(
        "note_purchases",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("sale_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("cover_url", sa.String(512), nullable=True),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("purchased_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("note_id", "buyer_id", name="uq_note_purchases_note_buyer"),
    )
    op.create_index("ix_note_purchases_buyer_id", "note_purchases", ["buyer_id"])

    op.create_table(
        "note_reviews",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("note_id", sa.Uuid(), sa.ForeignKey("notes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("user_name", sa.String(120), nullable=False),
        sa.Column("user_avatar", sa.String(512), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("note_id", "user_id", name="uq_note_reviews_note_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_note_reviews_rating_range"),
    )
    op.create_index("ix_note_reviews_note_id", "note_reviews", ["note_id"])

    op.create_table(
        "note_likes",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("note_id", sa.Uuid(), sa.ForeignKey("notes.id", ondelete="CASCADE"), primary_key=True),
        *_timestamps(updated=False),
    )

    # ── Sales & withdrawals ───────────────────────────────────────────────
    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("seller_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.Uuid(), nullable=False),
        sa.Column("note_id", sa.Uuid(), nullable=False),
        sa.Column("note_title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("commission", sa.Numeric(12, 2), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("invoice_id", sa.String(255), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("note_id", "buyer_id", name="uq_sales_note_buyer"),
    )
    op.create_index("idx_sales_seller_created", "sales", ["seller_id", sa.text("created_at DESC")])

    op.create_table(
        "withdrawals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("account_name", sa.String(255), nullable=False),
        sa.Column("bank_name", sa.String(255), nullable=False),
        sa.Column("iban", sa.String(64), nullable=False),
        sa.Column("routing_number", sa.String(255), nullable=True),
        sa.Column("routing_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_withdrawals_amount_positive"),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed')",
            name="ck_withdrawals_status",
        ),
    )
    op.create_index("ix_withdrawals_user_id", "withdrawals", ["user_id"])

    # ── Notifications ─────────────────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", sa.text("created_at DESC")])

    # ── Courses ───────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("thumbnail", sa.String(512), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(120), nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("owner_name", sa.String(120), nullable=False),
        sa.Column("owner_email", sa.String(255), nullable=False),
        sa.Column("owner_phone", sa.String(50), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
    )
    op.create_index("ix_courses_owner_id", "courses", ["owner_id"])

    op.create_table(
        "course_modules",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("course_id", sa.Uuid(), sa.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("queue_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("course_id", "queue_number", name="uq_course_modules_queue"),
    )

    op.create_table(
        "course_lessons",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("module_id", sa.Uuid(), sa.ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("url", sa.String(512), nullable=False),
        sa.Column("queue_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'unpublished'")),
        sa.UniqueConstraint("module_id", "queue_number", name="uq_course_lessons_queue"),
    )

    # ── Announcements ─────────────────────────────────────────────────────
    op.create_table(
        "announcements",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("creator_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default=sa.text("'announcement'")),
        sa.Column("options", sa.JSON(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index(
        "idx_announcements_course_created", "announcements", ["course_id", sa.text("created_at DESC")]
    )

    op.create_table(
        "announcement_responses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "announcement_id", sa.Uuid(), sa.ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("student_id", sa.Uuid(), nullable=False),
        sa.Column("answer", sa.String(500), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("announcement_id", "student_id", name="uq_announcement_responses_student"),
    )

    # ── Customer ratings ──────────────────────────────────────────────────
    op.create_table(
        "customer_ratings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("customer_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("is_publish", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_customer_ratings_rating_range"),
    )


def downgrade() -> None:
    for table in (
        "customer_ratings",
        "announcement_responses",
        "announcements",
        "course_lessons",
        "course_modules",
        "courses",
        "notifications",
        "withdrawals",
        "sales",
        "note_likes",
        "note_reviews",
        "note_purchases",
        "notes",
        "users",
    ):
        op.drop_table(table)
