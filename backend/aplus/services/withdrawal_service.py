"""
A+ Marketplace Backend — Withdrawal Settlement
================================================

What:  The seller payout workflow: request → review (accept / reject) →
       completion with the bank transfer receipt and the balance debit.
How:   Every status change is a conditional UPDATE whose WHERE clause names
       the allowed source states, so two concurrent transitions cannot both
       succeed. Completion and the balance debit share one transaction; the
       debit is itself conditional on `balance >= amount`.
Who:   routes/withdrawals.py.

Transitions (source states per target):
    accepted   ← pending
    rejected   ← pending
    completed  ← accepted, and pending unless
                 `withdrawal_completion_requires_acceptance` is set

Monthly allowance: `users.withdrawal_times` is reset to
`withdrawal_monthly_allowance` on the first request of a new calendar month
and decremented (conditionally) by each request.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, FrozenSet, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.config import settings
from aplus.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from aplus.messages import translate
from aplus.models.user import User, utcnow
from aplus.models.withdrawal import (
    STATUS_ACCEPTED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_REJECTED,
    Withdrawal,
)
from aplus.schemas.withdrawal import WithdrawalCreate, WithdrawalUpdate
from aplus.services.notification_service import notification_service
from aplus.services.pricing import to_money

logger = logging.getLogger(__name__)

DELETABLE_STATUSES = frozenset({STATUS_PENDING, STATUS_REJECTED})
OPEN_STATUSES = frozenset({STATUS_PENDING, STATUS_ACCEPTED})


def allowed_sources(target: str) -> FrozenSet[str]:
    """States a withdrawal may be in for a move to `target`."""
    if target in (STATUS_ACCEPTED, STATUS_REJECTED):
        return frozenset({STATUS_PENDING})
    if target == STATUS_COMPLETED:
        if settings.withdrawal_completion_requires_acceptance:
            return frozenset({STATUS_ACCEPTED})
        return frozenset({STATUS_ACCEPTED, STATUS_PENDING})
    return frozenset()


def _same_month(a: datetime, b: datetime) -> bool:
    return (a.year, a.month) == (b.year, b.month)


class WithdrawalService:

    # ── Requests ──────────────────────────────────────────────────────────

    async def reserved_amount(self, db: AsyncSession, user_id: UUID) -> Decimal:
        """Sum of the user's requests not yet settled (pending or accepted)."""
        result = await db.execute(
            select(func.coalesce(func.sum(Withdrawal.amount), 0)).where(
                Withdrawal.user_id == user_id,
                Withdrawal.status.in_(OPEN_STATUSES),
            )
        )
        return to_money(result.scalar() or 0)

    async def create_withdrawal(self, db: AsyncSession, user_id: UUID, data: WithdrawalCreate) -> Withdrawal:
        """
        Open a payout request against the part of the balance not already
        reserved by the user's pending and accepted requests, so every open
        request can still be completed.

        Raises:
            NotFoundError: unknown user
            ValidationError: non-positive amount
            InvalidStateError: amount above the available balance, or no
                requests left this month
        """
        if data.amount <= 0:
            raise ValidationError(field="amount")

        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        reserved = await self.reserved_amount(db, user_id)
        if data.amount > user.balance - reserved:
            raise InvalidStateError(code="withdrawal.insufficient_balance")

        now = utcnow()
        if not _same_month(user.last_withdrawal_reset, now):
            user.withdrawal_times = settings.withdrawal_monthly_allowance
            user.last_withdrawal_reset = now
            await db.flush()

        # Reservation and allowance are re-checked in the same statement
        open_total = (
            select(func.coalesce(func.sum(Withdrawal.amount), 0))
            .where(Withdrawal.user_id == user_id, Withdrawal.status.in_(OPEN_STATUSES))
            .scalar_subquery()
        )
        consumed = await db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.withdrawal_times > 0,
                User.balance - open_total >= data.amount,
            )
            .values(withdrawal_times=User.withdrawal_times - 1)
            .execution_options(synchronize_session=False)
        )
        if consumed.rowcount == 0:
            remaining = (
                await db.execute(select(User.withdrawal_times).where(User.id == user_id))
            ).scalar_one()
            if remaining <= 0:
                raise InvalidStateError(code="withdrawal.no_attempts_left")
            raise InvalidStateError(code="withdrawal.insufficient_balance")

        withdrawal = Withdrawal(
            user_id=user_id,
            amount=data.amount,
            account_name=data.account_name,
            bank_name=data.bank_name,
            iban=data.iban,
        )
        db.add(withdrawal)
        await db.flush()
        logger.info("Withdrawal requested: id=%s user=%s amount=%s", withdrawal.id, user_id, data.amount)
        return withdrawal

    # ── State machine ─────────────────────────────────────────────────────

    async def _current_status(self, db: AsyncSession, withdrawal_id: UUID) -> Optional[str]:
        result = await db.execute(select(Withdrawal.status).where(Withdrawal.id == withdrawal_id))
        return result.scalar_one_or_none()

    async def _transition(self, db: AsyncSession, withdrawal_id: UUID, target: str, **values: Any) -> Withdrawal:
        sources = allowed_sources(target)
        previous = await self._current_status(db, withdrawal_id)
        if previous is None:
            raise NotFoundError(resource="withdrawal", resource_id=withdrawal_id)

        result = await db.execute(
            update(Withdrawal)
            .where(Withdrawal.id == withdrawal_id, Withdrawal.status.in_(sources))
            .values(status=target, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self._current_status(db, withdrawal_id)
            if current is None:
                raise NotFoundError(resource="withdrawal", resource_id=withdrawal_id)
            raise InvalidStateError(code="withdrawal.invalid_transition", current=current, target=target)

        if previous == STATUS_PENDING and target == STATUS_COMPLETED:
            logger.warning("Withdrawal %s completed without being accepted first", withdrawal_id)

        return await db.get(Withdrawal, withdrawal_id, populate_existing=True)

    def _notify(self, db: AsyncSession, withdrawal: Withdrawal, event: str) -> None:
        notification_service.notify(
            db,
            withdrawal.user_id,
            translate(f"notify.withdrawal_{event}.title"),
            translate(f"notify.withdrawal_{event}.message", amount=withdrawal.amount),
            type="withdrawal",
        )

    async def accept_withdrawal(self, db: AsyncSession, withdrawal_id: UUID) -> Withdrawal:
        withdrawal = await self._transition(db, withdrawal_id, STATUS_ACCEPTED)
        self._notify(db, withdrawal, STATUS_ACCEPTED)
        logger.info("Withdrawal accepted: id=%s", withdrawal_id)
        return withdrawal

    async def reject_withdrawal(self, db: AsyncSession, withdrawal_id: UUID) -> Withdrawal:
        withdrawal = await self._transition(db, withdrawal_id, STATUS_REJECTED)
        self._notify(db, withdrawal, STATUS_REJECTED)
        logger.info("Withdrawal rejected: id=%s", withdrawal_id)
        return withdrawal

    async def complete_withdrawal(
        self,
        db: AsyncSession,
        withdrawal_id: UUID,
        routing_number: str,
        routing_date: datetime,
    ) -> Withdrawal:
        """
        Mark the transfer done and debit the owner's balance, atomically.

        Raises:
            NotFoundError: unknown withdrawal or owning user
            InvalidStateError: already completed/rejected, not accepted (when
                required), or balance below the amount
        """
        withdrawal = await self._transition(
            db,
            withdrawal_id,
            STATUS_COMPLETED,
            routing_number=routing_number,
            routing_date=routing_date,
        )

        owner = await db.get(User, withdrawal.user_id)
        if owner is None:
            raise NotFoundError(resource="user", resource_id=withdrawal.user_id)

        debited = await db.execute(
            update(User)
            .where(User.id == withdrawal.user_id, User.balance >= withdrawal.amount)
            .values(balance=User.balance - withdrawal.amount)
            .execution_options(synchronize_session=False)
        )
        if debited.rowcount == 0:
            raise InvalidStateError(code="withdrawal.insufficient_balance")

        self._notify(db, withdrawal, STATUS_COMPLETED)
        logger.info(
            "Withdrawal completed: id=%s user=%s amount=%s routing=%s",
            withdrawal.id,
            withdrawal.user_id,
            withdrawal.amount,
            routing_number,
        )
        return withdrawal

    # ── Queries & maintenance ─────────────────────────────────────────────

    async def _load(self, db: AsyncSession, withdrawal_id: UUID) -> Withdrawal:
        withdrawal = await db.get(Withdrawal, withdrawal_id)
        if withdrawal is None:
            raise NotFoundError(resource="withdrawal", resource_id=withdrawal_id)
        return withdrawal

    async def list_withdrawals(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> Tuple[List[Withdrawal], int]:
        query = select(Withdrawal)
        count_query = select(func.count(Withdrawal.id))
        if status:
            query = query.where(Withdrawal.status == status)
            count_query = count_query.where(Withdrawal.status == status)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(Withdrawal.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_user_withdrawals(self, db: AsyncSession, user_id: UUID) -> List[Withdrawal]:
        result = await db.execute(
            select(Withdrawal).where(Withdrawal.user_id == user_id).order_by(Withdrawal.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_withdrawal(
        self, db: AsyncSession, withdrawal_id: UUID, caller: User
    ) -> Tuple[Withdrawal, Optional[User]]:
        """Admins get the owner's summary alongside; owners only their own request."""
        withdrawal = await self._load(db, withdrawal_id)
        if caller.is_admin:
            return withdrawal, await db.get(User, withdrawal.user_id)
        if withdrawal.user_id != caller.id:
            raise PermissionDeniedError(code="withdrawal.not_owner")
        return withdrawal, None

    async def update_withdrawal(
        self, db: AsyncSession, withdrawal_id: UUID, caller: User, data: WithdrawalUpdate
    ) -> Withdrawal:
        withdrawal = await self._load(db, withdrawal_id)
        if withdrawal.user_id != caller.id:
            raise PermissionDeniedError(code="withdrawal.not_owner")
        if withdrawal.status != STATUS_PENDING:
            raise InvalidStateError(code="withdrawal.not_editable")

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(withdrawal, field, value)
        await db.flush()
        return withdrawal

    async def add_admin_note(self, db: AsyncSession, withdrawal_id: UUID, note: str) -> Withdrawal:
        withdrawal = await self._load(db, withdrawal_id)
        withdrawal.admin_notes = note
        await db.flush()
        return withdrawal

    async def delete_withdrawal(self, db: AsyncSession, withdrawal_id: UUID) -> None:
        withdrawal = await self._load(db, withdrawal_id)
        if withdrawal.status not in DELETABLE_STATUSES:
            raise InvalidStateError(code="withdrawal.not_deletable")
        await db.delete(withdrawal)
        await db.flush()
        logger.info("Withdrawal deleted: id=%s", withdrawal_id)


# ── Singleton Instance ────────────────────────────────────────────────────
withdrawal_service = WithdrawalService()
