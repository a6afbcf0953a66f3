"""
A+ Marketplace Backend — Withdrawal Workflow Tests
====================================================

What:  Tests for the payout state machine, the balance debit and the
       monthly request allowance.
How:   Real in-memory SQLite; every status change is committed and the
       ledger re-read from a fresh session.

What we test:
    ✅ pending → accepted → completed debits the balance exactly once
    ✅ Completing twice is rejected and does not debit again
    ✅ Rejected / completed requests cannot move again
    ✅ pending → completed allowed unless acceptance is required
    ✅ Amount above balance, exhausted allowance, month rollover
    ✅ Owner edits only while pending; admin deletes only pending / rejected
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from aplus.database import commit_session
from aplus.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from aplus.models.notification import Notification
from aplus.models.user import User
from aplus.models.withdrawal import Withdrawal
from aplus.schemas.withdrawal import WithdrawalCreate, WithdrawalUpdate
from aplus.services.withdrawal_service import WithdrawalService, allowed_sources

ROUTED_AT = datetime(2024, 5, 2, 10, 30, tzinfo=timezone.utc)


def _request(amount: str = "40.00") -> WithdrawalCreate:
    return WithdrawalCreate(
        amount=Decimal(amount),
        account_name="Sara Seller",
        bank_name="Al Rajhi Bank",
        iban="SA0380000000608010167519",
    )


class TestWithdrawalRequests:

    def setup_method(self):
        self.service = WithdrawalService()

    @pytest.mark.asyncio
    async def test_create_consumes_one_request(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"), withdrawal_times=2)

        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())
            await commit_session(db)

        assert withdrawal.status == "pending"
        async with session_factory() as db:
            stored = await db.get(User, user.id)
        assert stored.withdrawal_times == 1
        # Requesting does not touch the balance
        assert stored.balance == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_amount_above_balance_rejected(self, db_session, make_user):
        user = await make_user(balance=Decimal("10.00"))
        with pytest.raises(InvalidStateError) as exc_info:
            await self.service.create_withdrawal(db_session, user.id, _request("10.01"))
        assert exc_info.value.code == "withdrawal.insufficient_balance"

    @pytest.mark.asyncio
    async def test_open_requests_reserve_the_balance(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"), withdrawal_times=3)

        async with session_factory() as db:
            first = await self.service.create_withdrawal(db, user.id, _request("100.00"))
            await commit_session(db)

        async with session_factory() as db:
            assert await self.service.reserved_amount(db, user.id) == Decimal("100.00")
            with pytest.raises(InvalidStateError) as exc_info:
                await self.service.create_withdrawal(db, user.id, _request("100.00"))
            await db.rollback()
        assert exc_info.value.code == "withdrawal.insufficient_balance"

        # A rejected request frees its reservation
        async with session_factory() as db:
            await self.service.reject_withdrawal(db, first.id)
            await commit_session(db)
        async with session_factory() as db:
            assert await self.service.reserved_amount(db, user.id) == Decimal("0.00")
            second = await self.service.create_withdrawal(db, user.id, _request("100.00"))
            await commit_session(db)

        async with session_factory() as db:
            await self.service.accept_withdrawal(db, second.id)
            completed = await self.service.complete_withdrawal(db, second.id, "TRX-0", ROUTED_AT)
            await commit_session(db)
        assert completed.status == "completed"

        async with session_factory() as db:
            stored = await db.get(User, user.id)
        assert stored.balance == Decimal("0.00")
        assert stored.withdrawal_times == 1

    @pytest.mark.asyncio
    async def test_no_requests_left_this_month(self, db_session, make_user):
        user = await make_user(balance=Decimal("100.00"), withdrawal_times=0)
        with pytest.raises(InvalidStateError) as exc_info:
            await self.service.create_withdrawal(db_session, user.id, _request())
        assert exc_info.value.code == "withdrawal.no_attempts_left"

    @pytest.mark.asyncio
    async def test_allowance_resets_in_a_new_month(self, session_factory, make_user):
        user = await make_user(
            balance=Decimal("100.00"),
            withdrawal_times=0,
            last_withdrawal_reset=datetime.now(timezone.utc) - timedelta(days=40),
        )

        async with session_factory() as db:
            await self.service.create_withdrawal(db, user.id, _request())
            await commit_session(db)

        async with session_factory() as db:
            stored = await db.get(User, user.id)
        assert stored.withdrawal_times == 1

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.create_withdrawal(db_session, uuid4(), _request())


class TestWithdrawalTransitions:

    def setup_method(self):
        self.service = WithdrawalService()

    async def _pending(self, session_factory, user) -> Withdrawal:
        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())
            await commit_session(db)
        return withdrawal

    async def _balance(self, session_factory, user_id) -> Decimal:
        async with session_factory() as db:
            return (await db.get(User, user_id)).balance

    @pytest.mark.asyncio
    async def test_accept_then_complete_debits_once(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)

        async with session_factory() as db:
            accepted = await self.service.accept_withdrawal(db, withdrawal.id)
            await commit_session(db)
        assert accepted.status == "accepted"
        assert await self._balance(session_factory, user.id) == Decimal("100.00")

        async with session_factory() as db:
            completed = await self.service.complete_withdrawal(db, withdrawal.id, "TRX-991", ROUTED_AT)
            await commit_session(db)
        assert completed.status == "completed"
        assert completed.routing_number == "TRX-991"
        assert await self._balance(session_factory, user.id) == Decimal("60.00")

        async with session_factory() as db:
            with pytest.raises(InvalidStateError) as exc_info:
                await self.service.complete_withdrawal(db, withdrawal.id, "TRX-992", ROUTED_AT)
        assert exc_info.value.code == "withdrawal.invalid_transition"
        assert await self._balance(session_factory, user.id) == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_status_changes_notify_the_owner(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)

        async with session_factory() as db:
            await self.service.accept_withdrawal(db, withdrawal.id)
            await commit_session(db)
        async with session_factory() as db:
            await self.service.complete_withdrawal(db, withdrawal.id, "TRX-1", ROUTED_AT)
            await commit_session(db)

        async with session_factory() as db:
            rows = (
                await db.execute(select(Notification).where(Notification.user_id == user.id))
            ).scalars().all()
        assert len(rows) == 2
        assert {n.type for n in rows} == {"withdrawal"}

    @pytest.mark.asyncio
    async def test_rejected_cannot_be_completed(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)

        async with session_factory() as db:
            await self.service.reject_withdrawal(db, withdrawal.id)
            await commit_session(db)

        async with session_factory() as db:
            with pytest.raises(InvalidStateError):
                await self.service.complete_withdrawal(db, withdrawal.id, "TRX-2", ROUTED_AT)
            with pytest.raises(InvalidStateError):
                await self.service.accept_withdrawal(db, withdrawal.id)
        assert await self._balance(session_factory, user.id) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_pending_can_complete_by_default(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)

        async with session_factory() as db:
            completed = await self.service.complete_withdrawal(db, withdrawal.id, "TRX-3", ROUTED_AT)
            await commit_session(db)
        assert completed.status == "completed"
        assert await self._balance(session_factory, user.id) == Decimal("60.00")

    @pytest.mark.asyncio
    async def test_completion_requires_acceptance_when_configured(
        self, session_factory, make_user, monkeypatch
    ):
        monkeypatch.setattr(
            "aplus.services.withdrawal_service.settings.withdrawal_completion_requires_acceptance", True
        )
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)

        async with session_factory() as db:
            with pytest.raises(InvalidStateError):
                await self.service.complete_withdrawal(db, withdrawal.id, "TRX-4", ROUTED_AT)

    @pytest.mark.asyncio
    async def test_completion_fails_when_balance_dropped(self, session_factory, make_user):
        """The debit is conditional: a balance spent elsewhere aborts completion."""
        user = await make_user(balance=Decimal("100.00"))
        withdrawal = await self._pending(session_factory, user)
        async with session_factory() as db:
            stored = await db.get(User, user.id)
            stored.balance = Decimal("10.00")
            await db.commit()

        async with session_factory() as db:
            with pytest.raises(InvalidStateError) as exc_info:
                await self.service.complete_withdrawal(db, withdrawal.id, "TRX-5", ROUTED_AT)
            await db.rollback()
        assert exc_info.value.code == "withdrawal.insufficient_balance"

        async with session_factory() as db:
            assert (await db.get(Withdrawal, withdrawal.id)).status == "pending"

    @pytest.mark.asyncio
    async def test_unknown_withdrawal(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.accept_withdrawal(db_session, uuid4())

    def test_allowed_sources(self):
        assert allowed_sources("accepted") == {"pending"}
        assert allowed_sources("rejected") == {"pending"}
        assert allowed_sources("completed") == {"pending", "accepted"}
        assert allowed_sources("pending") == frozenset()


class TestWithdrawalMaintenance:

    def setup_method(self):
        self.service = WithdrawalService()

    @pytest.mark.asyncio
    async def test_owner_edits_pending_request(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())
            updated = await self.service.update_withdrawal(
                db, withdrawal.id, user, WithdrawalUpdate(bank_name="SNB")
            )
        assert updated.bank_name == "SNB"
        assert updated.account_name == "Sara Seller"

    @pytest.mark.asyncio
    async def test_other_user_cannot_edit(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        stranger = await make_user()
        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())
            with pytest.raises(PermissionDeniedError):
                await self.service.update_withdrawal(db, withdrawal.id, stranger, WithdrawalUpdate(bank_name="X"))

    @pytest.mark.asyncio
    async def test_accepted_request_not_editable(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())
            await self.service.accept_withdrawal(db, withdrawal.id)
            with pytest.raises(InvalidStateError) as exc_info:
                await self.service.update_withdrawal(db, withdrawal.id, user, WithdrawalUpdate(bank_name="X"))
        assert exc_info.value.code == "withdrawal.not_editable"

    @pytest.mark.asyncio
    async def test_delete_only_pending_or_rejected(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        async with session_factory() as db:
            first = await self.service.create_withdrawal(db, user.id, _request("10.00"))
            second = await self.service.create_withdrawal(db, user.id, _request("10.00"))
            await self.service.accept_withdrawal(db, second.id)

            await self.service.delete_withdrawal(db, first.id)
            with pytest.raises(InvalidStateError) as exc_info:
                await self.service.delete_withdrawal(db, second.id)
        assert exc_info.value.code == "withdrawal.not_deletable"

    @pytest.mark.asyncio
    async def test_get_withdrawal_visibility(self, session_factory, make_user, admin):
        user = await make_user(balance=Decimal("100.00"))
        stranger = await make_user()
        async with session_factory() as db:
            withdrawal = await self.service.create_withdrawal(db, user.id, _request())

            _, owner_summary = await self.service.get_withdrawal(db, withdrawal.id, admin)
            assert owner_summary.id == user.id

            _, none_for_owner = await self.service.get_withdrawal(db, withdrawal.id, user)
            assert none_for_owner is None

            with pytest.raises(PermissionDeniedError):
                await self.service.get_withdrawal(db, withdrawal.id, stranger)

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, session_factory, make_user):
        user = await make_user(balance=Decimal("100.00"))
        async with session_factory() as db:
            first = await self.service.create_withdrawal(db, user.id, _request("10.00"))
            await self.service.create_withdrawal(db, user.id, _request("10.00"))
            await self.service.reject_withdrawal(db, first.id)

            items, total = await self.service.list_withdrawals(db, status="pending")
        assert total == 1
        assert items[0].status == "pending"
