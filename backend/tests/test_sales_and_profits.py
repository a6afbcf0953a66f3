"""
A+ Marketplace Backend — Sales & Profit Report Tests
======================================================

What:  Tests for SaleService queries and the admin ProfitService report.
How:   Sales are produced through PurchaseService so the ledger matches
       what a real purchase leaves behind.
"""

from decimal import Decimal

import pytest

from aplus.database import commit_session
from aplus.exceptions import PermissionDeniedError
from aplus.services.profit_service import ProfitService
from aplus.services.purchase_service import purchase_service
from aplus.services.sale_service import SaleService


async def _sell(session_factory, note, buyer, invoice_id):
    async with session_factory() as db:
        sale = await purchase_service.purchase(db, note.id, buyer.id, invoice_id)
        await commit_session(db)
    return sale


class TestSales:

    def setup_method(self):
        self.service = SaleService()

    @pytest.mark.asyncio
    async def test_seller_sales_and_summary(self, session_factory, seller, buyer, make_user, make_note):
        other_buyer = await make_user()
        note = await make_note(seller, price=Decimal("100.00"))
        await _sell(session_factory, note, buyer, "inv_a")
        await _sell(session_factory, note, other_buyer, "inv_b")

        async with session_factory() as db:
            sales, total = await self.service.list_seller_sales(db, seller.id)
            summary = await self.service.seller_summary(db, seller.id)

        assert total == 2
        assert {s.buyer_id for s in sales} == {buyer.id, other_buyer.id}
        assert summary == {
            "sales_count": 2,
            "total_amount": Decimal("170.00"),
            "total_commission": Decimal("30.00"),
        }

    @pytest.mark.asyncio
    async def test_summary_without_sales(self, db_session, seller):
        summary = await self.service.seller_summary(db_session, seller.id)
        assert summary["sales_count"] == 0
        assert summary["total_amount"] == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_sale_visibility(self, session_factory, seller, buyer, admin, make_user, make_note):
        stranger = await make_user()
        note = await make_note(seller)
        sale = await _sell(session_factory, note, buyer, "inv_c")

        async with session_factory() as db:
            for caller in (seller, buyer, admin):
                found, sale_buyer, sale_seller = await self.service.get_sale(db, sale.id, caller)
                assert found.id == sale.id
                assert (sale_buyer.id, sale_seller.id) == (buyer.id, seller.id)
            with pytest.raises(PermissionDeniedError):
                await self.service.get_sale(db, sale.id, stranger)

    @pytest.mark.asyncio
    async def test_note_sales_owner_only(self, session_factory, seller, buyer, admin, make_note):
        note = await make_note(seller)
        await _sell(session_factory, note, buyer, "inv_d")

        async with session_factory() as db:
            _, total = await self.service.list_note_sales(db, note.id, seller)
            assert total == 1
            _, total = await self.service.list_note_sales(db, note.id, admin)
            assert total == 1
            with pytest.raises(PermissionDeniedError):
                await self.service.list_note_sales(db, note.id, buyer)


class TestProfitReport:

    def setup_method(self):
        self.service = ProfitService()

    @pytest.mark.asyncio
    async def test_report_orders_by_balance_and_skips_empty(self, db_session, make_user):
        await make_user(full_name="Rich", balance=Decimal("500.00"))
        await make_user(full_name="Modest", balance=Decimal("100.00"))
        await make_user(full_name="Broke", balance=Decimal("0"))

        rows, statistics, total = await self.service.list_profits(db_session)

        assert total == 2
        assert [r["full_name"] for r in rows] == ["Rich", "Modest"]
        assert rows[0]["profit"] == Decimal("50.00")
        assert rows[0]["total"] == Decimal("550.00")
        assert statistics == {
            "users_count": 2,
            "total_balance": Decimal("600.00"),
            "total_profit": Decimal("60.00"),
            "total_amount": Decimal("660.00"),
        }

    @pytest.mark.asyncio
    async def test_report_filters(self, db_session, make_user):
        await make_user(full_name="Layla Hassan", balance=Decimal("10"), email="layla@uni.edu")
        await make_user(full_name="Omar Saleh", balance=Decimal("20"), email="omar@uni.edu")

        rows, statistics, _ = await self.service.list_profits(db_session, full_name="layla")
        assert [r["email"] for r in rows] == ["layla@uni.edu"]
        assert statistics["total_balance"] == Decimal("10.00")

        rows, _, total = await self.service.list_profits(db_session, email="OMAR@")
        assert total == 1
