"""
A+ Marketplace Backend — Sale Service
=======================================

What:  Read side of the sales ledger: admin listing, per-sale detail with
       buyer/seller summaries, the seller's own sales, per-note sales and
       the seller's totals.
How:   Sales rows are written once by PurchaseService and never updated;
       everything here is a SELECT.
Who:   routes/sales.py.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.exceptions import NotFoundError, PermissionDeniedError
from aplus.models.note import Note
from aplus.models.sale import Sale
from aplus.models.user import User
from aplus.services.pricing import to_money

logger = logging.getLogger(__name__)


class SaleService:

    async def _page(self, db: AsyncSession, where, page: int, limit: int) -> Tuple[List[Sale], int]:
        count_query = select(func.count(Sale.id))
        query = select(Sale)
        if where is not None:
            count_query = count_query.where(where)
            query = query.where(where)

        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(Sale.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total

    async def list_sales(self, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[Sale], int]:
        return await self._page(db, None, page, limit)

    async def list_seller_sales(
        self, db: AsyncSession, seller_id: UUID, page: int = 1, limit: int = 20
    ) -> Tuple[List[Sale], int]:
        return await self._page(db, Sale.seller_id == seller_id, page, limit)

    async def list_note_sales(
        self, db: AsyncSession, note_id: UUID, caller: User, page: int = 1, limit: int = 20
    ) -> Tuple[List[Sale], int]:
        """Sales of one note; only its owner (or an admin) may look."""
        note = await db.get(Note, note_id)
        if note is None:
            raise NotFoundError(resource="note", resource_id=note_id)
        if note.owner_id != caller.id and not caller.is_admin:
            raise PermissionDeniedError(code="note.not_owner")
        return await self._page(db, Sale.note_id == note_id, page, limit)

    async def get_sale(
        self, db: AsyncSession, sale_id: UUID, caller: User
    ) -> Tuple[Sale, Optional[User], Optional[User]]:
        """
        Returns:
            (sale, buyer, seller); either user may be None if the account
            has since been deleted.
        """
        sale = await db.get(Sale, sale_id)
        if sale is None:
            raise NotFoundError(resource="sale", resource_id=sale_id)
        if not caller.is_admin and caller.id not in (sale.buyer_id, sale.seller_id):
            raise PermissionDeniedError(code="sale.forbidden")

        buyer = await db.get(User, sale.buyer_id)
        seller = await db.get(User, sale.seller_id)
        return sale, buyer, seller

    async def seller_summary(self, db: AsyncSession, seller_id: UUID) -> dict:
        row = (
            await db.execute(
                select(
                    func.count(Sale.id),
                    func.coalesce(func.sum(Sale.amount), 0),
                    func.coalesce(func.sum(Sale.commission), 0),
                ).where(Sale.seller_id == seller_id)
            )
        ).one()
        return {
            "sales_count": row[0],
            "total_amount": to_money(Decimal(str(row[1]))),
            "total_commission": to_money(Decimal(str(row[2]))),
        }


# ── Singleton Instance ────────────────────────────────────────────────────
sale_service = SaleService()
