"""
A+ Marketplace Backend — Profit Report
========================================

What:  Admin report of sellers holding a balance, each with the platform's
       projected profit on that balance, plus report-wide statistics.
How:   One filtered, paginated SELECT over users; the money math is
       `pricing.calculate_profit` with `platform_decrement_percent`.
Who:   routes/profits.py.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.config import settings
from aplus.models.user import User
from aplus.services.pricing import calculate_profit, to_money


class ProfitService:

    async def list_profits(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Tuple[List[dict], dict, int]:
        """
        Returns:
            (rows for this page, statistics over all matching users, total)
        """
        conditions = [User.balance > 0]
        if full_name:
            conditions.append(func.lower(User.full_name).contains(full_name.lower()))
        if email:
            conditions.append(func.lower(User.email).contains(email.lower()))
        where = and_(*conditions)

        count, balance_sum = (
            await db.execute(select(func.count(User.id), func.coalesce(func.sum(User.balance), 0)).where(where))
        ).one()

        result = await db.execute(
            select(User)
            .where(where)
            .order_by(User.balance.desc(), User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        percent = settings.platform_decrement_percent
        rows = []
        for user in result.scalars().all():
            breakdown = calculate_profit(user.balance, percent)
            rows.append(
                {
                    "user_id": user.id,
                    "full_name": user.full_name,
                    "email": user.email,
                    "balance": breakdown.balance,
                    "profit": breakdown.profit,
                    "total": breakdown.total,
                }
            )

        totals = calculate_profit(to_money(Decimal(str(balance_sum))), percent)
        statistics = {
            "users_count": count,
            "total_balance": totals.balance,
            "total_profit": totals.profit,
            "total_amount": totals.total,
        }
        return rows, statistics, count


# ── Singleton Instance ────────────────────────────────────────────────────
profit_service = ProfitService()
