"""
A+ Marketplace Backend — Profit Report Route
==============================================

What:  GET /api/v1/profits, the admin report of seller balances with the
       platform's projected profit on each.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import require_admin
from aplus.schemas.common import PageMeta
from aplus.schemas.profit import ProfitReportResponse, ProfitStatistics, UserProfit
from aplus.services.profit_service import profit_service

router = APIRouter(prefix="/api/v1/profits", tags=["Profits"])


@router.get("", response_model=ProfitReportResponse, summary="Seller balances and platform profit (admin)")
async def list_profits(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    full_name: Optional[str] = Query(default=None, max_length=120),
    email: Optional[str] = Query(default=None, max_length=255),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> ProfitReportResponse:
    rows, statistics, total = await profit_service.list_profits(
        db, page=page, limit=limit, full_name=full_name, email=email
    )
    return ProfitReportResponse(
        users=[UserProfit(**row) for row in rows],
        statistics=ProfitStatistics(**statistics),
        pagination=PageMeta.build(page, limit, total),
    )
