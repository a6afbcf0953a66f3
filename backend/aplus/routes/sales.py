"""
A+ Marketplace Backend — Sales Routes
=======================================

Endpoints (prefix /api/v1/sales):
    GET  ""                  all sales (admin)
    GET  /me                 the caller's sales as seller
    GET  /me/summary         count and totals for the caller
    GET  /note/{note_id}     sales of one note (its owner)
    GET  /{sale_id}          one sale with buyer/seller (admin, buyer, seller)
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user, require_admin
from aplus.schemas.common import ErrorResponse, PageMeta, UserSummary
from aplus.schemas.sale import SaleDetailResponse, SaleListResponse, SaleResponse, SellerSummaryResponse
from aplus.services.sale_service import sale_service

router = APIRouter(prefix="/api/v1/sales", tags=["Sales"])


def _page(sales, page: int, limit: int, total: int) -> SaleListResponse:
    return SaleListResponse(
        sales=[SaleResponse.model_validate(s) for s in sales],
        pagination=PageMeta.build(page, limit, total),
    )


@router.get("", response_model=SaleListResponse, summary="List all sales (admin)")
async def list_sales(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SaleListResponse:
    sales, total = await sale_service.list_sales(db, page=page, limit=limit)
    return _page(sales, page, limit, total)


@router.get("/me", response_model=SaleListResponse, summary="The caller's sales, newest first")
async def list_my_sales(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaleListResponse:
    sales, total = await sale_service.list_seller_sales(db, user.id, page=page, limit=limit)
    return _page(sales, page, limit, total)


@router.get("/me/summary", response_model=SellerSummaryResponse, summary="The caller's sales totals")
async def my_summary(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SellerSummaryResponse:
    return SellerSummaryResponse(**await sale_service.seller_summary(db, user.id))


@router.get(
    "/note/{note_id}",
    response_model=SaleListResponse,
    responses={403: {"description": "Not the note owner", "model": ErrorResponse}},
    summary="Sales of one note (owner)",
)
async def list_note_sales(
    note_id: UUID,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaleListResponse:
    sales, total = await sale_service.list_note_sales(db, note_id, user, page=page, limit=limit)
    return _page(sales, page, limit, total)


@router.get(
    "/{sale_id}",
    response_model=SaleDetailResponse,
    responses={
        403: {"description": "Neither buyer, seller nor admin", "model": ErrorResponse},
        404: {"description": "Sale not found", "model": ErrorResponse},
    },
    summary="One sale with buyer and seller summaries",
)
async def get_sale(
    sale_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaleDetailResponse:
    sale, buyer, seller = await sale_service.get_sale(db, sale_id, user)
    return SaleDetailResponse.model_validate(sale).model_copy(
        update={
            "buyer": UserSummary.model_validate(buyer) if buyer is not None else None,
            "seller": UserSummary.model_validate(seller) if seller is not None else None,
        }
    )
