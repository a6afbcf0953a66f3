"""
A+ Marketplace Backend — Purchase Route
=========================================

What:  POST /api/v1/purchase, the settlement call made by the checkout
       success page once the gateway reports the invoice paid.
How:   The buyer defaults to the caller. Naming another buyer is reserved
       for admins reconciling payments on a user's behalf.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.exceptions import PermissionDeniedError
from aplus.models.user import User
from aplus.routes.deps import get_current_user
from aplus.schemas.common import ErrorResponse
from aplus.schemas.note import PurchaseRequest
from aplus.schemas.sale import SaleResponse
from aplus.services.purchase_service import purchase_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Purchases"])


@router.post(
    "/purchase",
    status_code=201,
    response_model=SaleResponse,
    responses={
        403: {"description": "Buying on behalf of another user", "model": ErrorResponse},
        404: {"description": "Note or buyer not found", "model": ErrorResponse},
        409: {"description": "Self-purchase or already purchased", "model": ErrorResponse},
    },
    summary="Settle a paid note purchase",
)
async def purchase(
    body: PurchaseRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaleResponse:
    buyer_id = body.buyer_id or user.id
    if buyer_id != user.id and not user.is_admin:
        raise PermissionDeniedError(code="auth.forbidden")

    sale = await purchase_service.purchase(db, body.note_id, buyer_id, body.invoice_id, body.status)
    return SaleResponse.model_validate(sale)
