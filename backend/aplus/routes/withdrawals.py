"""
A+ Marketplace Backend — Withdrawal Routes
============================================

What:  Seller payout requests and the admin review workflow.

Endpoints (prefix /api/v1/withdrawals):
    POST   ""                      request a payout (seller)
    GET    /me                     the caller's requests
    GET    ""                      all requests, filter by status (admin)
    GET    /{id}                   admin or owner
    PUT    /{id}                   correct bank details (owner, pending only)
    PUT    /{id}/admin-note        (admin)
    DELETE /{id}                   (admin; pending or rejected only)
    POST   /{id}/accepted          (admin)
    POST   /{id}/rejected          (admin)
    POST   /{id}/completed         transfer receipt + balance debit (admin)
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user, require_admin
from aplus.schemas.common import ErrorResponse, MessageResponse, PageMeta, UserSummary
from aplus.schemas.withdrawal import (
    AdminNoteRequest,
    CompleteWithdrawalRequest,
    WithdrawalCreate,
    WithdrawalDetailResponse,
    WithdrawalListResponse,
    WithdrawalResponse,
    WithdrawalUpdate,
)
from aplus.services.withdrawal_service import withdrawal_service

router = APIRouter(prefix="/api/v1/withdrawals", tags=["Withdrawals"])

_TRANSITION_ERRORS = {
    404: {"description": "Withdrawal not found", "model": ErrorResponse},
    409: {"description": "Transition not allowed from the current status", "model": ErrorResponse},
}


@router.post(
    "",
    status_code=201,
    response_model=WithdrawalResponse,
    responses={409: {"description": "Insufficient balance or no requests left", "model": ErrorResponse}},
    summary="Request a payout of the caller's balance",
)
async def create_withdrawal(
    body: WithdrawalCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    withdrawal = await withdrawal_service.create_withdrawal(db, user.id, body)
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/me", response_model=List[WithdrawalResponse], summary="The caller's payout requests")
async def list_my_withdrawals(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[WithdrawalResponse]:
    items = await withdrawal_service.list_user_withdrawals(db, user.id)
    return [WithdrawalResponse.model_validate(w) for w in items]


@router.get("", response_model=WithdrawalListResponse, summary="All payout requests (admin)")
async def list_withdrawals(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: Optional[str] = Query(default=None, description="pending, accepted, rejected or completed"),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalListResponse:
    items, total = await withdrawal_service.list_withdrawals(db, page=page, limit=limit, status=status)
    return WithdrawalListResponse(
        withdrawals=[WithdrawalResponse.model_validate(w) for w in items],
        pagination=PageMeta.build(page, limit, total),
    )


@router.get(
    "/{withdrawal_id}",
    response_model=WithdrawalDetailResponse,
    responses={403: {"description": "Not the owner", "model": ErrorResponse}},
    summary="One payout request",
)
async def get_withdrawal(
    withdrawal_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalDetailResponse:
    withdrawal, owner = await withdrawal_service.get_withdrawal(db, withdrawal_id, user)
    return WithdrawalDetailResponse.model_validate(withdrawal).model_copy(
        update={"user": UserSummary.model_validate(owner) if owner is not None else None}
    )


@router.put("/{withdrawal_id}", response_model=WithdrawalResponse, summary="Correct bank details")
async def update_withdrawal(
    withdrawal_id: UUID,
    body: WithdrawalUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    withdrawal = await withdrawal_service.update_withdrawal(db, withdrawal_id, user, body)
    return WithdrawalResponse.model_validate(withdrawal)


@router.put("/{withdrawal_id}/admin-note", response_model=WithdrawalResponse, summary="Annotate (admin)")
async def add_admin_note(
    withdrawal_id: UUID,
    body: AdminNoteRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    withdrawal = await withdrawal_service.add_admin_note(db, withdrawal_id, body.admin_notes)
    return WithdrawalResponse.model_validate(withdrawal)


@router.delete("/{withdrawal_id}", response_model=MessageResponse, summary="Delete (admin)")
async def delete_withdrawal(
    withdrawal_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await withdrawal_service.delete_withdrawal(db, withdrawal_id)
    return MessageResponse(message="Withdrawal deleted")


# ── State transitions (admin) ─────────────────────────────────────────────


@router.post(
    "/{withdrawal_id}/accepted",
    response_model=WithdrawalResponse,
    responses=_TRANSITION_ERRORS,
    summary="Accept a pending request",
)
async def accept_withdrawal(
    withdrawal_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    return WithdrawalResponse.model_validate(await withdrawal_service.accept_withdrawal(db, withdrawal_id))


@router.post(
    "/{withdrawal_id}/rejected",
    response_model=WithdrawalResponse,
    responses=_TRANSITION_ERRORS,
    summary="Reject a pending request",
)
async def reject_withdrawal(
    withdrawal_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    return WithdrawalResponse.model_validate(await withdrawal_service.reject_withdrawal(db, withdrawal_id))


@router.post(
    "/{withdrawal_id}/completed",
    response_model=WithdrawalResponse,
    responses=_TRANSITION_ERRORS,
    summary="Record the bank transfer and debit the seller's balance",
)
async def complete_withdrawal(
    withdrawal_id: UUID,
    body: CompleteWithdrawalRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> WithdrawalResponse:
    withdrawal = await withdrawal_service.complete_withdrawal(
        db, withdrawal_id, body.routing_number, body.routing_date
    )
    return WithdrawalResponse.model_validate(withdrawal)
