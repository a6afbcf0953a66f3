"""
A+ Marketplace Backend — Notes Route Handlers
===============================================

What:  The notes catalog and everything hanging off a note: CRUD, reviews,
       likes, the document download, purchase settlement and payment links.
Who:   Frontend catalog, note detail, seller dashboard and checkout pages.

Endpoints (prefix /api/v1/notes):
    GET    ""                          catalog (published notes)
    POST   ""                          create (multipart: fields + file + cover)
    GET    /liked | /purchased         the caller's lists
    GET    /user/{user_id}             a seller's notes
    POST   /create-payment-link        hosted checkout invoice
    GET    /{id}                       detail with owner, reviews, likes
    PUT    /{id} | DELETE /{id}        owner only
    PUT    /{id}/publish | /unpublish  admin
    GET    /{id}/download              owner or buyer
    POST   /{id}/purchase              settle a paid purchase
    GET|POST /{id}/reviews, PUT|DELETE /{id}/reviews/{review_id}
    GET|POST|DELETE /{id}/like

Static paths are declared before /{id} so they are not captured as ids.
"""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user, require_admin
from aplus.schemas.common import ErrorResponse, MessageResponse, PageMeta, UserSummary
from aplus.schemas.note import (
    LikeStatusResponse,
    NoteCreate,
    NoteDetailResponse,
    NoteListItem,
    NoteListParams,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
    PaymentLinkRequest,
    PaymentLinkResponse,
    PurchasedNoteResponse,
    PurchaseNoteRequest,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
)
from aplus.schemas.sale import SaleResponse
from aplus.services.note_service import note_service
from aplus.services.purchase_service import purchase_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notes", tags=["Notes"])


async def _read_upload(upload: Optional[UploadFile]):
    """(filename, bytes) for the service layer; None when the part is absent."""
    if upload is None:
        return None
    try:
        return upload.filename or "", await upload.read()
    finally:
        await upload.close()


# ══════════════════════════════════════════════════════════════════════════
# Catalog
# ══════════════════════════════════════════════════════════════════════════


@router.get("", response_model=NoteListResponse, summary="List published notes")
async def list_notes(
    params: NoteListParams = Depends(),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    notes, total = await note_service.list_notes(db, params)
    return NoteListResponse(
        notes=[NoteListItem.model_validate(n) for n in notes],
        pagination=PageMeta.build(params.page, params.limit, total),
    )


@router.post(
    "",
    status_code=201,
    response_model=NoteResponse,
    responses={400: {"description": "Missing or invalid document/cover", "model": ErrorResponse}},
    summary="Publish a new note (PDF document plus optional cover image)",
)
async def create_note(
    title: str = Form(...),
    subject: str = Form(...),
    price: Decimal = Form(...),
    pages_number: int = Form(...),
    year: int = Form(...),
    college: str = Form(...),
    university: str = Form(...),
    description: str = Form(default=""),
    contact_method: Optional[str] = Form(default=None),
    terms_accepted: bool = Form(default=True),
    file: Optional[UploadFile] = File(default=None, description="PDF document"),
    cover: Optional[UploadFile] = File(default=None, description="Cover image (PNG, JPEG, WebP)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    data = NoteCreate(
        title=title,
        description=description,
        subject=subject,
        price=price,
        pages_number=pages_number,
        year=year,
        college=college,
        university=university,
        contact_method=contact_method,
        terms_accepted=terms_accepted,
    )
    note = await note_service.create_note(
        db,
        user,
        data,
        document=await _read_upload(file),
        cover=await _read_upload(cover),
    )
    return NoteResponse.model_validate(note)


@router.get("/liked", response_model=List[NoteListItem], summary="Notes the caller liked")
async def list_liked_notes(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteListItem]:
    notes = await note_service.list_liked_notes(db, user.id)
    return [NoteListItem.model_validate(n) for n in notes]


@router.get("/purchased", response_model=List[PurchasedNoteResponse], summary="The caller's library")
async def list_purchased_notes(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[PurchasedNoteResponse]:
    purchases = await note_service.list_purchased_notes(db, user.id)
    return [PurchasedNoteResponse.model_validate(p) for p in purchases]


@router.get("/user/{user_id}", response_model=List[NoteResponse], summary="All notes of one seller")
async def list_user_notes(user_id: UUID, db: AsyncSession = Depends(get_db_session)) -> List[NoteResponse]:
    notes = await note_service.list_user_notes(db, user_id)
    return [NoteResponse.model_validate(n) for n in notes]


@router.post(
    "/create-payment-link",
    status_code=201,
    response_model=PaymentLinkResponse,
    responses={
        409: {"description": "Own note or already purchased", "model": ErrorResponse},
        502: {"description": "Payment gateway error", "model": ErrorResponse},
        503: {"description": "Payment gateway circuit open", "model": ErrorResponse},
    },
    summary="Create a hosted checkout invoice for a note",
)
async def create_payment_link(
    body: PaymentLinkRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> PaymentLinkResponse:
    invoice = await purchase_service.create_payment_link(db, body.note_id, user.id)
    return PaymentLinkResponse(
        invoice_id=invoice.id,
        url=invoice.url,
        amount=invoice.amount,
        currency=invoice.currency,
    )


# ══════════════════════════════════════════════════════════════════════════
# Single note
# ══════════════════════════════════════════════════════════════════════════


@router.get(
    "/{note_id}",
    response_model=NoteDetailResponse,
    responses={404: {"description": "Note not found", "model": ErrorResponse}},
    summary="Note detail with owner, reviews and likes",
)
async def get_note(note_id: UUID, db: AsyncSession = Depends(get_db_session)) -> NoteDetailResponse:
    detail = await note_service.get_note_detail(db, note_id)
    base = NoteDetailResponse.model_validate(detail["note"])
    owner = detail["owner"]
    return base.model_copy(
        update={
            "owner": UserSummary.model_validate(owner) if owner is not None else None,
            "reviews": [ReviewResponse.model_validate(r) for r in detail["reviews"]],
            "average_rating": detail["average_rating"],
            "likes_count": detail["likes_count"],
            "purchased_by": detail["purchased_by"],
        }
    )


@router.put("/{note_id}", response_model=NoteResponse, summary="Edit a note (owner)")
async def update_note(
    note_id: UUID,
    body: NoteUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    note = await note_service.update_note(db, note_id, user, body)
    return NoteResponse.model_validate(note)


@router.delete("/{note_id}", response_model=MessageResponse, summary="Delete a note (owner)")
async def delete_note(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await note_service.delete_note(db, note_id, user)
    return MessageResponse(message="Note deleted")


@router.put("/{note_id}/publish", response_model=NoteResponse, summary="Publish a note (admin)")
async def publish_note(
    note_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return NoteResponse.model_validate(await note_service.set_published(db, note_id, True))


@router.put("/{note_id}/unpublish", response_model=NoteResponse, summary="Unpublish a note (admin)")
async def unpublish_note(
    note_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return NoteResponse.model_validate(await note_service.set_published(db, note_id, False))


@router.get(
    "/{note_id}/download",
    summary="Download the note document (owner or buyer)",
    responses={403: {"description": "Not purchased", "model": ErrorResponse}},
)
async def download_note(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> FileResponse:
    path, filename = await note_service.download_note(db, note_id, user)
    return FileResponse(
        path=str(path),
        media_type="application/pdf",
        filename=filename,
        headers={"Cache-Control": "private, no-store"},
    )


@router.post(
    "/{note_id}/purchase",
    status_code=201,
    response_model=SaleResponse,
    responses={
        404: {"description": "Note or buyer not found", "model": ErrorResponse},
        409: {"description": "Self-purchase or already purchased", "model": ErrorResponse},
    },
    summary="Settle a paid purchase of a note by the caller",
)
async def purchase_note(
    note_id: UUID,
    body: PurchaseNoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> SaleResponse:
    sale = await purchase_service.purchase(db, note_id, user.id, body.invoice_id, body.status)
    return SaleResponse.model_validate(sale)


# ══════════════════════════════════════════════════════════════════════════
# Reviews
# ══════════════════════════════════════════════════════════════════════════


@router.get("/{note_id}/reviews", response_model=List[ReviewResponse], summary="Reviews of a note")
async def list_reviews(note_id: UUID, db: AsyncSession = Depends(get_db_session)) -> List[ReviewResponse]:
    await note_service.get_note_or_404(db, note_id)
    return [ReviewResponse.model_validate(r) for r in await note_service.list_reviews(db, note_id)]


@router.post(
    "/{note_id}/reviews",
    status_code=201,
    response_model=ReviewResponse,
    responses={409: {"description": "Already reviewed", "model": ErrorResponse}},
    summary="Review a note (one per user)",
)
async def add_review(
    note_id: UUID,
    body: ReviewCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await note_service.add_review(db, note_id, user, body)
    return ReviewResponse.model_validate(review)


@router.put("/{note_id}/reviews/{review_id}", response_model=ReviewResponse, summary="Edit own review")
async def update_review(
    note_id: UUID,
    review_id: UUID,
    body: ReviewUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ReviewResponse:
    review = await note_service.update_review(db, note_id, review_id, user, body)
    return ReviewResponse.model_validate(review)


@router.delete("/{note_id}/reviews/{review_id}", response_model=MessageResponse, summary="Delete own review")
async def delete_review(
    note_id: UUID,
    review_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await note_service.delete_review(db, note_id, review_id, user)
    return MessageResponse(message="Review deleted")


# ══════════════════════════════════════════════════════════════════════════
# Likes
# ══════════════════════════════════════════════════════════════════════════


@router.get("/{note_id}/like", response_model=LikeStatusResponse, summary="Whether the caller liked a note")
async def like_status(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeStatusResponse:
    return LikeStatusResponse(note_id=note_id, liked=await note_service.is_liked(db, note_id, user.id))


@router.post("/{note_id}/like", response_model=LikeStatusResponse, summary="Like a note")
async def like_note(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeStatusResponse:
    await note_service.like_note(db, note_id, user)
    return LikeStatusResponse(note_id=note_id, liked=True)


@router.delete("/{note_id}/like", response_model=LikeStatusResponse, summary="Remove a like")
async def unlike_note(
    note_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LikeStatusResponse:
    await note_service.unlike_note(db, note_id, user)
    return LikeStatusResponse(note_id=note_id, liked=False)
