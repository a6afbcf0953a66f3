"""
A+ Marketplace Backend — Customer Rating Routes
=================================================

Endpoints (prefix /api/v1/customer-ratings):
    GET    ""                  published ratings
    GET    /all                every rating (admin)
    GET    /me/has-rated
    POST   ""                  one per customer
    PUT    /{id} | DELETE /{id}  author or admin
    PUT    /{id}/publish | /unpublish  (admin)
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user, require_admin
from aplus.schemas.common import ErrorResponse, MessageResponse
from aplus.schemas.customer_rating import (
    CustomerRatingCreate,
    CustomerRatingResponse,
    CustomerRatingUpdate,
    HasRatedResponse,
)
from aplus.services.customer_rating_service import customer_rating_service

router = APIRouter(prefix="/api/v1/customer-ratings", tags=["Customer Ratings"])


@router.get("", response_model=List[CustomerRatingResponse], summary="Published ratings")
async def list_published(db: AsyncSession = Depends(get_db_session)) -> List[CustomerRatingResponse]:
    return [CustomerRatingResponse.model_validate(r) for r in await customer_rating_service.list_published(db)]


@router.get("/all", response_model=List[CustomerRatingResponse], summary="All ratings (admin)")
async def list_all(
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> List[CustomerRatingResponse]:
    return [CustomerRatingResponse.model_validate(r) for r in await customer_rating_service.list_all(db)]


@router.get("/me/has-rated", response_model=HasRatedResponse, summary="Whether the caller already rated")
async def has_rated(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> HasRatedResponse:
    return HasRatedResponse(has_rated=await customer_rating_service.has_rated(db, user.id))


@router.post(
    "",
    status_code=201,
    response_model=CustomerRatingResponse,
    responses={409: {"description": "Already rated", "model": ErrorResponse}},
    summary="Rate the platform",
)
async def create_rating(
    body: CustomerRatingCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerRatingResponse:
    return CustomerRatingResponse.model_validate(await customer_rating_service.create(db, user, body))


@router.put("/{rating_id}", response_model=CustomerRatingResponse, summary="Edit a rating")
async def update_rating(
    rating_id: UUID,
    body: CustomerRatingUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerRatingResponse:
    return CustomerRatingResponse.model_validate(await customer_rating_service.update(db, rating_id, user, body))


@router.delete("/{rating_id}", response_model=MessageResponse, summary="Delete a rating")
async def delete_rating(
    rating_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await customer_rating_service.delete(db, rating_id, user)
    return MessageResponse(message="Rating deleted")


@router.put("/{rating_id}/publish", response_model=CustomerRatingResponse, summary="Publish (admin)")
async def publish_rating(
    rating_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerRatingResponse:
    return CustomerRatingResponse.model_validate(await customer_rating_service.set_published(db, rating_id, True))


@router.put("/{rating_id}/unpublish", response_model=CustomerRatingResponse, summary="Unpublish (admin)")
async def unpublish_rating(
    rating_id: UUID,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> CustomerRatingResponse:
    return CustomerRatingResponse.model_validate(
        await customer_rating_service.set_published(db, rating_id, False)
    )
