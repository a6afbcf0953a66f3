"""
A+ Marketplace Backend — Customer Rating Service
==================================================

What:  Platform testimonials: one rating per customer, editable by its
       author or an admin, shown publicly once published.
Who:   routes/customer_ratings.py.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import flush_or_conflict
from aplus.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from aplus.models.customer_rating import CustomerRating
from aplus.models.user import User
from aplus.schemas.customer_rating import CustomerRatingCreate, CustomerRatingUpdate

logger = logging.getLogger(__name__)


class CustomerRatingService:

    async def _get(self, db: AsyncSession, rating_id: UUID) -> CustomerRating:
        rating = await db.get(CustomerRating, rating_id)
        if rating is None:
            raise NotFoundError(resource="rating", resource_id=rating_id)
        return rating

    def _ensure_author_or_admin(self, rating: CustomerRating, user: User) -> None:
        if rating.customer_id != user.id and not user.is_admin:
            raise PermissionDeniedError(code="rating.not_author")

    async def has_rated(self, db: AsyncSession, customer_id: UUID) -> bool:
        result = await db.execute(select(CustomerRating.id).where(CustomerRating.customer_id == customer_id))
        return result.first() is not None

    async def create(self, db: AsyncSession, customer: User, data: CustomerRatingCreate) -> CustomerRating:
        if await self.has_rated(db, customer.id):
            raise InvalidStateError(code="rating.already_exists")

        rating = CustomerRating(
            customer_id=customer.id,
            full_name=customer.full_name,
            rating=data.rating,
            comment=data.comment,
        )
        db.add(rating)
        await flush_or_conflict(db, code="rating.already_exists")
        logger.info("Customer rating created: id=%s customer=%s", rating.id, customer.id)
        return rating

    async def list_published(self, db: AsyncSession) -> List[CustomerRating]:
        result = await db.execute(
            select(CustomerRating)
            .where(CustomerRating.is_publish.is_(True))
            .order_by(CustomerRating.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_all(self, db: AsyncSession) -> List[CustomerRating]:
        result = await db.execute(select(CustomerRating).order_by(CustomerRating.created_at.desc()))
        return list(result.scalars().all())

    async def update(
        self, db: AsyncSession, rating_id: UUID, user: User, data: CustomerRatingUpdate
    ) -> CustomerRating:
        rating = await self._get(db, rating_id)
        self._ensure_author_or_admin(rating, user)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(rating, field, value)
        await db.flush()
        return rating

    async def delete(self, db: AsyncSession, rating_id: UUID, user: User) -> None:
        rating = await self._get(db, rating_id)
        self._ensure_author_or_admin(rating, user)
        await db.delete(rating)
        await db.flush()

    async def set_published(self, db: AsyncSession, rating_id: UUID, published: bool) -> CustomerRating:
        rating = await self._get(db, rating_id)
        rating.is_publish = published
        await db.flush()
        return rating


# ── Singleton Instance ────────────────────────────────────────────────────
customer_rating_service = CustomerRatingService()
