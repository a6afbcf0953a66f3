"""
A+ Marketplace Backend — Customer Rating Tests
================================================

What:  Tests for platform testimonials: one per customer, author-or-admin
       edits, published-only public list.
"""

import pytest

from aplus.exceptions import InvalidStateError, PermissionDeniedError
from aplus.schemas.customer_rating import CustomerRatingCreate, CustomerRatingUpdate
from aplus.services.customer_rating_service import CustomerRatingService


class TestCustomerRatings:

    def setup_method(self):
        self.service = CustomerRatingService()

    @pytest.mark.asyncio
    async def test_one_rating_per_customer(self, db_session, buyer):
        assert not await self.service.has_rated(db_session, buyer.id)

        rating = await self.service.create(db_session, buyer, CustomerRatingCreate(rating=5, comment="Love it"))
        assert rating.full_name == buyer.full_name
        assert await self.service.has_rated(db_session, buyer.id)

        with pytest.raises(InvalidStateError) as exc_info:
            await self.service.create(db_session, buyer, CustomerRatingCreate(rating=1, comment="Again"))
        assert exc_info.value.code == "rating.already_exists"

    @pytest.mark.asyncio
    async def test_public_list_hides_unpublished(self, db_session, buyer, seller):
        visible = await self.service.create(db_session, buyer, CustomerRatingCreate(rating=5, comment="Great"))
        hidden = await self.service.create(db_session, seller, CustomerRatingCreate(rating=2, comment="Slow"))
        await self.service.set_published(db_session, hidden.id, False)

        assert [r.id for r in await self.service.list_published(db_session)] == [visible.id]
        assert len(await self.service.list_all(db_session)) == 2

    @pytest.mark.asyncio
    async def test_author_or_admin_edits(self, db_session, buyer, seller, admin):
        rating = await self.service.create(db_session, buyer, CustomerRatingCreate(rating=3, comment="Fine"))

        updated = await self.service.update(db_session, rating.id, buyer, CustomerRatingUpdate(rating=4))
        assert updated.rating == 4
        assert updated.comment == "Fine"

        with pytest.raises(PermissionDeniedError):
            await self.service.update(db_session, rating.id, seller, CustomerRatingUpdate(rating=1))

        await self.service.update(db_session, rating.id, admin, CustomerRatingUpdate(comment="Edited"))
        await self.service.delete(db_session, rating.id, admin)
        assert not await self.service.has_rated(db_session, buyer.id)
