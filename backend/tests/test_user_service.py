"""
A+ Marketplace Backend — Users & Security Tests
=================================================

What:  Tests for password hashing, access tokens and UserService.
How:   Real bcrypt / PyJWT; in-memory SQLite for the service.

What we test:
    ✅ bcrypt round trip and malformed hashes
    ✅ Token claims, expiry and tampering
    ✅ Registration normalizes email and rejects duplicates
    ✅ Login failures are indistinguishable
    ✅ Profile update re-hashes passwords
    ✅ Best sellers: top five by sales, users without sales excluded
    ✅ Avatar upload replaces the previous stored image
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import jwt
import pytest

from aplus.config import settings
from aplus.database import commit_session
from aplus.exceptions import AuthenticationError, InvalidStateError, NotFoundError, ValidationError
from aplus.models.user import User
from aplus.schemas.user import RegisterRequest, UpdateUserRequest
from aplus.services.security import create_access_token, decode_access_token, hash_password, verify_password
from aplus.services.user_service import UserService


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_matches(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestAccessTokens:

    def setup_method(self):
        self.user = SimpleNamespace(id=uuid4(), email="a@example.com", full_name="A", role="student")

    def test_round_trip(self):
        claims = decode_access_token(create_access_token(self.user))
        assert claims["sub"] == str(self.user.id)
        assert claims["role"] == "student"
        assert claims["email"] == "a@example.com"

    def test_expired_token(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {"sub": str(self.user.id), "iat": past, "exp": past + timedelta(minutes=5)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.code == "auth.token_expired"

    def test_foreign_signature(self):
        token = jwt.encode({"sub": str(self.user.id)}, "some-other-secret-of-enough-length!!", algorithm="HS256")
        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.code == "auth.invalid_token"

    def test_missing_subject(self):
        token = jwt.encode({"email": "a@example.com"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(AuthenticationError):
            decode_access_token(token)


class TestUserService:

    def setup_method(self):
        self.service = UserService()

    def _register(self, email: str = "Student@Example.com") -> RegisterRequest:
        return RegisterRequest(full_name="  Noura Student ", email=email, password="pa55word", university="KSU")

    @pytest.mark.asyncio
    async def test_register_normalizes_email(self, db_session):
        user = await self.service.register(db_session, self._register())
        assert user.email == "student@example.com"
        assert user.full_name == "Noura Student"
        assert user.role == "student"
        assert user.withdrawal_times == settings.withdrawal_monthly_allowance
        assert verify_password("pa55word", user.password_hash)

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, db_session):
        await self.service.register(db_session, self._register())
        with pytest.raises(InvalidStateError) as exc_info:
            await self.service.register(db_session, self._register(email="STUDENT@example.com"))
        assert exc_info.value.code == "user.email_taken"

    @pytest.mark.asyncio
    async def test_login(self, db_session):
        await self.service.register(db_session, self._register())

        user, token = await self.service.login(db_session, "student@EXAMPLE.com", "pa55word")
        assert decode_access_token(token)["sub"] == str(user.id)

        with pytest.raises(AuthenticationError) as wrong_password:
            await self.service.login(db_session, "student@example.com", "nope")
        with pytest.raises(AuthenticationError) as unknown_email:
            await self.service.login(db_session, "ghost@example.com", "pa55word")
        assert wrong_password.value.message == unknown_email.value.message

    @pytest.mark.asyncio
    async def test_update_me(self, db_session):
        user = await self.service.register(db_session, self._register())
        await self.service.update_me(
            db_session, user, UpdateUserRequest(full_name="Noura A.", password="n3w-pass")
        )
        assert user.full_name == "Noura A."
        assert user.university == "KSU"
        assert verify_password("n3w-pass", user.password_hash)

    @pytest.mark.asyncio
    async def test_delete_me(self, db_session):
        user = await self.service.register(db_session, self._register())
        await self.service.delete_me(db_session, user)
        with pytest.raises(NotFoundError):
            await self.service.get_user(db_session, user.id)

    @pytest.mark.asyncio
    async def test_list_users(self, db_session, make_user):
        for _ in range(3):
            await make_user()
        users, total = await self.service.list_users(db_session, page=1, limit=2)
        assert total == 3
        assert len(users) == 2
        assert all(isinstance(u, User) for u in users)

    @pytest.mark.asyncio
    async def test_best_sellers(self, db_session, make_user):
        for sales in (0, 3, 9, 1, 4, 7, 2):
            await make_user(number_of_sales=sales)

        sellers = await self.service.best_sellers(db_session)
        assert [u.number_of_sales for u in sellers] == [9, 7, 4, 3, 2]

    @pytest.mark.asyncio
    async def test_best_sellers_skips_users_without_sales(self, db_session, make_user):
        await make_user()
        assert await self.service.best_sellers(db_session) == []


class TestAvatar:

    def setup_method(self):
        self.service = UserService()

    @pytest.mark.asyncio
    async def test_avatar_replaced(self, db_session, make_user, temp_storage, sample_image_bytes):
        user = await self.service.get_user(db_session, (await make_user()).id)

        first = await self.service.update_avatar(db_session, user, "me.png", sample_image_bytes)
        first_url = first.avatar
        await commit_session(db_session)
        assert first_url.endswith(".png")
        assert len(list(temp_storage.rglob("*.png"))) == 1

        await self.service.update_avatar(db_session, user, "me-again.png", sample_image_bytes)
        await commit_session(db_session)
        assert user.avatar != first_url

        stored = list(temp_storage.rglob("*.png"))
        assert len(stored) == 1
        assert user.avatar.endswith(stored[0].name)

    @pytest.mark.asyncio
    async def test_avatar_required(self, db_session, make_user, temp_storage):
        user = await self.service.get_user(db_session, (await make_user()).id)
        with pytest.raises(ValidationError) as exc_info:
            await self.service.update_avatar(db_session, user, "", b"")
        assert exc_info.value.code == "user.avatar_required"
        assert user.avatar is None

    @pytest.mark.asyncio
    async def test_document_rejected_as_avatar(
        self, db_session, make_user, temp_storage, sample_pdf_bytes
    ):
        user = await self.service.get_user(db_session, (await make_user()).id)
        with pytest.raises(ValidationError):
            await self.service.update_avatar(db_session, user, "cv.pdf", sample_pdf_bytes)
        assert list(temp_storage.rglob("*.*")) == []
