"""
A+ Marketplace Backend — User Service
=======================================

What:  Registration, login, profile and avatar management, the best-seller
       board and the admin user list.
How:   Emails are normalized to lower case; uniqueness is enforced by the
       `users.email` unique index and surfaced as InvalidStateError.
Who:   routes/users.py; the bearer guard uses `get_user`.
"""

import logging
from functools import partial
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.config import settings
from aplus.database import flush_or_conflict, register_after_commit
from aplus.exceptions import AuthenticationError, InvalidStateError, NotFoundError, ValidationError
from aplus.models.user import User
from aplus.schemas.user import RegisterRequest, UpdateUserRequest
from aplus.services.file_service import IMAGE, file_service
from aplus.services.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class UserService:

    async def get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=user_id)
        return user

    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def register(self, db: AsyncSession, data: RegisterRequest) -> User:
        email = data.email.strip().lower()
        if await self.get_by_email(db, email) is not None:
            raise InvalidStateError(code="user.email_taken")

        user = User(
            full_name=data.full_name,
            email=email,
            password_hash=hash_password(data.password),
            university=data.university,
            withdrawal_times=settings.withdrawal_monthly_allowance,
        )
        db.add(user)
        await flush_or_conflict(db, code="user.email_taken")
        logger.info("User registered: %s", user.id)
        return user

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
        """Returns (user, access_token); any mismatch is the same 401."""
        user = await self.get_by_email(db, email)
        if user is None or not verify_password(password, user.password_hash):
            raise AuthenticationError(code="auth.invalid_credentials")
        return user, create_access_token(user)

    async def update_me(self, db: AsyncSession, user: User, data: UpdateUserRequest) -> User:
        if data.full_name is not None:
            user.full_name = data.full_name.strip()
        if data.university is not None:
            user.university = data.university
        if data.password is not None:
            user.password_hash = hash_password(data.password)
        await db.flush()
        return user

    async def update_avatar(self, db: AsyncSession, user: User, filename: str, content: bytes) -> User:
        """
        Store a new avatar image and point the user at it.

        The previous stored avatar is removed once the change commits; the
        new file is removed again if the update fails.

        Raises:
            ValidationError: no file, or not an accepted image
        """
        if not content:
            raise ValidationError(field="file", code="user.avatar_required")

        stored = await file_service.upload(filename, content, IMAGE)
        previous = file_service.relative_from_url(user.avatar) if user.avatar else None
        try:
            user.avatar = stored.url
            await db.flush()
        except Exception:
            await file_service.cleanup_file(stored.absolute_path)
            raise

        if previous:
            old_path = str(file_service.storage_root / previous)
            register_after_commit(db, partial(file_service.cleanup_file, old_path))
        logger.info("Avatar updated: user=%s", user.id)
        return user

    async def best_sellers(self, db: AsyncSession, limit: int = 5) -> List[User]:
        """Users with at least one sale, most sales first."""
        result = await db.execute(
            select(User)
            .where(User.number_of_sales > 0)
            .order_by(User.number_of_sales.desc(), User.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def delete_me(self, db: AsyncSession, user: User) -> None:
        await db.delete(user)
        await db.flush()
        logger.info("User deleted: %s", user.id)

    async def list_users(self, db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        total = (await db.execute(select(func.count(User.id)))).scalar() or 0
        result = await db.execute(
            select(User).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
