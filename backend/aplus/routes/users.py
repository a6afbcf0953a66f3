"""
A+ Marketplace Backend — User & Auth Routes
=============================================

What:  Registration, login, the caller's own account and avatar, public
       seller profiles, the best-seller board and the admin user list.
Who:   Frontend auth screens and profile pages.

Endpoints:
    POST   /api/v1/users/register
    POST   /api/v1/users/login
    GET    /api/v1/users/me
    PUT    /api/v1/users/me
    DELETE /api/v1/users/me
    POST   /api/v1/users/me/avatar
    GET    /api/v1/users/best-sellers
    GET    /api/v1/users/{user_id}/public
    GET    /api/v1/users                 (admin)
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.config import settings
from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user, require_admin
from aplus.schemas.common import ErrorResponse, MessageResponse, PageMeta
from aplus.schemas.user import (
    LoginRequest,
    PublicProfileResponse,
    RegisterRequest,
    TokenResponse,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)
from aplus.services.security import create_access_token
from aplus.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _token_response(user: User, token: str) -> TokenResponse:
    return TokenResponse(
        access_token=token,
        expires_in=settings.access_token_ttl_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post(
    "/register",
    status_code=201,
    response_model=TokenResponse,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create an account and return an access token",
)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db_session)) -> TokenResponse:
    user = await user_service.register(db, body)
    return _token_response(user, create_access_token(user))


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for an access token",
)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db_session)) -> TokenResponse:
    user, token = await user_service.login(db, body.email, body.password)
    return _token_response(user, token)


@router.get("/me", response_model=UserResponse, summary="The caller's account")
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.put("/me", response_model=UserResponse, summary="Update name, university or password")
async def update_me(
    body: UpdateUserRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    updated = await user_service.update_me(db, user, body)
    return UserResponse.model_validate(updated)


@router.post(
    "/me/avatar",
    response_model=UserResponse,
    responses={400: {"description": "Missing or invalid image", "model": ErrorResponse}},
    summary="Upload a new profile picture",
)
async def update_avatar(
    file: Optional[UploadFile] = File(default=None, description="Avatar image (PNG, JPEG, WebP)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    filename, content = "", b""
    if file is not None:
        try:
            filename, content = file.filename or "", await file.read()
        finally:
            await file.close()
    updated = await user_service.update_avatar(db, user, filename, content)
    return UserResponse.model_validate(updated)


@router.delete("/me", response_model=MessageResponse, summary="Delete the caller's account")
async def delete_me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.delete_me(db, user)
    return MessageResponse(message="Account deleted")


@router.get("/best-sellers", response_model=List[PublicProfileResponse], summary="Top sellers by number of sales")
async def best_sellers(db: AsyncSession = Depends(get_db_session)) -> List[PublicProfileResponse]:
    users = await user_service.best_sellers(db)
    return [PublicProfileResponse.model_validate(u) for u in users]


@router.get(
    "/{user_id}/public",
    response_model=PublicProfileResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Public seller profile",
)
async def get_public_profile(user_id: UUID, db: AsyncSession = Depends(get_db_session)) -> PublicProfileResponse:
    user = await user_service.get_user(db, user_id)
    return PublicProfileResponse.model_validate(user)


@router.get("", response_model=UserListResponse, summary="List all users (admin)")
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users, total = await user_service.list_users(db, page=page, limit=limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        pagination=PageMeta.build(page, limit, total),
    )
