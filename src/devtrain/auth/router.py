"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devtrain.auth.dependencies import get_current_user
from devtrain.auth.jwt import create_access_token, create_refresh_token, verify_token
from devtrain.auth.password import PasswordStrengthError
from devtrain.auth.schemas import (
    AuthUserResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    SignupRequest,
    TokenResponse,
)
from devtrain.auth.service import (
    authenticate_user,
    get_active_refresh_token,
    get_user_by_id,
    hash_token,
    register_user,
    revoke_refresh_token,
    rotate_refresh_token,
    store_refresh_token,
)
from devtrain.config import get_settings
from devtrain.database import get_session
from devtrain.db.models import RefreshToken, User
from devtrain.errors import AuthenticationError, ConflictError, ValidationError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


async def _issue_tokens(
    db: AsyncSession,
    user: User,
    *,
    replacing: RefreshToken | None = None,
) -> TokenResponse:
    """Create access + refresh tokens and store the refresh token hash."""
    settings = get_settings()
    token_id = str(uuid.uuid4())
    access_token = create_access_token(user.id, user.email)
    refresh_token = create_refresh_token(user.id, user.email, token_id=token_id)
    expires_at = datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days)

    if replacing is None:
        await store_refresh_token(
            db,
            user_id=user.id,
            token_id=token_id,
            token_hash=hash_token(refresh_token),
            expires_at=expires_at,
        )
    else:
        await rotate_refresh_token(db, replacing, token_id, hash_token(refresh_token), expires_at)
    await db.commit()

    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=AuthUserResponse.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Register with email + password and sign the new user in."""
    try:
        user = await register_user(db, email=body.email, password=body.password)
    except PasswordStrengthError as e:
        raise ValidationError(details=[{"field": "password", "message": str(e)}]) from e
    except ValueError as e:
        raise ConflictError(str(e)) from e

    return await _issue_tokens(db, user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        raise AuthenticationError(str(e)) from e

    return await _issue_tokens(db, user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange a refresh token for a new token pair, revoking the old one."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
        stored = await get_active_refresh_token(db, payload["jti"], body.refresh_token)
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthenticationError("Invalid or expired refresh token") from e

    user = await get_user_by_id(db, stored.user_id)
    if user is None:
        raise AuthenticationError("Invalid or expired refresh token")

    return await _issue_tokens(db, user, replacing=stored)


@router.post("/logout")
async def logout(
    body: LogoutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Revoke the caller's refresh token. Succeeds even if the token is already gone."""
    try:
        payload = verify_token(body.refresh_token, expected_type="refresh")
    except jwt.InvalidTokenError:
        payload = {}

    token_id = payload.get("jti")
    if token_id and await revoke_refresh_token(db, token_id, user.id):
        await db.commit()
        logger.info("user_logged_out", user_id=str(user.id))

    return {"status": "logged_out"}
