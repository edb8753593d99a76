"""
Authentication business logic.

Handles user creation, credential checks, and refresh-token storage,
rotation and revocation.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from devtrain.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from devtrain.db.models import RefreshToken, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

# Verified against when the email is unknown so both failure paths cost one argon2 check.
_DUMMY_HASH = hash_password("devtrain-dummy-password")


def hash_token(raw_token: str) -> str:
    """SHA-256 hex digest used to store refresh tokens at rest."""
    return hashlib.sha256(raw_token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    """Fetch a user by ID."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


async def register_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Register a new user with email + password.

    Raises:
        PasswordStrengthError: If the password is outside the allowed length.
        ValueError: If the email is already registered.
    """
    validate_password_strength(password)

    normalized = email.lower().strip()
    if await get_user_by_email(db, normalized) is not None:
        msg = "An account with this email already exists"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        email=normalized,
        password_hash=hash_password(password),
        created_at=now,
        last_login=now,
        login_count=1,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=str(user.id))
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        ValueError: If credentials are invalid. The message never reveals which part was wrong.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        msg = "Invalid email or password"
        raise ValueError(msg)

    if not verify_password(password, user.password_hash):
        logger.info("login_failed", user_id=str(user.id))
        msg = "Invalid email or password"
        raise ValueError(msg)

    user.last_login = datetime.now(timezone.utc)
    user.login_count = (user.login_count or 0) + 1

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=str(user.id))

    await db.flush()
    return user


# ---------------------------------------------------------------------------
# Refresh tokens
# ---------------------------------------------------------------------------


async def store_refresh_token(
    db: AsyncSession,
    user_id: uuid.UUID,
    token_id: str,
    token_hash: str,
    expires_at: datetime,
) -> RefreshToken:
    """Store a refresh token hash in the database."""
    token = RefreshToken(
        id=token_id,
        user_id=user_id,
        token_hash=token_hash,
        issued_at=datetime.now(timezone.utc),
        expires_at=expires_at,
    )
    db.add(token)
    await db.flush()
    return token


async def get_refresh_token(db: AsyncSession, token_id: str) -> RefreshToken | None:
    """Look up a refresh token by its JTI."""
    return await db.get(RefreshToken, token_id)


async def get_active_refresh_token(db: AsyncSession, token_id: str, raw_token: str) -> RefreshToken:
    """
    Return the stored token for ``token_id`` if it can still be exchanged.

    Raises:
        ValueError: If the token is unknown, revoked, expired, or the hash does not match.
    """
    token = await get_refresh_token(db, token_id)
    if token is None or token.token_hash != hash_token(raw_token):
        msg = "Refresh token not recognized"
        raise ValueError(msg)
    if token.is_revoked:
        msg = "Refresh token has been revoked"
        raise ValueError(msg)
    if token.expires_at < datetime.now(timezone.utc):
        msg = "Refresh token has expired"
        raise ValueError(msg)
    return token


async def rotate_refresh_token(
    db: AsyncSession,
    old_token: RefreshToken,
    new_token_id: str,
    new_token_hash: str,
    new_expires_at: datetime,
) -> RefreshToken:
    """Revoke old token and create a new one (rotation)."""
    old_token.is_revoked = True
    old_token.revoked_at = datetime.now(timezone.utc)
    old_token.replaced_by = new_token_id

    return await store_refresh_token(
        db,
        user_id=old_token.user_id,
        token_id=new_token_id,
        token_hash=new_token_hash,
        expires_at=new_expires_at,
    )


async def revoke_refresh_token(db: AsyncSession, token_id: str, user_id: uuid.UUID) -> bool:
    """Revoke one of the user's refresh tokens. Returns True if it was found."""
    token = await get_refresh_token(db, token_id)
    if token is None or token.user_id != user_id:
        return False
    if not token.is_revoked:
        token.is_revoked = True
        token.revoked_at = datetime.now(timezone.utc)
        await db.flush()
    return True
