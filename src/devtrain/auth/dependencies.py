"""FastAPI authentication dependencies."""

from __future__ import annotations

import uuid

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from devtrain.auth.jwt import verify_token
from devtrain.auth.service import get_user_by_id
from devtrain.database import get_session
from devtrain.db.models import User
from devtrain.errors import AuthenticationError

# auto_error=False so a missing header gets the same 401 envelope as a bad token.
_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User model.

    Raises AuthenticationError (401) when the token is missing, invalid,
    expired, or names a user that no longer exists.
    """
    if credentials is None:
        raise AuthenticationError

    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthenticationError from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise AuthenticationError
    return user
