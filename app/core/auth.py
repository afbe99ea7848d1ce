from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import UnauthorizedError
from app.domains.identity.entities import User
from app.domains.identity.services import IdentityService

# auto_error=False so a missing header is rendered by our own error handler
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Authenticated identity for owner-only routes; no identity is a 401"""
    if credentials is None:
        raise UnauthorizedError()

    identity_service = IdentityService(db)
    user = await identity_service.get_current_user_from_token(credentials.credentials)

    if user is None:
        raise UnauthorizedError("Could not validate credentials")

    return user
