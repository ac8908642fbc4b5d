"""FastAPI dependencies for authentication and service wiring.

Dependencies:
  get_current_user  → decode the bearer JWT and load the User, or None
                      when no token was sent
  get_services      → the request's Services bundle (one AsyncSession)

Anonymous callers are passed through as None; the core decides whether
an operation needs an identified user (AuthenticationRequired → 401).
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from kpiboard.auth.jwt import decode_token
from kpiboard.container import Services
from kpiboard.database import get_db
from kpiboard.errors import AuthenticationRequired
from kpiboard.models.user import User
from kpiboard.repositories import UserDirectory

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Return the authenticated user, or None for anonymous requests.

    A token that is present but invalid, expired, or points at an inactive
    user is rejected outright rather than treated as anonymous.
    """
    if credentials is None:
        return None

    payload = decode_token(credentials.credentials)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise AuthenticationRequired("Invalid or expired token")

    user = await UserDirectory(db).get(user_id)
    if not user or not user.is_active:
        raise AuthenticationRequired("User not found or inactive")
    return user


async def get_services(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Services:
    return request.app.state.service_factory.build(db)
