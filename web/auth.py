"""Authentication for the festival API: password hashing, JWT, principal dependencies.

Three kinds of principals share one token format ({"sub", "role"}):
back-office users (web_users table, role "admin" or "user"), juries
(sub = jury id, role "jury") and team portals (sub = team id, role "team").
"""
from __future__ import annotations

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy import select

import config
from festival.models import Jury, Team, User
from festival.models.base import async_session_factory

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)

USER_ROLES = ("user", "admin")
JURY_ROLE = "jury"
TEAM_ROLE = "team"


def _bcrypt_input(password: str) -> str:
    # bcrypt only reads the first 72 bytes
    raw = password.encode("utf-8")
    return hashlib.sha256(raw).hexdigest() if len(raw) > 72 else password


def hash_password(password: str) -> str:
    return pwd_context.hash(_bcrypt_input(password))


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """False when no hash is stored (e.g. a team without portal access)."""
    return bool(hashed) and pwd_context.verify(_bcrypt_input(plain), hashed)


def create_access_token(subject: str, role: str) -> str:
    claims = {
        "sub": subject,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRE_DAYS),
    }
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


async def get_user_by_username(username: str) -> Optional[User]:
    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()


async def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    x_auth_token: Optional[str] = Header(None, alias="X-Auth-Token"),
) -> Optional[dict]:
    """Claims of the bearer token, or of X-Auth-Token when a proxy strips Authorization."""
    token = credentials.credentials if credentials and credentials.credentials else x_auth_token
    if not token:
        return None
    claims = decode_token(token)
    return claims if claims and claims.get("sub") else None


def _not_authenticated() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def get_current_user(claims: Optional[dict] = Depends(get_token_payload)) -> Optional[User]:
    """Back-office user behind the token, or None (juries and teams are not users)."""
    if not claims or claims.get("role") not in USER_ROLES:
        return None
    return await get_user_by_username(claims["sub"])


async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise _not_authenticated()
    return user


def require_admin(user: User) -> User:
    if user.role != "admin":
        raise _forbidden("Admin access required")
    return user


async def require_admin_user(user: User = Depends(require_user)) -> User:
    """Dependency for admin-only routes."""
    return require_admin(user)


async def _principal(claims: Optional[dict], role: str, model):
    if not claims:
        raise _not_authenticated()
    if claims.get("role") != role:
        raise _forbidden(f"{role.capitalize()} access required")
    async with async_session_factory() as session:
        principal = await session.get(model, claims["sub"])
    if principal is None:
        raise _not_authenticated()
    return principal


async def require_jury(claims: Optional[dict] = Depends(get_token_payload)) -> Jury:
    return await _principal(claims, JURY_ROLE, Jury)


async def require_team(claims: Optional[dict] = Depends(get_token_payload)) -> Team:
    """Team portal session. The team row must still exist."""
    return await _principal(claims, TEAM_ROLE, Team)
