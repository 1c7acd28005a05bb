"""Auth API routes: admin, jury and team portal login; back-office accounts."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select, update

import config
from festival.models import Jury, Team, User
from festival.models.base import async_session_factory, utcnow
from web.auth import (
    JURY_ROLE,
    TEAM_ROLE,
    create_access_token,
    get_current_user,
    get_user_by_username,
    hash_password,
    require_admin_user,
    require_user,
    verify_password,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    role: str


class PortalLoginRequest(BaseModel):
    id: str  # jury id or team id
    password: str


class PortalLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    id: str
    name: str
    role: str


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    role: str
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None


class CreateAccountRequest(BaseModel):
    username: str
    password: str
    role: Literal["user", "admin"] = "user"


def _is_initial_admin(body: LoginRequest) -> bool:
    return bool(config.INITIAL_ADMIN_PASSWORD) and (
        body.username == config.INITIAL_ADMIN_USERNAME and body.password == config.INITIAL_ADMIN_PASSWORD
    )


def _user_token(user: User) -> LoginResponse:
    return LoginResponse(
        access_token=create_access_token(user.username, user.role),
        username=user.username,
        role=user.role,
    )


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest):
    """Back-office login. The first login with INITIAL_ADMIN_PASSWORD creates that admin."""
    user = await get_user_by_username(body.username)
    async with async_session_factory() as session:
        if user is None:
            if not _is_initial_admin(body):
                raise HTTPException(status_code=401, detail="Invalid username or password")
            user = User(
                username=body.username,
                password_hash=hash_password(body.password),
                role="admin",
                last_login_at=utcnow(),
            )
            session.add(user)
        elif verify_password(body.password, user.password_hash):
            await session.execute(update(User).where(User.id == user.id).values(last_login_at=utcnow()))
        else:
            raise HTTPException(status_code=401, detail="Invalid username or password")
        await session.commit()
    return _user_token(user)


@router.post("/jury/login", response_model=PortalLoginResponse)
async def jury_login(body: PortalLoginRequest):
    async with async_session_factory() as session:
        jury = await session.get(Jury, body.id)
    if jury is None or not verify_password(body.password, jury.password_hash):
        raise HTTPException(status_code=401, detail="Invalid jury credentials")
    return PortalLoginResponse(
        access_token=create_access_token(jury.id, JURY_ROLE), id=jury.id, name=jury.name, role=JURY_ROLE
    )


@router.post("/team/login", response_model=PortalLoginResponse)
async def team_login(body: PortalLoginRequest):
    """Team portal login. Teams without a portal password cannot log in."""
    async with async_session_factory() as session:
        team = await session.get(Team, body.id)
    if team is None or not verify_password(body.password, team.portal_password_hash):
        raise HTTPException(status_code=401, detail="Invalid team credentials")
    return PortalLoginResponse(
        access_token=create_access_token(team.id, TEAM_ROLE), id=team.id, name=team.name, role=TEAM_ROLE
    )


@router.get("/me")
async def get_me(user: User = Depends(require_user)):
    return {"username": user.username, "role": user.role}


@router.get("/me/optional")
async def get_me_optional(user: Optional[User] = Depends(get_current_user)):
    """Current back-office user, or null. Lets the admin UI check its session."""
    return {"username": user.username, "role": user.role} if user else None


@router.get("/users", response_model=list[AccountResponse])
async def list_accounts(admin: User = Depends(require_admin_user)):
    async with async_session_factory() as session:
        result = await session.execute(select(User).order_by(User.username))
        return [AccountResponse.model_validate(u) for u in result.scalars().all()]


@router.post("/users", response_model=AccountResponse)
async def create_account(body: CreateAccountRequest, admin: User = Depends(require_admin_user)):
    if await get_user_by_username(body.username):
        raise HTTPException(400, "Username already exists")
    account = User(username=body.username, password_hash=hash_password(body.password), role=body.role)
    async with async_session_factory() as session:
        session.add(account)
        await session.commit()
    return AccountResponse.model_validate(account)


@router.delete("/users/{username}")
async def delete_account(username: str, admin: User = Depends(require_admin_user)):
    """Remove a back-office account. Admins cannot remove themselves."""
    if username == admin.username:
        raise HTTPException(400, "Cannot delete your own account")
    account = await get_user_by_username(username)
    if account is None:
        raise HTTPException(404, "User not found")
    async with async_session_factory() as session:
        await session.delete(await session.merge(account))
        await session.commit()
    return {"ok": True}
