"""Auth router — register, login, logout, current user profile."""


from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import extract_bearer, get_current_user
from leavedesk.auth.schemas import LoginRequest, RegisterRequest, TokenResponse
from leavedesk.auth.service import (
    authenticate,
    create_session,
    hash_token,
    register_user,
    revoke_session,
)
from leavedesk.common.rate_limit import limiter
from leavedesk.config import settings
from leavedesk.database import get_db
from leavedesk.users.models import User
from leavedesk.users.schemas import UserOut

router = APIRouter(prefix="", tags=["auth"])


# ── POST /register ──────────────────────────────────────────────────

@router.post("/register", response_model=UserOut, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    return await register_user(db, body)


# ── POST /login — Issue access token ────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate(db, body.email, body.password)
    access_token, expires_in = await create_session(db, user)
    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserOut.model_validate(user),
    )


# ── POST /logout — Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, hash_token(extract_bearer(request)))
    return {"message": "Logged out successfully"}


# ── GET /me — Current user profile ─────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return user
