"""Auth service — password hashing, registration, JWT management, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import re
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi.exceptions import HTTPException
from jose import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.models import UserSession
from leavedesk.auth.schemas import RegisterRequest
from leavedesk.common.constants import ErrorCode, UserRole
from leavedesk.common.exceptions import ConflictError, ValidationException
from leavedesk.config import settings
from leavedesk.users.models import User

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+-]{2,}@[A-Za-z0-9.-]{2,}\.[A-Za-z]{2,}$")
_MIN_PASSWORD_LENGTH = 8


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(plain_password: str) -> str:
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ── Registration ────────────────────────────────────────────────────

async def register_user(db: AsyncSession, data: RegisterRequest) -> User:
    """Create a user after format and uniqueness checks."""
    errors: dict[str, list[str]] = {}
    name = data.name.strip()
    email = data.email.strip().lower()
    if len(name) <= 2:
        errors["name"] = ["Name must be longer than 2 characters."]
    if not _EMAIL_RE.match(email):
        errors["email"] = ["Invalid email format."]
    if len(data.password) < _MIN_PASSWORD_LENGTH:
        errors["password"] = [
            f"Password must be at least {_MIN_PASSWORD_LENGTH} characters."
        ]
    if errors:
        raise ValidationException(errors)

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar() is not None:
        raise ConflictError("email", email, code=ErrorCode.duplicate_user)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(data.password),
        role=data.role or UserRole.employee,
        leave_balance=settings.DEFAULT_LEAVE_BALANCE,
    )
    db.add(user)
    await db.flush()

    logger.info("Registered user %s with role %s", user.id, user.role.value)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for valid credentials, otherwise raise 401."""
    result = await db.execute(
        select(User).where(User.email == email.strip().lower())
    )
    user = result.scalars().first()
    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    return user


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(user_id: uuid.UUID, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(user_id),
        "role": role.value,
        "type": "access",
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


# ── Session management ──────────────────────────────────────────────

async def create_session(db: AsyncSession, user: User) -> tuple[str, int]:
    """Issue an access token and persist its session.  Returns (token, expires_in)."""
    access_token, expires_in = create_access_token(user.id, user.role)

    session = UserSession(
        user_id=user.id,
        token_hash=hash_token(access_token),
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
    db.add(session)
    await db.flush()

    logger.info("Opened session %s for user %s", session.id, user.id)
    return access_token, expires_in


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()
        logger.info("Revoked session %s", session.id)
