"""Auth Pydantic schemas for request / response validation."""


from typing import Optional

from pydantic import BaseModel, Field

from leavedesk.common.constants import UserRole
from leavedesk.users.schemas import UserOut


# ── Requests ────────────────────────────────────────────────────────

class RegisterRequest(BaseModel):
    name: str = Field(..., max_length=150)
    email: str = Field(..., max_length=255)
    password: str = Field(..., max_length=128)
    role: Optional[UserRole] = None


class LoginRequest(BaseModel):
    email: str
    password: str


# ── Responses ───────────────────────────────────────────────────────

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
