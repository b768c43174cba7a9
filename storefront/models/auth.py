"""Authentication data models (Supabase GoTrue payloads)."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Authenticated user as reported by the identity service."""

    id: str = Field(..., description="Stable user id (GoTrue uuid)")
    email: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class AuthSession(BaseModel):
    """Session issued by a successful sign-in."""

    # Tokens must never end up in logs
    access_token: str = Field(..., repr=False)
    refresh_token: str = Field(..., repr=False)
    expires_in: int = Field(default=3600, ge=0)
    token_type: str = "bearer"
    user: AuthUser

    model_config = ConfigDict(extra="ignore")


class SignUpResult(BaseModel):
    """Outcome of a sign-up call.

    ``session`` is ``None`` when the project requires e-mail confirmation.
    """

    user: AuthUser
    session: Optional[AuthSession] = None
