"""Pydantic models for auth domain."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class Session(BaseModel):
    """An active user session."""

    token: str = Field(..., description="Session token (opaque string)")
    user_id: UUID
    email: str = ""
    created_at: datetime
    expires_at: datetime
    last_activity_at: datetime


class LoginRequest(BaseModel):
    """Request payload for password sign-in."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class AuthenticatedUser(BaseModel):
    """Account info returned after a successful sign-in."""

    user_id: UUID
    email: str
    session: Session
