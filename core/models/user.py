"""Back-office accounts: profile and role are separate rows keyed by the account id."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class AppRole(str, Enum):
    """Ordered lecteur < secretaire < admin."""

    ADMIN = "admin"
    SECRETAIRE = "secretaire"
    LECTEUR = "lecteur"


DEFAULT_ROLE = AppRole.LECTEUR


class Profile(BaseModel):
    id: UUID
    email: str
    full_name: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserRole(BaseModel):
    id: UUID
    user_id: UUID
    role: AppRole
    created_at: datetime

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Data required to create a back-office account."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    full_name: str = Field("", max_length=255)
    role: AppRole = DEFAULT_ROLE


class ManagedUser(BaseModel):
    """A profile joined with its role, as listed on the users page."""

    id: UUID
    email: str
    full_name: str | None = None
    role: AppRole = DEFAULT_ROLE
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
