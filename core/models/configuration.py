"""Company profile (single row)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class Configuration(BaseModel):
    id: UUID
    nom_entreprise: str
    adresse: str | None = None
    telephone: str | None = None
    email: str | None = None
    siret: str | None = None
    tva_numero: str | None = None
    logo_url: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
