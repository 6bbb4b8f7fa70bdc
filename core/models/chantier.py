"""Chantier (worksite) model. Declared for completeness; no service manages it yet."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class Chantier(BaseModel):
    """A job executed after a quote is accepted."""

    id: UUID
    lead_id: UUID | None = None
    devis_id: UUID | None = None
    nom_client: str
    type_projet: str | None = None
    adresse: str | None = None
    statut: str
    avancement_pct: int = Field(0, ge=0, le=100)
    date_debut: date | None = None
    date_fin_prevue: date | None = None
    date_fin_reelle: date | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
