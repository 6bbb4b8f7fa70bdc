"""Lead domain models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from core.models.line_item import DevisLine
from core.status import LeadStatus, coerce_status


class LeadCreate(BaseModel):
    """Data required to create a lead."""

    nom: str = Field(..., min_length=1, max_length=255)
    prenom: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    telephone: str | None = Field(None, max_length=50)
    adresse: str | None = Field(None, max_length=500)
    code_postal: str | None = Field(None, max_length=20)
    ville: str | None = Field(None, max_length=255)
    source: str | None = Field(None, max_length=255)
    statut: LeadStatus = LeadStatus.NOUVEAU
    type_projet: str | None = Field(None, max_length=255)
    surface: Decimal | None = Field(None, ge=0)
    description: str | None = Field(None, max_length=10000)
    budget_estime: Decimal | None = Field(None, ge=0)
    budget_negocie: Decimal | None = Field(None, ge=0)
    delai: str | None = Field(None, max_length=255)
    urgence: str | None = Field(None, max_length=255)
    lignes_devis_custom: list[DevisLine] | None = None
    notes_devis_custom: str | None = Field(None, max_length=5000)

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, LeadStatus) if isinstance(value, str) else value


class LeadUpdate(BaseModel):
    """Data that can be updated on a lead. All fields optional."""

    nom: str | None = Field(None, min_length=1, max_length=255)
    prenom: str | None = Field(None, max_length=255)
    email: str | None = Field(None, max_length=255)
    telephone: str | None = Field(None, max_length=50)
    adresse: str | None = Field(None, max_length=500)
    code_postal: str | None = Field(None, max_length=20)
    ville: str | None = Field(None, max_length=255)
    source: str | None = Field(None, max_length=255)
    statut: LeadStatus | None = None
    type_projet: str | None = Field(None, max_length=255)
    surface: Decimal | None = Field(None, ge=0)
    description: str | None = Field(None, max_length=10000)
    budget_estime: Decimal | None = Field(None, ge=0)
    budget_negocie: Decimal | None = Field(None, ge=0)
    delai: str | None = Field(None, max_length=255)
    urgence: str | None = Field(None, max_length=255)
    lignes_devis_custom: list[DevisLine] | None = None
    notes_devis_custom: str | None = Field(None, max_length=5000)

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, LeadStatus) if isinstance(value, str) else value


class Lead(BaseModel):
    """Full lead entity as stored."""

    id: UUID
    nom: str
    prenom: str | None = None
    email: str | None = None
    telephone: str | None = None
    adresse: str | None = None
    code_postal: str | None = None
    ville: str | None = None
    source: str | None = None
    # Canonical LeadStatus value, or the raw text when the store holds something unknown
    statut: str
    type_projet: str | None = None
    surface: Decimal | None = None
    description: str | None = None
    ai_notes: str | None = None
    ai_raw: str | None = None
    score_qualification: int | None = None
    budget_estime: Decimal | None = None
    budget_negocie: Decimal | None = None
    delai: str | None = None
    urgence: str | None = None
    email_ouvert: bool | None = None
    email_ouvert_count: int | None = None
    email_ouvert_at: datetime | None = None
    email_delivered_at: datetime | None = None
    email_clic_count: int | None = None
    email_clic_at: datetime | None = None
    pdf_consulte: bool | None = None
    pdf_consulte_at: datetime | None = None
    engagement_score: int | None = None
    derniere_activite: datetime | None = None
    sendgrid_message_id: str | None = None
    lignes_devis_custom: list[DevisLine] | None = None
    notes_devis_custom: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, LeadStatus)

    @property
    def full_name(self) -> str:
        return f"{self.nom} {self.prenom or ''}".strip()

    @property
    def has_custom_lines(self) -> bool:
        return bool(self.lignes_devis_custom)

    @property
    def effective_budget(self) -> Decimal | None:
        """Budget a generated quote starts from: negotiated beats estimated."""
        if self.budget_negocie is not None:
            return self.budget_negocie
        return self.budget_estime


class LeadReference(BaseModel):
    """The slice of a lead the devis dialog needs to pre-fill a client."""

    id: UUID
    nom: str
    prenom: str | None = None
    email: str | None = None
    telephone: str | None = None
    adresse: str | None = None

    model_config = {"from_attributes": True}

    @property
    def full_name(self) -> str:
        return f"{self.nom} {self.prenom or ''}".strip()
