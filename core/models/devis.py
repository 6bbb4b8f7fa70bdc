"""Devis (quote) domain models.

`numero` is assigned by the store when the row is inserted. Clients never
choose it: creates always send an empty placeholder.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from core.status import DevisStatus, coerce_status
from core.tax import DEFAULT_TVA_PCT, compute_ttc, round_currency


class DevisCreate(BaseModel):
    """Data required to create a quote. montant_ttc is derived, never supplied."""

    lead_id: UUID | None = None
    client_nom: str = Field(..., min_length=1, max_length=255)
    client_email: str | None = Field(None, max_length=255)
    client_telephone: str | None = Field(None, max_length=50)
    client_adresse: str | None = Field(None, max_length=500)
    montant_ht: Decimal = Field(..., ge=0)
    tva_pct: Decimal = Field(DEFAULT_TVA_PCT, ge=0)
    statut: DevisStatus = DevisStatus.ENVOYE
    url_pdf: str | None = Field(None, max_length=2000)
    date_creation: date | None = None
    date_validite: date | None = None
    notes: str | None = Field(None, max_length=10000)

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, DevisStatus) if isinstance(value, str) else value

    @field_validator("tva_pct", mode="before")
    @classmethod
    def _default_tva(cls, value):
        return DEFAULT_TVA_PCT if value is None or value == "" else value

    @property
    def montant_ttc(self) -> Decimal:
        return compute_ttc(self.montant_ht, self.tva_pct)


class DevisUpdate(BaseModel):
    """Data that can be updated on a quote. All fields optional."""

    lead_id: UUID | None = None
    client_nom: str | None = Field(None, min_length=1, max_length=255)
    client_email: str | None = Field(None, max_length=255)
    client_telephone: str | None = Field(None, max_length=50)
    client_adresse: str | None = Field(None, max_length=500)
    montant_ht: Decimal | None = Field(None, ge=0)
    tva_pct: Decimal | None = Field(None, ge=0)
    statut: DevisStatus | None = None
    url_pdf: str | None = Field(None, max_length=2000)
    date_validite: date | None = None
    notes: str | None = Field(None, max_length=10000)

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, DevisStatus) if isinstance(value, str) else value


class Devis(BaseModel):
    """Full quote entity as stored."""

    id: UUID
    numero: str
    lead_id: UUID | None = None
    client_nom: str
    client_email: str | None = None
    client_telephone: str | None = None
    client_adresse: str | None = None
    montant_ht: Decimal
    tva_pct: Decimal = DEFAULT_TVA_PCT
    montant_ttc: Decimal
    statut: str
    url_pdf: str | None = None
    date_creation: date
    date_validite: date | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("statut", mode="before")
    @classmethod
    def _normalize_statut(cls, value):
        return coerce_status(value, DevisStatus)

    @model_validator(mode="after")
    def _round_amounts(self) -> "Devis":
        self.montant_ht = round_currency(self.montant_ht)
        self.montant_ttc = round_currency(self.montant_ttc)
        return self
