"""Custom quote line, stored as JSON on the lead (lignes_devis_custom).

Prices are tax-exclusive.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from core.tax import round_currency


class DevisLine(BaseModel):
    """One manually entered quote line."""

    designation: str = ""
    quantite: Decimal = Field(Decimal("1"))
    unite: str = "unité"
    prix_unitaire_ht: Decimal = Field(Decimal("0"))

    @property
    def total_ht(self) -> Decimal:
        return round_currency(self.quantite * self.prix_unitaire_ht)

    def to_stored(self) -> dict:
        """JSON shape kept in leads.lignes_devis_custom (numbers, not strings)."""
        return {
            "designation": self.designation,
            "quantite": float(self.quantite),
            "unite": self.unite,
            "prix_unitaire_ht": float(self.prix_unitaire_ht),
        }
