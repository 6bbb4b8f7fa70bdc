"""
Editor for the custom quote lines entered on a lead after a phone call.

Lines are addressed by position. Removing a line shifts the following ones
down; the list belongs to one user editing one form, so positions are stable
enough. Totals are derived on read and never stored.

An empty list means "no manual override": downstream quote generation falls
back to the negotiated budget or the AI estimate.
"""

from decimal import Decimal

from core.models.line_item import DevisLine
from core.tax import round_currency, to_decimal

_NUMERIC_FIELDS = {"quantite", "prix_unitaire_ht"}
_TEXT_FIELDS = {"designation", "unite"}


class LineItemsEditor:
    """Ordered, editable list of DevisLine plus the free-text notes beside it."""

    def __init__(self, lines: list[DevisLine] | None = None, notes: str | None = None):
        self._lines = [line.model_copy() for line in (lines or [])]
        self.notes = notes or ""

    @property
    def lines(self) -> list[DevisLine]:
        return [line.model_copy() for line in self._lines]

    def __len__(self) -> int:
        return len(self._lines)

    def append(self) -> int:
        """Add a blank line at the end. Returns its index."""
        self._lines.append(DevisLine())
        return len(self._lines) - 1

    def remove(self, index: int) -> DevisLine:
        """
        Raises:
            IndexError: No line at `index`
        """
        return self._lines.pop(index)

    def update(self, index: int, field: str, value) -> DevisLine:
        """
        Set one field of one line. Numeric fields take what a number input
        gives: anything unparsable becomes 0.

        Raises:
            IndexError: No line at `index`
            ValueError: Unknown field
        """
        if field in _NUMERIC_FIELDS:
            value = to_decimal(value)
        elif field in _TEXT_FIELDS:
            value = "" if value is None else str(value)
        else:
            raise ValueError(f"Unknown line field '{field}'")

        line = self._lines[index]
        self._lines[index] = line.model_copy(update={field: value})
        return self._lines[index]

    def line_total(self, index: int) -> Decimal:
        return self._lines[index].total_ht

    @property
    def grand_total(self) -> Decimal:
        """Sum of the rounded line totals; 0.00 for an empty list."""
        return round_currency(sum((line.total_ht for line in self._lines), Decimal("0")))

    def to_payload(self) -> tuple[list[DevisLine] | None, str | None]:
        """(lignes_devis_custom, notes_devis_custom) as the lead should carry them."""
        lines = self.lines or None
        notes = self.notes.strip() or None
        return lines, notes
