"""HT -> TTC arithmetic for quotes.

Money is Decimal end to end and rounded half-up to the cent when it is
persisted or displayed.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

DEFAULT_TVA_PCT = Decimal("10")
CENT = Decimal("0.01")


def to_decimal(value, default: Decimal = Decimal("0")) -> Decimal:
    """Decimal from user or store input. Empty or unparsable input gives `default`."""
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).replace(",", ".").strip())
    except InvalidOperation:
        return default
    if not result.is_finite():
        return default
    return result


def round_currency(amount) -> Decimal:
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_ttc(ht, tva_pct) -> Decimal:
    """ttc = ht * (1 + tva/100), to the cent."""
    ht = to_decimal(ht)
    tva_pct = to_decimal(tva_pct, DEFAULT_TVA_PCT)
    return round_currency(ht * (1 + tva_pct / 100))


def format_eur(amount) -> str:
    """'1 234,50 €'"""
    rounded = round_currency(amount)
    sign = "-" if rounded < 0 else ""
    whole, cents = f"{abs(rounded):.2f}".split(".")
    groups = []
    while whole:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    return f"{sign}{' '.join(groups)},{cents} €"


@dataclass
class QuoteAmounts:
    """
    The (ht, tva, ttc) triple of a quote form.

    Writing ht or tva recomputes ttc; ttc is never written directly, so the
    persisted pair is always self-consistent.
    """

    ht: Decimal = Decimal("0")
    tva_pct: Decimal = DEFAULT_TVA_PCT
    ttc: Decimal = field(init=False)

    def __post_init__(self):
        self.ht = to_decimal(self.ht)
        self.tva_pct = to_decimal(self.tva_pct, DEFAULT_TVA_PCT)
        self.ttc = compute_ttc(self.ht, self.tva_pct)

    def set_ht(self, value) -> Decimal:
        self.ht = to_decimal(value)
        self.ttc = compute_ttc(self.ht, self.tva_pct)
        return self.ttc

    def set_tva(self, value) -> Decimal:
        self.tva_pct = to_decimal(value, DEFAULT_TVA_PCT)
        self.ttc = compute_ttc(self.ht, self.tva_pct)
        return self.ttc
