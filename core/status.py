"""
Status vocabularies and their display.

Leads and devis carry a free-text `statut` that the store never normalized:
the same status shows up as 'signe', 'signé' or 'Signé'. Records are
normalized once on read (see normalize_status) so the rest of the code only
compares against LeadStatus / DevisStatus values.

_LEGACY_VARIANTS is a migration shim for rows written before normalization.
Remove it once the stored data has been rewritten to canonical codes.
"""

import unicodedata
from enum import Enum
from typing import NamedTuple


class LeadStatus(str, Enum):
    """Lead lifecycle status."""

    NOUVEAU = "nouveau"
    CONTACTE = "contacte"
    QUALIFIE = "qualifie"
    DEVIS_ENVOYE = "devis_envoye"
    ACCEPTE = "accepte"
    REFUSE = "refuse"
    PERDU = "perdu"
    CHAUD = "chaud"


class DevisStatus(str, Enum):
    """Quote lifecycle status."""

    SIGNE = "signe"
    ENVOYE = "envoye"
    ACCEPTE = "accepte"
    REFUSE = "refuse"
    PAYES = "payes"


class StatusDisplay(NamedTuple):
    color: str
    label: str


NEUTRAL_COLOR = "gray"
UNKNOWN_LABEL = "Inconnu"

_CANONICAL_DISPLAY: dict[str, StatusDisplay] = {
    "signe": StatusDisplay("purple", "Signé"),
    "envoye": StatusDisplay("green", "Envoyé"),
    "accepte": StatusDisplay("emerald", "Accepté"),
    "refuse": StatusDisplay("red", "Refusé"),
    "payes": StatusDisplay("blue", "Payés"),
    "nouveau": StatusDisplay("blue", "Nouveau"),
    "contacte": StatusDisplay("purple", "Contacté"),
    "qualifie": StatusDisplay("emerald", "Qualifié"),
    "devis_envoye": StatusDisplay("orange", "Devis envoyé"),
    "chaud": StatusDisplay("lime", "Chaud"),
    "perdu": StatusDisplay("gray", "Perdu"),
}

# Spellings found in stored rows, by canonical code
_LEGACY_VARIANTS: dict[str, tuple[str, ...]] = {
    "signe": ("signe", "signé", "Signé"),
    "envoye": ("envoye", "envoyé", "Envoyé"),
    "accepte": ("accepte", "accepté", "Accepté"),
    "refuse": ("refuse", "refusé", "Refusé"),
    "payes": ("payes", "payés", "Payés"),
    "nouveau": ("nouveau",),
    "contacte": ("contacte", "contacté"),
    "qualifie": ("qualifie", "qualifié"),
    "devis_envoye": ("devis_envoye", "devis_envoyé"),
    "chaud": ("chaud",),
    "perdu": ("perdu",),
}

STATUS_TABLE: dict[str, StatusDisplay] = {
    variant: _CANONICAL_DISPLAY[code]
    for code, variants in _LEGACY_VARIANTS.items()
    for variant in variants
}


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_status(raw: str | None) -> str:
    """
    Canonical code for a stored status: trimmed, lowercased, accents removed,
    inner spaces as underscores. 'Devis envoyé ' -> 'devis_envoye'.
    """
    if not raw:
        return ""
    text = _strip_accents(raw.strip()).lower()
    return "_".join(text.split())


def coerce_status(raw: str | None, vocabulary: type[Enum]) -> str:
    """
    Normalized code when it belongs to `vocabulary`, otherwise the raw text
    trimmed so an unexpected value still reaches the screen unchanged.
    """
    code = normalize_status(raw)
    known = {member.value for member in vocabulary}
    if code in known:
        return code
    return (raw or "").strip()


def present_status(code: str | None) -> StatusDisplay:
    """
    Color and label for a status badge. Never raises.

    Exact match against the variant table first, then the normalized code,
    then a neutral badge echoing the raw value.
    """
    if not isinstance(code, str) or not code:
        return StatusDisplay(NEUTRAL_COLOR, UNKNOWN_LABEL)
    display = STATUS_TABLE.get(code) or _CANONICAL_DISPLAY.get(normalize_status(code))
    if display is not None:
        return display
    return StatusDisplay(NEUTRAL_COLOR, code)


def status_variants(code: str) -> list[str]:
    """Every stored spelling of a status, used to widen a status filter."""
    canonical = normalize_status(code)
    return list(_LEGACY_VARIANTS.get(canonical, (code,)))
