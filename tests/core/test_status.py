"""Tests for status normalization and badge display."""

import pytest

from core.status import (
    DevisStatus,
    LeadStatus,
    NEUTRAL_COLOR,
    STATUS_TABLE,
    StatusDisplay,
    UNKNOWN_LABEL,
    coerce_status,
    normalize_status,
    present_status,
    status_variants,
)


class TestPresentStatus:

    @pytest.mark.parametrize("variant", ["signe", "signé", "Signé"])
    def test_all_variants_of_signe_share_one_display(self, variant):
        assert present_status(variant) == StatusDisplay("purple", "Signé")

    @pytest.mark.parametrize("variant", ["accepte", "accepté", "Accepté"])
    def test_all_variants_of_accepte_share_one_display(self, variant):
        assert present_status(variant) == StatusDisplay("emerald", "Accepté")

    def test_every_table_entry_resolves_like_its_canonical_code(self):
        for variant, display in STATUS_TABLE.items():
            assert present_status(normalize_status(variant)) == display

    def test_unknown_code_echoes_raw_value(self):
        assert present_status("xyz") == StatusDisplay(NEUTRAL_COLOR, "xyz")

    @pytest.mark.parametrize("empty", [None, ""])
    def test_empty_code_gets_placeholder(self, empty):
        assert present_status(empty) == StatusDisplay(NEUTRAL_COLOR, UNKNOWN_LABEL)

    def test_non_string_never_raises(self):
        assert present_status(42) == StatusDisplay(NEUTRAL_COLOR, UNKNOWN_LABEL)

    def test_spelling_outside_table_still_normalizes(self):
        assert present_status("  SIGNÉ ").label == "Signé"

    def test_lead_statuses_have_labels(self):
        assert present_status("devis_envoye") == StatusDisplay("orange", "Devis envoyé")
        assert present_status("chaud").label == "Chaud"


class TestNormalizeStatus:

    def test_strips_accents_case_and_spaces(self):
        assert normalize_status(" Devis envoyé ") == "devis_envoye"

    def test_empty(self):
        assert normalize_status(None) == ""
        assert normalize_status("   ") == ""


class TestCoerceStatus:

    def test_known_variant_becomes_canonical(self):
        assert coerce_status("Payés", DevisStatus) == DevisStatus.PAYES.value

    def test_unknown_value_is_kept_trimmed(self):
        assert coerce_status(" en attente ", DevisStatus) == "en attente"

    def test_vocabulary_is_respected(self):
        # a lead status is not a devis status
        assert coerce_status("chaud", DevisStatus) == "chaud"
        assert coerce_status("chaud", LeadStatus) == LeadStatus.CHAUD.value


class TestStatusVariants:

    def test_widens_to_stored_spellings(self):
        assert set(status_variants("accepte")) == {"accepte", "accepté", "Accepté"}

    def test_accepts_accented_input(self):
        assert "refuse" in status_variants("Refusé")

    def test_unknown_code_filters_on_itself(self):
        assert status_variants("xyz") == ["xyz"]
