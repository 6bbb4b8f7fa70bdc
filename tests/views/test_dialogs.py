"""Tests for the entity dialogs - form lifecycle, submit, cache merge."""

from decimal import Decimal
from unittest.mock import Mock, patch
from uuid import uuid4

import psycopg2
import pytest

from clients.auth_gateway_client import AuthGatewayError
from clients.postgres_client import PostgresClient, StoreError
from core.change_publisher import ChangePublisher
from core.models import DevisCreate, DevisUpdate, LeadCreate, LeadUpdate, UserCreate
from core.models.user import AppRole
from core.services.devis_service import DevisService
from core.services.lead_service import LeadService
from core.services.user_service import PartialUserCreationError, UserService
from views.dialogs import DevisDialog, LeadDialog, UserDialog
from views.notifications import Notification

from factories import make_devis, make_lead, make_reference, make_user

LEADS_KEY = ("leads", "", "all")
DEVIS_KEY = ("devis", "", "all")


@pytest.fixture
def leads():
    mock = Mock(spec=LeadService)
    mock.list_references.return_value = []
    return mock


@pytest.fixture
def devis_service():
    return Mock(spec=DevisService)


@pytest.fixture
def users():
    return Mock(spec=UserService)


@pytest.fixture
def lead_dialog(leads, cache, notifier):
    return LeadDialog(leads, cache, notifier)


@pytest.fixture
def devis_dialog(devis_service, leads, cache, notifier):
    return DevisDialog(devis_service, leads, cache, notifier)


@pytest.fixture
def user_dialog(users, cache, notifier):
    return UserDialog(users, cache, notifier)


class TestOpenClose:

    def test_create_defaults(self, lead_dialog):
        lead_dialog.set_open(True)

        assert lead_dialog.is_open
        assert lead_dialog.is_edit is False
        assert lead_dialog.form["statut"] == "nouveau"
        assert lead_dialog.form["nom"] is None

    def test_edit_starts_from_record(self, lead_dialog):
        lead = make_lead(nom="Durand", ville="Bron")
        lead_dialog.set_open(True, lead)

        assert lead_dialog.is_edit
        assert lead_dialog.form["nom"] == "Durand"
        assert lead_dialog.form["ville"] == "Bron"

    def test_open_then_close_without_changes_issues_no_mutation(self, lead_dialog, leads):
        lead_dialog.set_open(True, make_lead())
        lead_dialog.set_open(False)

        leads.create.assert_not_called()
        leads.update.assert_not_called()
        assert lead_dialog.form == {}

    def test_form_initialized_once_per_opening(self, lead_dialog):
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        lead_dialog.set_open(True)

        assert lead_dialog.form["nom"] == "Durand"

    def test_reopening_starts_fresh(self, lead_dialog):
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        lead_dialog.set_open(False)
        lead_dialog.set_open(True)

        assert lead_dialog.form["nom"] is None


class TestLeadSubmit:

    def test_required_field_blocks_submit(self, lead_dialog, leads, cache):
        cache.set(LEADS_KEY, [make_lead()])
        before = cache.get(LEADS_KEY)
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "   ")

        assert lead_dialog.submit() is False

        assert lead_dialog.errors == {"nom": "Champ obligatoire"}
        leads.create.assert_not_called()
        assert cache.get(LEADS_KEY) == before
        assert cache.is_stale(LEADS_KEY) is False

    def test_model_validation_surfaces_inline(self, lead_dialog, leads):
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        lead_dialog.set_field("surface", "beaucoup")

        assert lead_dialog.submit() is False

        assert "surface" in lead_dialog.errors
        leads.create.assert_not_called()

    def test_create_prepends_invalidates_closes_and_notifies(self, lead_dialog, leads, cache, notifier):
        existing = make_lead(nom="Martin")
        cache.set(LEADS_KEY, [existing])
        created = make_lead(nom="Durand")
        leads.create.return_value = created

        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        lead_dialog.set_field("email", "")
        assert lead_dialog.submit() is True

        payload = leads.create.call_args[0][0]
        assert isinstance(payload, LeadCreate)
        assert payload.nom == "Durand"
        assert payload.email is None
        assert payload.lignes_devis_custom is None
        assert cache.get(LEADS_KEY) == [created, existing]
        assert cache.is_stale(LEADS_KEY)
        assert lead_dialog.is_open is False
        assert lead_dialog.form == {}
        assert notifier.items == [Notification("success", "Lead créé avec succès")]

    def test_update_replaces_record(self, lead_dialog, leads, cache, notifier):
        lead = make_lead(nom="Durand")
        other = make_lead(nom="Martin")
        cache.set(LEADS_KEY, [other, lead])
        updated = lead.model_copy(update={"ville": "Bron"})
        leads.update.return_value = updated

        lead_dialog.set_open(True, lead)
        lead_dialog.set_field("ville", "Bron")
        lead_dialog.submit()

        lead_id, payload = leads.update.call_args[0]
        assert lead_id == lead.id
        assert isinstance(payload, LeadUpdate)
        assert payload.ville == "Bron"
        assert cache.get(LEADS_KEY) == [other, updated]
        assert notifier.items[-1].message == "Lead modifié avec succès"

    def test_custom_lines_are_sent(self, lead_dialog, leads):
        leads.create.return_value = make_lead()
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        index = lead_dialog.line_items.append()
        lead_dialog.line_items.update(index, "designation", "Démoussage")
        lead_dialog.line_items.update(index, "prix_unitaire_ht", "450")

        lead_dialog.submit()

        payload = leads.create.call_args[0][0]
        assert payload.lignes_devis_custom[0].designation == "Démoussage"
        assert payload.lignes_devis_custom[0].prix_unitaire_ht == Decimal("450")

    def test_store_failure_keeps_dialog_open_and_cache_untouched(self, lead_dialog, leads, cache, notifier):
        cache.set(LEADS_KEY, [])
        leads.create.side_effect = StoreError("new row violates row-level security policy")

        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")
        assert lead_dialog.submit() is False

        assert lead_dialog.is_open
        assert lead_dialog.form["nom"] == "Durand"
        assert cache.get(LEADS_KEY) == []
        assert cache.is_stale(LEADS_KEY) is False
        assert notifier.items == [Notification("error", "new row violates row-level security policy")]
        assert lead_dialog.is_submitting is False

    def test_failure_without_message_uses_generic_text(self, lead_dialog, leads, notifier):
        leads.create.side_effect = StoreError()
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")

        lead_dialog.submit()

        assert notifier.items[-1] == Notification("error", "Une erreur est survenue")

    def test_driver_error_keeps_dialog_open(self, lead_dialog, cache, notifier):
        cache.set(LEADS_KEY, [])
        with patch("clients.postgres_client.psycopg2.pool.ThreadedConnectionPool") as pool_cls, \
                patch("clients.postgres_client.psycopg2.extras.register_default_jsonb"):
            pool_cls.return_value.getconn.side_effect = psycopg2.OperationalError("server closed the connection unexpectedly")
            postgres = PostgresClient(f"postgresql://app@localhost/toiture-{uuid4()}")
            lead_dialog.leads = LeadService(postgres, Mock(spec=ChangePublisher))
            lead_dialog.set_open(True)
            lead_dialog.set_field("nom", "Durand")
            try:
                assert lead_dialog.submit() is False
            finally:
                PostgresClient.close_all_pools()

        assert lead_dialog.is_open
        assert lead_dialog.is_submitting is False
        assert cache.get(LEADS_KEY) == []
        assert notifier.items == [Notification("error", "server closed the connection unexpectedly")]

    def test_submit_while_in_flight_is_ignored(self, lead_dialog, leads):
        nested = []

        def create(payload):
            nested.append(lead_dialog.submit())
            return make_lead()

        leads.create.side_effect = create
        lead_dialog.set_open(True)
        lead_dialog.set_field("nom", "Durand")

        assert lead_dialog.submit() is True
        assert nested == [False]
        assert leads.create.call_count == 1

    def test_closed_dialog_does_not_submit(self, lead_dialog, leads):
        assert lead_dialog.submit() is False
        leads.create.assert_not_called()


class TestDevisDialog:

    def test_create_defaults(self, devis_dialog):
        devis_dialog.set_open(True)

        form = devis_dialog.form
        assert form["statut"] == "envoye"
        assert form["tva_pct"] == Decimal("10")
        assert form["montant_ht"] == Decimal("0")
        assert form["montant_ttc"] == Decimal("0.00")
        assert form["client_nom"] == ""

    def test_amount_changes_recompute_ttc(self, devis_dialog):
        devis_dialog.set_open(True)

        devis_dialog.set_field("montant_ht", "1000")
        assert devis_dialog.form["montant_ttc"] == Decimal("1100.00")

        devis_dialog.set_field("tva_pct", "20")
        assert devis_dialog.form["montant_ttc"] == Decimal("1200.00")
        assert devis_dialog.amounts.ht == Decimal("1000")

    def test_ttc_cannot_be_typed(self, devis_dialog):
        devis_dialog.set_open(True)
        with pytest.raises(ValueError):
            devis_dialog.set_field("montant_ttc", "5")

    def test_select_lead_prefills_client(self, devis_dialog, leads):
        reference = make_reference(nom="Martin", prenom="Paul")
        leads.list_references.return_value = [reference]
        devis_dialog.set_open(True)

        assert devis_dialog.select_lead(reference.id) is True

        assert devis_dialog.form["client_nom"] == "Martin Paul"
        assert devis_dialog.form["client_email"] == "paul.martin@example.fr"
        assert devis_dialog.form["client_telephone"] == "0611223344"
        assert devis_dialog.form["client_adresse"] == "3 place Bellecour"
        assert devis_dialog.form["lead_id"] == reference.id

    def test_select_unknown_lead(self, devis_dialog):
        devis_dialog.set_open(True)
        assert devis_dialog.select_lead(uuid4()) is False

    def test_required_fields(self, devis_dialog, devis_service):
        devis_dialog.set_open(True)
        devis_dialog.set_field("montant_ht", "")

        assert devis_dialog.submit() is False

        assert set(devis_dialog.errors) == {"client_nom", "montant_ht"}
        devis_service.create.assert_not_called()

    def test_create_invalidates_list_and_latest_widget(self, devis_dialog, devis_service, cache, notifier):
        cache.set(DEVIS_KEY, [])
        cache.set(("latestDevisList",), [])
        created = make_devis(numero="")
        devis_service.create.return_value = created

        devis_dialog.set_open(True)
        devis_dialog.set_field("client_nom", "Dupont Jean")
        devis_dialog.set_field("montant_ht", "1234,5")
        devis_dialog.set_field("tva_pct", "20")
        assert devis_dialog.submit() is True

        payload = devis_service.create.call_args[0][0]
        assert isinstance(payload, DevisCreate)
        assert payload.montant_ht == Decimal("1234.5")
        assert payload.tva_pct == Decimal("20")
        assert payload.montant_ttc == Decimal("1481.40")
        assert cache.get(DEVIS_KEY) == [created]
        assert cache.is_stale(DEVIS_KEY)
        assert cache.is_stale(("latestDevisList",))
        assert notifier.items[-1].message == "Devis créé avec succès"

    def test_edit_sends_update(self, devis_dialog, devis_service):
        devis = make_devis(statut="Accepté")
        devis_service.update.return_value = devis

        devis_dialog.set_open(True, devis)
        assert devis_dialog.form["statut"] == "accepte"
        devis_dialog.set_field("tva_pct", "5.5")
        devis_dialog.submit()

        devis_id, payload = devis_service.update.call_args[0]
        assert devis_id == devis.id
        assert isinstance(payload, DevisUpdate)
        assert payload.tva_pct == Decimal("5.5")
        assert payload.montant_ht == Decimal("1000.00")

    def test_reference_load_failure_notifies(self, devis_dialog, leads, notifier):
        leads.list_references.side_effect = StoreError("permission denied")

        devis_dialog.set_open(True)

        assert devis_dialog.lead_references == []
        assert notifier.items == [Notification("error", "permission denied")]


class TestUnknownStoredStatus:

    def test_lead_with_unknown_status_gets_inline_message(self, lead_dialog, leads):
        lead_dialog.set_open(True, make_lead(statut="En relance"))

        assert lead_dialog.submit() is False

        assert lead_dialog.errors == {"statut": "Statut inconnu : « En relance ». Choisissez un statut de la liste"}
        leads.update.assert_not_called()

    def test_choosing_a_status_clears_the_message(self, lead_dialog, leads):
        record = make_lead(statut="En relance")
        leads.update.return_value = record
        lead_dialog.set_open(True, record)
        lead_dialog.submit()

        lead_dialog.set_field("statut", "contacte")

        assert lead_dialog.submit() is True
        assert leads.update.call_args[0][1].statut == "contacte"

    def test_legacy_spelling_is_accepted(self, lead_dialog, leads):
        leads.update.return_value = make_lead()
        lead_dialog.set_open(True, make_lead())
        lead_dialog.set_field("statut", "Contacté ")

        assert lead_dialog.submit() is True

    def test_devis_with_unknown_status_gets_inline_message(self, devis_dialog, devis_service):
        devis_dialog.set_open(True, make_devis(statut="archivé"))

        assert devis_dialog.submit() is False

        assert devis_dialog.errors["statut"].startswith("Statut inconnu : « archivé »")
        devis_service.update.assert_not_called()


class TestUserDialog:

    def _fill(self, dialog, **overrides):
        values = {"email": "claire@toiture.fr", "password": "secret123", "full_name": "Claire Martin", "role": "secretaire"}
        values.update(overrides)
        for field, value in values.items():
            dialog.set_field(field, value)

    def test_defaults_to_lecteur(self, user_dialog):
        user_dialog.set_open(True)
        assert user_dialog.form["role"] == "lecteur"

    def test_edit_record_is_ignored(self, user_dialog):
        user_dialog.set_open(True, make_user())
        assert user_dialog.is_edit is False

    def test_validation(self, user_dialog, users):
        user_dialog.set_open(True)
        self._fill(user_dialog, email="", password="123", role="owner")

        assert user_dialog.submit() is False

        assert user_dialog.errors == {
            "email": "Champ obligatoire",
            "password": "6 caractères minimum",
            "role": "Rôle inconnu",
        }
        users.create_user.assert_not_called()

    def test_success(self, user_dialog, users, cache, notifier):
        created = make_user(email="claire@toiture.fr")
        users.create_user.return_value = created
        cache.set(("users", "", "all"), [])

        user_dialog.set_open(True)
        self._fill(user_dialog)
        assert user_dialog.submit() is True

        payload = users.create_user.call_args[0][0]
        assert isinstance(payload, UserCreate)
        assert payload.role == AppRole.SECRETAIRE
        assert cache.get(("users", "", "all")) == [created]
        assert notifier.items[-1] == Notification(
            "success", "Utilisateur créé avec succès ! Un email de confirmation a été envoyé."
        )

    def test_duplicate_email_message(self, user_dialog, users, notifier):
        users.create_user.side_effect = AuthGatewayError("User already registered", 422)

        user_dialog.set_open(True)
        self._fill(user_dialog)
        user_dialog.submit()

        assert notifier.items[-1] == Notification("error", "Cet email est déjà utilisé")
        assert user_dialog.is_open

    def test_partial_creation_is_reported_distinctly(self, user_dialog, users, cache, notifier):
        account_id = uuid4()
        users.create_user.side_effect = PartialUserCreationError("role", account_id, StoreError("insert refused"))
        cache.set(("users", "", "all"), [])

        user_dialog.set_open(True)
        self._fill(user_dialog)
        user_dialog.submit()

        message = notifier.items[-1].message
        assert str(account_id) in message
        assert "'role'" in message
        assert "insert refused" in message
        assert cache.is_stale(("users", "", "all"))
