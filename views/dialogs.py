"""
Create / edit dialogs for leads, devis and back-office users.

A dialog owns its form while open. The form is initialized once per
closed -> open transition and thrown away on close, so reopening never shows
stale input. A successful submit merges the saved record into the list cache
for immediate feedback, then invalidates the query so the next fetch picks
up what only the store knows (the devis number, trigger-maintained columns).
"""

import logging
from typing import Any

from pydantic import ValidationError

from clients.auth_gateway_client import AuthGatewayError
from core.cache import QueryCache, QueryKey, prepend_record, replace_record
from core.line_items import LineItemsEditor
from core.models import DevisCreate, DevisUpdate, LeadCreate, LeadReference, LeadUpdate, UserCreate
from core.models.user import AppRole, DEFAULT_ROLE
from core.services.devis_service import DevisService
from core.services.lead_service import LeadService
from core.services.user_service import PartialUserCreationError, UserService
from core.status import DevisStatus, LeadStatus, coerce_status
from core.tax import QuoteAmounts
from views import query_keys
from views.notifications import OPERATION_ERRORS, Notifier, error_message

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Champ obligatoire"
DUPLICATE_EMAIL_MESSAGE = "Cet email est déjà utilisé"


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _is_blank(value) -> bool:
    return _blank_to_none(value) is None


def _unknown_status(value, vocabulary) -> str | None:
    """Inline message for a status the vocabulary does not know, e.g. a legacy stored value."""
    if _is_blank(value) or not isinstance(value, str):
        return None
    if coerce_status(value, vocabulary) in {member.value for member in vocabulary}:
        return None
    return f"Statut inconnu : « {value.strip()} ». Choisissez un statut de la liste"


def _validation_errors(exc: ValidationError) -> dict[str, str]:
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "form"
        errors.setdefault(field, error["msg"])
    return errors


class EntityDialog:
    """
    Base dialog. Subclasses provide the form defaults, the inline
    validation, the payload model and the two store calls.
    """

    query_prefix: QueryKey = ()
    also_invalidates: tuple[QueryKey, ...] = ()
    handled_errors: tuple[type[Exception], ...] = OPERATION_ERRORS
    created_message = ""
    updated_message = ""

    def __init__(self, cache: QueryCache, notifier: Notifier):
        self.cache = cache
        self.notifier = notifier
        self.is_open = False
        self.is_submitting = False
        self.record = None
        self.form: dict[str, Any] = {}
        self.errors: dict[str, str] = {}

    @property
    def is_edit(self) -> bool:
        return self.record is not None

    def set_open(self, open: bool, record=None) -> None:
        if open and not self.is_open:
            self.record = record
            self.errors = {}
            self.form = self.initial_form(record)
        elif not open:
            self.reset()
        self.is_open = open

    def reset(self) -> None:
        self.record = None
        self.form = {}
        self.errors = {}

    def set_field(self, name: str, value) -> None:
        self.form[name] = value
        self.errors.pop(name, None)

    def initial_form(self, record) -> dict[str, Any]:
        raise NotImplementedError

    def validate(self) -> dict[str, str]:
        return {}

    def build_payload(self):
        raise NotImplementedError

    def create(self, payload):
        raise NotImplementedError

    def update(self, record, payload):
        raise NotImplementedError

    def submit(self) -> bool:
        """
        Validate, then issue exactly one create or update call.

        Ignored while a submission is already in flight. Validation problems
        land in `errors` and nothing is sent. A failed call leaves the cache
        untouched and the dialog open.

        Returns:
            True if the record was saved
        """
        if self.is_submitting or not self.is_open:
            return False

        self.errors = self.validate()
        if self.errors:
            return False
        try:
            payload = self.build_payload()
        except ValidationError as e:
            self.errors = _validation_errors(e)
            return False

        editing = self.is_edit
        self.is_submitting = True
        try:
            saved = self.update(self.record, payload) if editing else self.create(payload)
        except self.handled_errors as e:
            logger.warning(f"{type(self).__name__} submit failed: {e}")
            self.on_failure(e)
            return False
        finally:
            self.is_submitting = False

        if editing:
            self.cache.patch(self.query_prefix, lambda rows: replace_record(rows, saved))
        else:
            self.cache.patch(self.query_prefix, lambda rows: prepend_record(rows, saved))
        for prefix in (self.query_prefix, *self.also_invalidates):
            self.cache.invalidate(prefix)

        self.set_open(False)
        self.notifier.success(self.updated_message if editing else self.created_message)
        return True

    def on_failure(self, exc: Exception) -> None:
        self.notifier.error(error_message(exc))


_LEAD_FIELDS = (
    "nom", "prenom", "email", "telephone", "adresse", "code_postal", "ville",
    "source", "statut", "type_projet", "surface", "description",
    "budget_estime", "budget_negocie", "delai", "urgence",
)


class LeadDialog(EntityDialog):
    """Lead form, including the custom quote lines editor."""

    query_prefix = query_keys.LEADS
    also_invalidates = (query_keys.LEAD_REFERENCES,)
    created_message = "Lead créé avec succès"
    updated_message = "Lead modifié avec succès"

    def __init__(self, leads: LeadService, cache: QueryCache, notifier: Notifier):
        super().__init__(cache, notifier)
        self.leads = leads
        self.line_items = LineItemsEditor()

    def initial_form(self, record) -> dict[str, Any]:
        if record is None:
            self.line_items = LineItemsEditor()
            form = {field: None for field in _LEAD_FIELDS}
            form["statut"] = LeadStatus.NOUVEAU.value
            return form

        self.line_items = LineItemsEditor(record.lignes_devis_custom, record.notes_devis_custom)
        return {field: getattr(record, field) for field in _LEAD_FIELDS}

    def reset(self) -> None:
        super().reset()
        self.line_items = LineItemsEditor()

    def validate(self) -> dict[str, str]:
        errors = {}
        for field in ("nom", "statut"):
            if _is_blank(self.form.get(field)):
                errors[field] = REQUIRED_MESSAGE
        unknown = _unknown_status(self.form.get("statut"), LeadStatus)
        if unknown:
            errors["statut"] = unknown
        return errors

    def build_payload(self):
        values = {field: _blank_to_none(self.form.get(field)) for field in _LEAD_FIELDS}
        lines, notes = self.line_items.to_payload()
        values["lignes_devis_custom"] = lines
        values["notes_devis_custom"] = notes
        if self.is_edit:
            return LeadUpdate(**values)
        return LeadCreate(**values)

    def create(self, payload: LeadCreate):
        return self.leads.create(payload)

    def update(self, record, payload: LeadUpdate):
        return self.leads.update(record.id, payload)


_DEVIS_FIELDS = (
    "lead_id", "client_nom", "client_email", "client_telephone",
    "client_adresse", "statut", "url_pdf", "date_validite", "notes",
)


class DevisDialog(EntityDialog):
    """
    Devis form. The amounts live in a QuoteAmounts so the displayed TTC
    follows every HT or TVA keystroke.
    """

    query_prefix = query_keys.DEVIS
    also_invalidates = (query_keys.LATEST_DEVIS,)
    created_message = "Devis créé avec succès"
    updated_message = "Devis modifié avec succès"

    def __init__(self, devis: DevisService, leads: LeadService, cache: QueryCache, notifier: Notifier):
        super().__init__(cache, notifier)
        self.devis = devis
        self.leads = leads
        self.amounts = QuoteAmounts()
        self.lead_references: list[LeadReference] = []

    def set_open(self, open: bool, record=None) -> None:
        opening = open and not self.is_open
        super().set_open(open, record)
        if opening:
            self.lead_references = self._load_lead_references()

    def _load_lead_references(self) -> list[LeadReference]:
        try:
            return self.cache.fetch(query_keys.LEAD_REFERENCES, self.leads.list_references)
        except OPERATION_ERRORS as e:
            self.notifier.error(error_message(e))
            return []

    def initial_form(self, record) -> dict[str, Any]:
        if record is None:
            self.amounts = QuoteAmounts()
            form = {field: None for field in _DEVIS_FIELDS}
            form.update(client_nom="", client_email="", client_telephone="", client_adresse="")
            form["statut"] = DevisStatus.ENVOYE.value
        else:
            self.amounts = QuoteAmounts(record.montant_ht, record.tva_pct)
            form = {field: getattr(record, field) for field in _DEVIS_FIELDS}

        form["montant_ht"] = self.amounts.ht
        form["tva_pct"] = self.amounts.tva_pct
        form["montant_ttc"] = self.amounts.ttc
        return form

    def set_field(self, name: str, value) -> None:
        if name == "montant_ttc":
            raise ValueError("montant_ttc is derived from montant_ht and tva_pct")
        super().set_field(name, value)
        if name == "montant_ht":
            self.form["montant_ttc"] = self.amounts.set_ht(value)
        elif name == "tva_pct":
            self.form["montant_ttc"] = self.amounts.set_tva(value)

    def select_lead(self, lead_id) -> bool:
        """Copy a lead's contact details into the client fields. False if unknown."""
        reference = next((ref for ref in self.lead_references if str(ref.id) == str(lead_id)), None)
        if reference is None:
            return False
        self.form.update(
            lead_id=reference.id,
            client_nom=reference.full_name,
            client_email=reference.email or "",
            client_telephone=reference.telephone or "",
            client_adresse=reference.adresse or "",
        )
        for field in ("client_nom", "client_email", "client_telephone", "client_adresse"):
            self.errors.pop(field, None)
        return True

    def validate(self) -> dict[str, str]:
        errors = {}
        for field in ("client_nom", "statut", "montant_ht"):
            if _is_blank(self.form.get(field)):
                errors[field] = REQUIRED_MESSAGE
        unknown = _unknown_status(self.form.get("statut"), DevisStatus)
        if unknown:
            errors["statut"] = unknown
        return errors

    def build_payload(self):
        values = {field: _blank_to_none(self.form.get(field)) for field in _DEVIS_FIELDS}
        values["montant_ht"] = self.amounts.ht
        values["tva_pct"] = self.amounts.tva_pct
        if self.is_edit:
            return DevisUpdate(**values)
        return DevisCreate(**values)

    def create(self, payload: DevisCreate):
        return self.devis.create(payload)

    def update(self, record, payload: DevisUpdate):
        return self.devis.update(record.id, payload)


class UserDialog(EntityDialog):
    """Create-only: roles of existing accounts change from the users page."""

    query_prefix = query_keys.USERS
    handled_errors = (*OPERATION_ERRORS, PartialUserCreationError)
    created_message = "Utilisateur créé avec succès ! Un email de confirmation a été envoyé."

    def __init__(self, users: UserService, cache: QueryCache, notifier: Notifier):
        super().__init__(cache, notifier)
        self.users = users

    def set_open(self, open: bool, record=None) -> None:
        super().set_open(open, None)

    def initial_form(self, record) -> dict[str, Any]:
        return {"email": "", "password": "", "full_name": "", "role": DEFAULT_ROLE.value}

    def validate(self) -> dict[str, str]:
        errors = {}
        for field in ("email", "password", "role"):
            if _is_blank(self.form.get(field)):
                errors[field] = REQUIRED_MESSAGE
        password = self.form.get("password") or ""
        if "password" not in errors and len(password) < 6:
            errors["password"] = "6 caractères minimum"
        role = self.form.get("role")
        if "role" not in errors and role not in {r.value for r in AppRole}:
            errors["role"] = "Rôle inconnu"
        return errors

    def build_payload(self) -> UserCreate:
        return UserCreate(
            email=(self.form.get("email") or "").strip(),
            password=self.form.get("password") or "",
            full_name=(self.form.get("full_name") or "").strip(),
            role=self.form.get("role"),
        )

    def create(self, payload: UserCreate):
        return self.users.create_user(payload)

    def on_failure(self, exc: Exception) -> None:
        if isinstance(exc, AuthGatewayError) and "already registered" in exc.message:
            self.notifier.error(DUPLICATE_EMAIL_MESSAGE)
        elif isinstance(exc, PartialUserCreationError):
            # the account exists now; show whatever half of it the store kept
            self.cache.invalidate(self.query_prefix)
            self.notifier.error(exc.message)
        else:
            super().on_failure(exc)
