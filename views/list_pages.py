"""
List pages (leads, devis, users) and the latest-devis widget.

A page is live while shown: it holds one realtime subscription to its
table(s) and re-fetches whenever its query is invalidated, whether by a
realtime event from any client or by a local mutation. hide() (or leaving
the `with` block) always releases the subscription.
"""

import logging
from typing import Any

from clients.realtime_client import ChangeEvent, RealtimeClient, Subscription
from core.cache import QueryCache, QueryKey, remove_record, replace_record
from core.models import Lead
from core.models.user import AppRole
from core.roles import RoleGate
from core.services.devis_service import DevisService
from core.services.lead_service import LeadService
from core.services.quote_dispatch_service import QuoteDispatchService
from core.services.user_service import UserService
from views import query_keys
from views.dialogs import DevisDialog, EntityDialog, LeadDialog, UserDialog
from views.notifications import OPERATION_ERRORS, Notifier, error_message

logger = logging.getLogger(__name__)

ALL = "all"
ACCESS_DENIED_MESSAGE = "Accès non autorisé"


class LiveQuery:
    """A cached query kept fresh by realtime invalidation while visible."""

    tables: tuple[str, ...] = ()
    query_prefix: QueryKey = ()

    def __init__(self, cache: QueryCache, realtime: RealtimeClient, notifier: Notifier):
        self.cache = cache
        self.realtime = realtime
        self.notifier = notifier
        self.rows: list = []
        self.is_loading = False
        self.is_visible = False
        self._subscription: Subscription | None = None

    @property
    def query_key(self) -> QueryKey:
        return self.query_prefix

    @property
    def is_subscribed(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def query(self) -> list:
        raise NotImplementedError

    def load(self) -> list:
        """Rows for the current query; a failed fetch notifies and shows nothing."""
        self.is_loading = True
        try:
            self.rows = self.cache.fetch(self.query_key, self.query)
        except OPERATION_ERRORS as e:
            logger.warning(f"{type(self).__name__} fetch failed: {e}")
            self.notifier.error(error_message(e))
            self.rows = []
        finally:
            self.is_loading = False
        return self.rows

    def show(self) -> list:
        """Subscribe and load; anything escaping the first load unsubscribes again."""
        first_show = not self.is_visible
        try:
            if first_show:
                self.is_visible = True
                self.cache.add_listener(self._on_invalidated)
                self._subscription = self.realtime.subscribe(self.tables, self._on_change)
            return self.load()
        except Exception:
            if first_show:
                self.hide()
            raise

    def hide(self) -> None:
        self.is_visible = False
        self.cache.remove_listener(self._on_invalidated)
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def __enter__(self):
        self.show()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.hide()

    def _on_change(self, event: ChangeEvent) -> None:
        self.cache.invalidate(self.query_prefix)

    def _on_invalidated(self, prefix: QueryKey) -> None:
        if self.is_visible and self.query_key[:len(prefix)] == prefix:
            self.load()


class LatestDevisList(LiveQuery):
    """Dashboard widget: the five most recent quotes."""

    tables = ("devis",)
    query_prefix = query_keys.LATEST_DEVIS
    size = 5

    def __init__(self, devis: DevisService, cache: QueryCache, realtime: RealtimeClient, notifier: Notifier):
        super().__init__(cache, realtime, notifier)
        self.devis = devis

    def query(self) -> list:
        return self.devis.latest(self.size)


class ListPage(LiveQuery):
    """
    Searchable, filterable grid with a create/edit dialog and a confirmed
    delete. Mutating affordances follow the role gate.
    """

    deleted_message = ""

    def __init__(
        self,
        cache: QueryCache,
        realtime: RealtimeClient,
        notifier: Notifier,
        gate: RoleGate,
        dialog: EntityDialog | None = None,
    ):
        super().__init__(cache, realtime, notifier)
        self.gate = gate
        self.dialog = dialog
        self.search = ""
        self.status_filter = ALL
        self.pending_delete: Any = None

    @property
    def query_key(self) -> QueryKey:
        return (*self.query_prefix, self.search.strip(), self.status_filter)

    def set_search(self, term: str) -> list:
        self.search = term or ""
        return self.load()

    def set_status_filter(self, code: str | None) -> list:
        self.status_filter = code or ALL
        return self.load()

    def _filter_args(self) -> tuple[str | None, str | None]:
        search = self.search.strip() or None
        status = None if self.status_filter == ALL else self.status_filter
        return search, status

    # Dialog

    def open_create(self) -> EntityDialog:
        self._require(self.gate.can_edit)
        self.dialog.set_open(True)
        return self.dialog

    def open_edit(self, record) -> EntityDialog:
        self._require(self.gate.can_edit)
        self.dialog.set_open(True, record)
        return self.dialog

    # Delete

    def request_delete(self, record) -> None:
        """Arm the confirmation. Nothing is deleted yet."""
        self._require(self.gate.can_delete)
        self.pending_delete = record

    def cancel_delete(self) -> None:
        self.pending_delete = None

    def confirm_delete(self) -> bool:
        """
        Delete the armed record once. On failure the confirmation stays
        armed so the user can retry or cancel.
        """
        record = self.pending_delete
        if record is None:
            return False
        self._require(self.gate.can_delete)

        try:
            self.delete(record)
        except OPERATION_ERRORS as e:
            logger.warning(f"{type(self).__name__} delete failed: {e}")
            self.notifier.error(error_message(e))
            return False

        self.cache.patch(self.query_prefix, lambda rows: remove_record(rows, record.id))
        self.rows = remove_record(self.rows, record.id)
        self.cache.invalidate(self.query_prefix)
        self.pending_delete = None
        self.notifier.success(self.deleted_message)
        return True

    def delete(self, record) -> None:
        raise NotImplementedError

    @staticmethod
    def _require(allowed: bool) -> None:
        if not allowed:
            raise PermissionError("Action non autorisée pour ce rôle")


class LeadsPage(ListPage):
    tables = ("leads",)
    query_prefix = query_keys.LEADS
    deleted_message = "Lead supprimé avec succès"

    def __init__(
        self,
        leads: LeadService,
        dispatch: QuoteDispatchService,
        cache: QueryCache,
        realtime: RealtimeClient,
        notifier: Notifier,
        gate: RoleGate,
    ):
        super().__init__(cache, realtime, notifier, gate, LeadDialog(leads, cache, notifier))
        self.leads = leads
        self.dispatch = dispatch

    def query(self) -> list:
        search, status = self._filter_args()
        return self.leads.list_all(search=search, statut=status)

    def delete(self, record) -> None:
        if not self.leads.delete(record.id):
            raise ValueError(f"Lead {record.id} not found")

    def send_quote(self, lead: Lead) -> bool:
        """
        Hand the lead to the quote workflow. Returns True once the workflow
        accepted it, even if marking the lead devis_envoye then failed.
        """
        self._require(self.gate.can_edit)
        try:
            result = self.dispatch.send_quote(lead)
        except OPERATION_ERRORS as e:
            logger.warning(f"Quote request failed for lead {lead.id}: {e}")
            self.notifier.error("Erreur lors de l'envoi du devis")
            return False

        if result.status_updated:
            self.cache.invalidate(self.query_prefix)
            self.notifier.success("Devis Envoyé et statut mis à jour")
        else:
            self.notifier.warning("Devis Envoyé mais erreur lors de la mise à jour du statut")
        return True


class DevisPage(ListPage):
    tables = ("devis",)
    query_prefix = query_keys.DEVIS
    deleted_message = "Devis supprimé avec succès"

    def __init__(
        self,
        devis: DevisService,
        leads: LeadService,
        cache: QueryCache,
        realtime: RealtimeClient,
        notifier: Notifier,
        gate: RoleGate,
    ):
        super().__init__(cache, realtime, notifier, gate, DevisDialog(devis, leads, cache, notifier))
        self.devis = devis

    def query(self) -> list:
        search, status = self._filter_args()
        return self.devis.list_all(search=search, statut=status)

    def delete(self, record) -> None:
        if not self.devis.delete(record.id):
            raise ValueError(f"Devis {record.id} not found")

    def confirm_delete(self) -> bool:
        deleted = super().confirm_delete()
        if deleted:
            self.cache.invalidate(query_keys.LATEST_DEVIS)
        return deleted


class UsersPage(ListPage):
    """Administrators only. The status filter filters on role here."""

    tables = ("profiles", "user_roles")
    query_prefix = query_keys.USERS
    deleted_message = "Utilisateur supprimé avec succès"

    def __init__(
        self,
        users: UserService,
        cache: QueryCache,
        realtime: RealtimeClient,
        notifier: Notifier,
        gate: RoleGate,
    ):
        super().__init__(cache, realtime, notifier, gate, UserDialog(users, cache, notifier))
        self.users = users
        self.redirect_to: str | None = None

    def check_access(self) -> bool:
        """
        While the role is still loading nothing is decided. A resolved
        non-admin is sent back to the dashboard.
        """
        if not self.gate.is_resolved:
            return False
        if self.gate.is_admin:
            return True
        if self.redirect_to is None:
            self.notifier.error(ACCESS_DENIED_MESSAGE)
            self.redirect_to = "/"
        return False

    def show(self) -> list:
        if not self.check_access():
            return []
        return super().show()

    def query(self) -> list:
        search, role = self._filter_args()
        return self.users.list_users(search=search, role=role)

    def open_edit(self, record) -> EntityDialog:
        raise PermissionError("Les comptes existants se modifient par changement de rôle")

    def delete(self, record) -> None:
        self.users.delete_user(record.id)

    def change_role(self, user, role: AppRole | str) -> bool:
        self._require(self.gate.is_admin)
        role = AppRole(role)
        try:
            self.users.change_role(user.id, role)
        except OPERATION_ERRORS as e:
            logger.warning(f"Role change failed for user {user.id}: {e}")
            self.notifier.error(error_message(e))
            return False

        updated = user.model_copy(update={"role": role})
        self.cache.patch(self.query_prefix, lambda rows: replace_record(rows, updated))
        self.cache.invalidate(self.query_prefix)
        self.notifier.success("Rôle modifié avec succès")
        return True
