"""Headless page and dialog state for the back office."""

from views.notifications import Notification, Notifier
from views.dialogs import EntityDialog, LeadDialog, DevisDialog, UserDialog
from views.list_pages import ListPage, LeadsPage, DevisPage, UsersPage, LatestDevisList

__all__ = [
    "Notification", "Notifier",
    "EntityDialog", "LeadDialog", "DevisDialog", "UserDialog",
    "ListPage", "LeadsPage", "DevisPage", "UsersPage", "LatestDevisList",
]
