"""Transient toast notifications raised by pages and dialogs."""

import logging
import threading
from dataclasses import dataclass
from typing import Literal

from clients.auth_gateway_client import AuthGatewayError
from clients.postgres_client import StoreError
from clients.webhook_client import WebhookError

logger = logging.getLogger(__name__)

NotificationLevel = Literal["success", "error", "warning"]

GENERIC_ERROR_MESSAGE = "Une erreur est survenue"

# Failures an operation turns into a notification instead of raising
OPERATION_ERRORS = (StoreError, AuthGatewayError, WebhookError, ValueError)


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str


def error_message(exc: Exception) -> str:
    """The collaborator's own message when it gave one, else the generic text."""
    return getattr(exc, "message", None) or GENERIC_ERROR_MESSAGE


class Notifier:
    """Collects notifications in order. The UI drains them; tests read them."""

    def __init__(self):
        self._items: list[Notification] = []
        self._lock = threading.Lock()

    def notify(self, level: NotificationLevel, message: str) -> Notification:
        notification = Notification(level, message)
        with self._lock:
            self._items.append(notification)
        if level == "success":
            logger.info(message)
        else:
            logger.warning(message)
        return notification

    def success(self, message: str) -> Notification:
        return self.notify("success", message)

    def error(self, message: str) -> Notification:
        return self.notify("error", message)

    def warning(self, message: str) -> Notification:
        return self.notify("warning", message)

    @property
    def items(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def drain(self) -> list[Notification]:
        with self._lock:
            items, self._items = self._items, []
        return items
