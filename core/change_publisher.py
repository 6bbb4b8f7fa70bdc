"""
Post-commit change notifications.

Services call ChangePublisher.published(...) after a write has committed.
Delivery failures are logged but never propagate: the write already happened,
and a missed notification only delays other clients until their next fetch.
"""

import logging

from clients.realtime_client import ChangeType, RealtimeClient

logger = logging.getLogger(__name__)


class ChangePublisher:
    """Fan a committed write out to the realtime feed, if one is wired."""

    def __init__(self, realtime: RealtimeClient | None = None):
        self._realtime = realtime

    def published(self, table: str, event: ChangeType, record_id=None) -> None:
        if self._realtime is None:
            return
        try:
            self._realtime.publish(table, event, record_id)
        except Exception:
            logger.exception(
                "Change notification failed for %s %s (record_id=%s)",
                table,
                event,
                record_id,
            )
