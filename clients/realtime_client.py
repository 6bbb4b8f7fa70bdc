"""
Realtime change feed over Valkey pub/sub.

One channel per table (`realtime:<table>`). Writers publish a ChangeEvent after
their write has committed; list pages subscribe for as long as they are shown
and drop their cached queries on any event.

Subscriber callbacks run on the pub/sub worker thread. Callback errors are
logged and never propagate: the feed keeps delivering to the other callbacks.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Literal

from pydantic import BaseModel, Field, ValidationError

from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

ChangeType = Literal["insert", "update", "delete"]
ALL_EVENTS = ("insert", "update", "delete")


class ChangeEvent(BaseModel):
    """One row change on a table."""

    table: str
    event: ChangeType
    record_id: str | None = None
    occurred_at: datetime = Field(default_factory=now_utc)


class Subscription:
    """
    Live subscription handle. Release it with close() or by using it as a
    context manager; closing twice is harmless.
    """

    def __init__(self, pubsub, worker, tables: tuple[str, ...]):
        self._pubsub = pubsub
        self._worker = worker
        self.tables = tables
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self._worker.stop()
        finally:
            self._pubsub.close()
        logger.info(f"Realtime subscription released: {', '.join(self.tables)}")

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RealtimeClient:
    """Publish and subscribe to table change events."""

    CHANNEL_PREFIX = "realtime:"

    def __init__(self, valkey: ValkeyClient, poll_interval_seconds: float = 0.1):
        self._valkey = valkey
        self._poll_interval = poll_interval_seconds

    def channel(self, table: str) -> str:
        return f"{self.CHANNEL_PREFIX}{table}"

    def publish(self, table: str, event: ChangeType, record_id=None) -> None:
        change = ChangeEvent(
            table=table,
            event=event,
            record_id=str(record_id) if record_id is not None else None,
        )
        self._valkey.publish(self.channel(table), change.model_dump_json())

    def subscribe(
        self,
        tables: str | Iterable[str],
        callback: Callable[[ChangeEvent], None],
        events: Iterable[str] = ALL_EVENTS,
    ) -> Subscription:
        """
        Deliver every matching change on `tables` to `callback` until the
        returned Subscription is closed.
        """
        if isinstance(tables, str):
            tables = (tables,)
        tables = tuple(tables)
        wanted = set(events)

        def on_message(message: dict) -> None:
            try:
                change = ChangeEvent.model_validate_json(message["data"])
            except (ValidationError, KeyError, TypeError):
                logger.warning(f"Ignoring malformed change message on {message.get('channel')}")
                return
            if change.event not in wanted:
                return
            try:
                callback(change)
            except Exception:
                logger.exception(
                    "Realtime callback %s failed for %s %s",
                    getattr(callback, "__name__", repr(callback)),
                    change.table,
                    change.event,
                )

        pubsub = self._valkey.pubsub()
        pubsub.subscribe(**{self.channel(table): on_message for table in tables})
        worker = pubsub.run_in_thread(sleep_time=self._poll_interval, daemon=True)
        logger.info(f"Realtime subscription opened: {', '.join(tables)}")
        return Subscription(pubsub, worker, tables)
