"""
PostgreSQL client for the hosted back-office store.

Uses psycopg2 with ThreadedConnectionPool. Row Level Security decides what
each account may see or change: the account id is read from the user context
contextvar and set as app.current_user_id on every checkout.

Store failures surface as StoreError carrying the database message verbatim,
which is what the back office shows to the user.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

from utils.user_context import peek_current_user_id

logger = logging.getLogger(__name__)

_jsonb_registered = False


class StoreError(Exception):
    """A store call failed. `message` is the store's own text, when it gave one."""

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message or "Store call failed")


def _to_store_error(exc: psycopg2.Error) -> StoreError:
    message = None
    diag = getattr(exc, "diag", None)
    if diag is not None and diag.message_primary:
        message = diag.message_primary
    elif exc.pgerror:
        message = exc.pgerror.strip()
    elif str(exc):
        # Pool and connection failures raised client-side carry no diagnostics
        message = str(exc)
    return StoreError(message, exc.pgcode)


class PostgresClient:
    """
    PostgreSQL client with automatic RLS context.

    Usage:
        db = PostgresClient(database_url)

        with user_context(account_id):
            leads = db.execute("SELECT * FROM leads")   # what RLS allows

    Without a user context the session variable is empty and RLS hides every row.
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str):
        self._database_url = database_url
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                return
            try:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=10,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
            except psycopg2.Error as exc:
                raise _to_store_error(exc) from exc

            global _jsonb_registered
            if not _jsonb_registered:
                psycopg2.extras.register_default_jsonb(globally=True)
                _jsonb_registered = True

            self._connection_pools[self._database_url] = pool
            logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Check out a connection with the caller's RLS context applied."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        try:
            conn = pool.getconn()
        except psycopg2.Error as exc:
            raise _to_store_error(exc) from exc
        if conn is None:
            raise StoreError("Could not get connection from pool")

        try:
            user_id = peek_current_user_id()
            with conn.cursor() as cur:
                # Empty string fails the ::uuid cast in policies, so no rows match
                cur.execute(
                    "SET app.current_user_id = %s",
                    (str(user_id) if user_id is not None else "",),
                )
            yield conn
        except psycopg2.Error as exc:
            conn.rollback()
            raise _to_store_error(exc) from exc
        finally:
            pool.putconn(conn)

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """UUIDs as strings, dicts and lists of dicts as JSON for jsonb columns."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, dict):
                return psycopg2.extras.Json(value)
            if isinstance(value, list) and value and all(isinstance(v, dict) for v in value):
                return psycopg2.extras.Json(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            return value

        if isinstance(params, dict):
            return {k: convert(v) for k, v in params.items()}
        return tuple(convert(v) for v in params)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Run a statement; rows as dicts when it returns any, else []."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
                conn.commit()
                return rows

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """First row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """INSERT/UPDATE/DELETE ... RETURNING; committed rows."""
        return self.execute(query, params)

    def close(self) -> None:
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
