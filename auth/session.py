"""Session token lifecycle management.

Sessions are stored in Valkey with TTL matching session expiry.
Token format is cryptographically random (secrets.token_urlsafe).
"""

import secrets
from datetime import timedelta
from uuid import UUID

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.types import Session
from auth.exceptions import SessionExpiredError
from utils.timezone import now_utc, parse_iso


class SessionManager:
    """Session token lifecycle management.

    Sliding expiry: when session_extend_on_activity is set, a session used
    with less than session_extend_threshold_hours left is pushed back to a
    full session_expiry_hours.
    """

    KEY_PREFIX = "session:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._config = config

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    @property
    def _lifetime(self) -> timedelta:
        return timedelta(hours=self._config.session_expiry_hours)

    def _store(self, session: Session) -> None:
        ttl_seconds = max(int((session.expires_at - now_utc()).total_seconds()), 1)
        self._valkey.set_json(
            self._key(session.token),
            {
                "user_id": str(session.user_id),
                "email": session.email,
                "created_at": session.created_at.isoformat(),
                "expires_at": session.expires_at.isoformat(),
                "last_activity_at": session.last_activity_at.isoformat(),
            },
            expire_seconds=ttl_seconds,
        )

    def create_session(self, user_id: UUID, email: str = "") -> Session:
        now = now_utc()
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            email=email,
            created_at=now,
            expires_at=now + self._lifetime,
            last_activity_at=now,
        )
        self._store(session)
        return session

    def validate_session(self, token: str) -> Session:
        """Validate session token and return session.

        Raises:
            SessionExpiredError: Token unknown or expired
        """
        data = self._valkey.get_json(self._key(token))
        if data is None:
            raise SessionExpiredError("Session not found or expired")

        session = Session(
            token=token,
            user_id=UUID(data["user_id"]),
            email=data.get("email", ""),
            created_at=parse_iso(data["created_at"]),
            expires_at=parse_iso(data["expires_at"]),
            last_activity_at=parse_iso(data["last_activity_at"]),
        )

        now = now_utc()
        # Valkey TTL normally removes these first
        if now > session.expires_at:
            self._valkey.delete(self._key(token))
            raise SessionExpiredError("Session expired")

        if self._should_extend(session):
            session = session.model_copy(
                update={"expires_at": now + self._lifetime, "last_activity_at": now}
            )
            self._store(session)

        return session

    def _should_extend(self, session: Session) -> bool:
        if not self._config.session_extend_on_activity:
            return False
        remaining = session.expires_at - now_utc()
        return remaining < timedelta(hours=self._config.session_extend_threshold_hours)

    def revoke_session(self, token: str) -> None:
        """Safe to call with a nonexistent token."""
        self._valkey.delete(self._key(token))
