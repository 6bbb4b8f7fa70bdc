"""Role lookup for the signed-in account."""

import logging
from uuid import UUID

from clients.postgres_client import PostgresClient
from core.models.user import AppRole, DEFAULT_ROLE

logger = logging.getLogger(__name__)


class RoleService:
    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def get_role(self, user_id: UUID) -> AppRole:
        """Role of `user_id`; accounts without a role row read as lecteur."""
        row = self.postgres.execute_single(
            "SELECT role FROM user_roles WHERE user_id = %s",
            (user_id,)
        )
        if row is None:
            return DEFAULT_ROLE
        try:
            return AppRole(row["role"])
        except ValueError:
            logger.warning(f"Unknown role '{row['role']}' for user {user_id}, treating as lecteur")
            return DEFAULT_ROLE
