"""
Back-office account management.

Creating an account is three independent steps with no transaction across
them: the auth-layer account, the profile row, the role row. The client holds
no admin key, so an auth account cannot be removed once created. When a later
step fails, PartialUserCreationError names the step and the account id so an
administrator can finish or clean up by hand.
"""

import logging
from uuid import UUID, uuid4

from clients.auth_gateway_client import AuthGatewayClient
from clients.postgres_client import PostgresClient, StoreError
from core.change_publisher import ChangePublisher
from core.models.user import AppRole, DEFAULT_ROLE, ManagedUser, UserCreate
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class PartialUserCreationError(Exception):
    """The auth account exists but a later creation step failed."""

    def __init__(self, step: str, account_id: UUID, cause: Exception):
        self.step = step
        self.account_id = account_id
        self.cause = cause
        self.message = (
            f"Compte {account_id} créé mais l'étape '{step}' a échoué : "
            f"{getattr(cause, 'message', None) or cause}"
        )
        super().__init__(self.message)


class UserService:
    """Lists, creates, re-roles and removes back-office accounts."""

    def __init__(
        self,
        postgres: PostgresClient,
        auth_gateway: AuthGatewayClient,
        changes: ChangePublisher,
        confirmation_redirect_url: str,
    ):
        self.postgres = postgres
        self.auth_gateway = auth_gateway
        self.changes = changes
        self.confirmation_redirect_url = confirmation_redirect_url

    def list_users(self, search: str | None = None, role: str | None = None) -> list[ManagedUser]:
        """
        Profiles joined with their role, newest first. Accounts without a
        role row are listed as lecteur. `search` matches email or full name.
        """
        clauses = []
        params: list = []

        if search:
            pattern = f"%{search}%"
            clauses.append("(p.email ILIKE %s OR p.full_name ILIKE %s)")
            params.extend([pattern, pattern])

        if role and role != "all":
            clauses.append("COALESCE(r.role, %s) = %s")
            params.extend([DEFAULT_ROLE.value, role])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.postgres.execute(
            f"""
            SELECT p.id, p.email, p.full_name, p.created_at, p.updated_at,
                   COALESCE(r.role, %s) AS role
            FROM profiles p
            LEFT JOIN user_roles r ON r.user_id = p.id
            {where}
            ORDER BY p.created_at DESC
            """,
            tuple([DEFAULT_ROLE.value, *params])
        )
        return [ManagedUser.model_validate(row) for row in rows]

    def create_user(self, data: UserCreate) -> ManagedUser:
        """
        Raises:
            AuthGatewayError: The auth layer refused the account (nothing was created)
            PartialUserCreationError: The account exists but profile or role insert failed
        """
        account = self.auth_gateway.sign_up(
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            redirect_to=self.confirmation_redirect_url,
        )
        now = now_utc()

        try:
            profile = self.postgres.execute_returning(
                """
                INSERT INTO profiles (id, email, full_name, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING *
                """,
                (account.id, data.email, data.full_name, now, now)
            )[0]
        except StoreError as e:
            logger.error(f"Profile insert failed for new account {account.id}: {e}")
            raise PartialUserCreationError("profile", account.id, e)
        self.changes.published("profiles", "insert", account.id)

        try:
            self.postgres.execute(
                "INSERT INTO user_roles (id, user_id, role, created_at) VALUES (%s, %s, %s, %s)",
                (uuid4(), account.id, data.role.value, now)
            )
        except StoreError as e:
            logger.error(f"Role insert failed for new account {account.id}: {e}")
            raise PartialUserCreationError("role", account.id, e)
        self.changes.published("user_roles", "insert", account.id)

        logger.info(f"Created account {account.id} with role {data.role.value}")
        return ManagedUser.model_validate({**profile, "role": data.role})

    def change_role(self, user_id: UUID, role: AppRole) -> None:
        """
        Replace the account's role row. Delete then insert: between the two
        the account reads as lecteur, and a failed insert leaves it there.
        """
        self.postgres.execute("DELETE FROM user_roles WHERE user_id = %s", (user_id,))
        self.postgres.execute(
            "INSERT INTO user_roles (id, user_id, role, created_at) VALUES (%s, %s, %s, %s)",
            (uuid4(), user_id, AppRole(role).value, now_utc())
        )
        self.changes.published("user_roles", "update", user_id)

    def delete_user(self, user_id: UUID) -> None:
        """Remove role then profile. The auth-layer account is left in place."""
        self.postgres.execute("DELETE FROM user_roles WHERE user_id = %s", (user_id,))
        self.changes.published("user_roles", "delete", user_id)
        self.postgres.execute("DELETE FROM profiles WHERE id = %s", (user_id,))
        self.changes.published("profiles", "delete", user_id)
