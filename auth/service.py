"""Authentication service - password sign-in through the hosted auth layer."""

import logging
from dataclasses import dataclass
from uuid import UUID

from auth.exceptions import InvalidCredentialsError
from auth.session import SessionManager
from auth.types import AuthenticatedUser, Session
from clients.auth_gateway_client import AuthGatewayClient, AuthGatewayError
from core.models.user import AppRole
from core.roles import Capabilities, capabilities_for
from core.services.role_service import RoleService

logger = logging.getLogger(__name__)

# Auth layer answers for a wrong email/password pair
_REJECTED_STATUSES = {400, 401, 422}


@dataclass(frozen=True)
class AccountAccess:
    """What /auth/me reports: the account's role and what it unlocks."""

    user_id: UUID
    role: AppRole
    capabilities: Capabilities


class AuthService:
    """Orchestrates sign-in, session validation and logout."""

    def __init__(
        self,
        gateway: AuthGatewayClient,
        session_manager: SessionManager,
        role_service: RoleService,
    ):
        self._gateway = gateway
        self._session_manager = session_manager
        self._role_service = role_service

    def login(self, email: str, password: str) -> AuthenticatedUser:
        """
        Raises:
            InvalidCredentialsError: The auth layer refused the pair
            AuthGatewayError: The auth layer is unreachable or failed
        """
        try:
            account = self._gateway.sign_in_with_password(email, password)
        except AuthGatewayError as e:
            if e.status_code in _REJECTED_STATUSES:
                logger.info(f"Sign-in refused for {email}")
                raise InvalidCredentialsError("Email ou mot de passe incorrect") from e
            raise

        session = self._session_manager.create_session(account.id, account.email or email)
        logger.info(f"User {account.id} signed in")
        return AuthenticatedUser(user_id=account.id, email=session.email, session=session)

    def logout(self, session_token: str) -> None:
        self._session_manager.revoke_session(session_token)

    def validate_session(self, token: str) -> Session:
        return self._session_manager.validate_session(token)

    def access_for(self, user_id: UUID) -> AccountAccess:
        """Role lookup; must run inside the account's user context (RLS)."""
        role = self._role_service.get_role(user_id)
        return AccountAccess(user_id=user_id, role=role, capabilities=capabilities_for(role))
