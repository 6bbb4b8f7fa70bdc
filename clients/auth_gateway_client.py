"""
Client for the hosted auth layer (account sign-up and password sign-in).

Speaks the GoTrue-style HTTP API: the project API key goes in the `apikey`
header, sign-up metadata under `data`, and the post-confirmation redirect as
the `redirect_to` query parameter.
"""

import json
import logging
from dataclasses import dataclass
from uuid import UUID

import requests

logger = logging.getLogger(__name__)


class AuthGatewayError(Exception):
    """The auth layer refused the request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class AuthAccount:
    """An account as known by the auth layer."""

    id: UUID
    email: str


class AuthGatewayClient:
    """Create accounts and check passwords against the hosted auth layer."""

    def __init__(self, base_url: str, api_key: str, timeout_seconds: int = 10):
        if not base_url:
            raise ValueError("base_url is required")
        if not api_key:
            raise ValueError("api_key is required")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _post(self, path: str, payload: dict, params: dict | None = None) -> dict:
        headers = {
            "Content-Type": "application/json",
            "apikey": self.api_key,
        }
        try:
            response = requests.post(
                f"{self.base_url}{path}",
                json=payload,
                params=params,
                headers=headers,
                timeout=self.timeout_seconds,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Auth gateway connection failed: {e}")
            raise AuthGatewayError(f"Connection failed: {e}")

        try:
            body = response.json()
        except json.JSONDecodeError:
            body = {}

        if not 200 <= response.status_code < 300:
            if not isinstance(body, dict):
                body = {}
            message = (
                body.get("msg")
                or body.get("error_description")
                or body.get("message")
                or f"HTTP {response.status_code}"
            )
            logger.warning(f"Auth gateway refused {path}: {message}")
            raise AuthGatewayError(message, response.status_code)

        return body

    @staticmethod
    def _account_from(body: dict) -> AuthAccount:
        if not isinstance(body, dict):
            raise AuthGatewayError("Réponse inattendue du service d'authentification")
        user = body.get("user") or body
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthGatewayError("Utilisateur non créé")
        return AuthAccount(id=UUID(str(user["id"])), email=user.get("email", ""))

    def sign_up(self, email: str, password: str, full_name: str, redirect_to: str) -> AuthAccount:
        """
        Create an account; the auth layer sends the confirmation email.

        Raises:
            AuthGatewayError: Refused (e.g. 'User already registered') or unreachable
        """
        body = self._post(
            "/signup",
            {"email": email, "password": password, "data": {"full_name": full_name}},
            params={"redirect_to": redirect_to},
        )
        account = self._account_from(body)
        logger.info(f"Auth account created for {email}")
        return account

    def sign_in_with_password(self, email: str, password: str) -> AuthAccount:
        """
        Raises:
            AuthGatewayError: Wrong credentials or unreachable
        """
        body = self._post(
            "/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        return self._account_from(body)
