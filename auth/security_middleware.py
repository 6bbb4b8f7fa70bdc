"""Security middleware for FastAPI - session validation, user context and role."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.service import AuthService
from auth.exceptions import SessionExpiredError
from api.base import error_response, ErrorCodes
from clients.postgres_client import StoreError
from core.models.user import DEFAULT_ROLE
from core.roles import READER_CAPABILITIES
from utils.user_context import set_current_user_id, clear_current_user_id

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session and sets user context.

    For protected routes:
    1. Extracts session token from 'session_token' cookie
    2. Validates session via AuthService
    3. Sets user_id in request.state and user context (for RLS)
    4. Resolves the account's role into request.state.role / .capabilities
    5. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/login",
        "/auth/logout",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, auth_service: AuthService):
        super().__init__(app)
        self._auth_service = auth_service

    def _is_public_path(self, path: str) -> bool:
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path + "/"):
                return True
        return False

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if self._is_public_path(path):
            return await call_next(request)

        session_token = request.cookies.get("session_token")
        if not session_token:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                ).model_dump(mode="json"),
            )

        try:
            session = self._auth_service.validate_session(session_token)
        except SessionExpiredError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.SESSION_EXPIRED,
                    "Session has expired",
                ).model_dump(mode="json"),
            )

        # Set user context for RLS
        set_current_user_id(session.user_id)
        request.state.user_id = session.user_id
        request.state.session = session

        try:
            try:
                access = self._auth_service.access_for(session.user_id)
                request.state.role = access.role
                request.state.capabilities = access.capabilities
            except StoreError as e:
                # Unknown role reads as lecteur
                logger.warning(f"Role lookup failed for {session.user_id}: {e}")
                request.state.role = DEFAULT_ROLE
                request.state.capabilities = READER_CAPABILITIES

            return await call_next(request)
        finally:
            clear_current_user_id()
