"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from clients.auth_gateway_client import AuthGatewayError
from clients.postgres_client import StoreError
from clients.webhook_client import WebhookError
from core.services.user_service import PartialUserCreationError

logger = logging.getLogger(__name__)

GENERIC_STORE_MESSAGE = "Une erreur est survenue"


def _error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=status_code,
        content=error_response(code, message, request_id).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValidationError)
    async def model_validation_error_handler(request: Request, exc: ValidationError):
        return _error(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors(include_url=False)))

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        message = str(exc)
        if "not found" in message.lower():
            return _error(request, 404, ErrorCodes.NOT_FOUND, message)
        return _error(request, 400, ErrorCodes.INVALID_REQUEST, message)

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError):
        return _error(request, 403, ErrorCodes.FORBIDDEN, str(exc) or "Accès non autorisé")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error(request, 422, ErrorCodes.VALIDATION_ERROR, str(exc.errors()))

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.warning(f"Store error on {request.url.path}: {exc}")
        return _error(request, 502, ErrorCodes.STORE_ERROR, exc.message or GENERIC_STORE_MESSAGE)

    @app.exception_handler(AuthGatewayError)
    async def auth_gateway_error_handler(request: Request, exc: AuthGatewayError):
        if "already registered" in exc.message:
            return _error(request, 409, ErrorCodes.ALREADY_EXISTS, "Cet email est déjà utilisé")
        return _error(request, 502, ErrorCodes.AUTH_GATEWAY_ERROR, exc.message)

    @app.exception_handler(WebhookError)
    async def webhook_error_handler(request: Request, exc: WebhookError):
        return _error(request, 502, ErrorCodes.WEBHOOK_ERROR, "Erreur lors de l'envoi du devis")

    @app.exception_handler(PartialUserCreationError)
    async def partial_user_creation_handler(request: Request, exc: PartialUserCreationError):
        logger.error(f"Partial user creation: step={exc.step} account={exc.account_id}")
        return _error(request, 502, ErrorCodes.PARTIAL_USER_CREATION, exc.message)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
