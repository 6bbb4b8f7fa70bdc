"""Application wiring: clients built once from Vault, then injected everywhere."""

import logging

from fastapi import FastAPI

from api.actions import create_actions_router
from api.data import create_data_router
from api.errors import register_error_handlers
from api.middleware import RequestIDMiddleware
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.session import SessionManager
from clients.auth_gateway_client import AuthGatewayClient
from clients.postgres_client import PostgresClient
from clients.realtime_client import RealtimeClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_auth_config,
    get_database_url,
    get_valkey_url,
    get_webhook_config,
)
from clients.webhook_client import QuoteWebhookClient
from core.change_publisher import ChangePublisher
from core.services.devis_service import DevisService
from core.services.lead_service import LeadService
from core.services.quote_dispatch_service import QuoteDispatchService
from core.services.role_service import RoleService
from core.services.user_service import UserService

logger = logging.getLogger(__name__)


def build_services(config: AuthConfig | None = None) -> dict:
    """
    Construct every client and service from Vault secrets.

    Raises:
        VaultError: A secret is missing or Vault is unreachable
    """
    config = config or AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())
    realtime = RealtimeClient(valkey)
    changes = ChangePublisher(realtime)

    auth_settings = get_auth_config()
    gateway = AuthGatewayClient(auth_settings["base_url"], auth_settings["api_key"])

    webhook_settings = get_webhook_config()
    webhook = QuoteWebhookClient(webhook_settings["url"], webhook_settings["secret"])

    leads = LeadService(postgres, changes)
    roles = RoleService(postgres)

    return {
        "postgres": postgres,
        "valkey": valkey,
        "realtime": realtime,
        "lead": leads,
        "devis": DevisService(postgres, changes),
        "user": UserService(postgres, gateway, changes, config.confirmation_redirect_url),
        "role": roles,
        "quote_dispatch": QuoteDispatchService(webhook, leads),
        "auth": AuthService(gateway, SessionManager(valkey, config), roles),
    }


def create_app(services: dict, secure_cookies: bool = True) -> FastAPI:
    """FastAPI app with auth middleware, error handlers, auth/data/actions routes."""
    app = FastAPI(title=AuthConfig().app_name)
    app.add_middleware(AuthMiddleware, auth_service=services["auth"])
    # Added last so it wraps the auth middleware and logs 401s too
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(create_auth_router(services["auth"], secure_cookies), prefix="/auth")
    app.include_router(create_data_router(services), prefix="/api")
    app.include_router(create_actions_router(services), prefix="/api")

    logger.info("Back-office API ready")
    return app
