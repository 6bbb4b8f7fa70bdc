# Infrastructure clients
from clients.vault_client import (
    VaultClient,
    VaultError,
    get_database_url,
    get_valkey_url,
    get_auth_config,
    get_webhook_config,
)
from clients.postgres_client import PostgresClient, StoreError
from clients.valkey_client import ValkeyClient
from clients.realtime_client import RealtimeClient, ChangeEvent, Subscription
from clients.auth_gateway_client import AuthGatewayClient, AuthGatewayError, AuthAccount
from clients.webhook_client import QuoteWebhookClient, WebhookError
