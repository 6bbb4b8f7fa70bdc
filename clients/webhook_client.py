"""
Client for the quote workflow webhook.

One fixed endpoint, POST with a JSON body, authenticated by a shared secret in
the X-Webhook-Secret header. Any 2xx is success. No retry: the user resends.
"""

import logging

import requests

logger = logging.getLogger(__name__)


class WebhookError(Exception):
    """The webhook call failed (connection error or non-2xx status)."""


class QuoteWebhookClient:
    """Hands a lead over to the quote generation workflow."""

    def __init__(self, url: str, secret: str, timeout_seconds: int = 15):
        if not url:
            raise ValueError("url is required")
        if not secret:
            raise ValueError("secret is required")

        self.url = url
        self.secret = secret
        self.timeout_seconds = timeout_seconds

    def send_quote_request(self, payload: dict) -> None:
        """
        Raises:
            WebhookError: On connection failure or a non-2xx answer
        """
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Secret": self.secret,
        }
        try:
            response = requests.post(
                self.url,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Quote webhook connection failed: {e}")
            raise WebhookError(f"Connection failed: {e}")

        if not 200 <= response.status_code < 300:
            logger.error(f"Quote webhook answered HTTP {response.status_code}")
            raise WebhookError(f"Webhook error: HTTP {response.status_code}")

        logger.info(f"Quote request sent for lead {payload.get('lead_id')}")
