"""
Send a lead to the quote generation workflow, then mark it devis_envoye.

Two independent steps: the webhook call, then the status update. A failed
webhook stops everything; a failed status update after a successful webhook
is reported but not raised, because the quote is already on its way.
"""

import logging
from dataclasses import dataclass

from clients.postgres_client import StoreError
from clients.webhook_client import QuoteWebhookClient
from core.models import Lead
from core.services.lead_service import LeadService
from core.status import LeadStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteSendResult:
    status_updated: bool


def quote_request_payload(lead: Lead) -> dict:
    return {
        "lead_id": str(lead.id),
        "nom": lead.nom,
        "prenom": lead.prenom,
        "email": lead.email,
        "telephone": lead.telephone,
        "adresse": lead.adresse,
        "ville": lead.ville,
        "type_projet": lead.type_projet,
    }


class QuoteDispatchService:
    def __init__(self, webhook: QuoteWebhookClient, leads: LeadService):
        self.webhook = webhook
        self.leads = leads

    def send_quote(self, lead: Lead) -> QuoteSendResult:
        """
        Raises:
            WebhookError: The workflow did not accept the request; status untouched
        """
        self.webhook.send_quote_request(quote_request_payload(lead))

        try:
            self.leads.update_status(lead.id, LeadStatus.DEVIS_ENVOYE)
        except (StoreError, ValueError) as e:
            logger.error(f"Quote sent for lead {lead.id} but status update failed: {e}")
            return QuoteSendResult(status_updated=False)

        return QuoteSendResult(status_updated=True)
