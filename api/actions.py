"""POST /api/actions: unified mutation endpoint, gated by role capabilities."""

from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from api.base import success_response
from core.models import DevisCreate, DevisUpdate, LeadCreate, LeadUpdate, UserCreate
from core.models.user import AppRole
from core.roles import Capabilities, READER_CAPABILITIES


class ActionRequest(BaseModel):
    domain: str
    action: str
    data: dict


def create_actions_router(services: dict) -> APIRouter:
    router = APIRouter()

    handlers = {
        "lead": LeadHandler(services["lead"], services["quote_dispatch"]),
        "devis": DevisHandler(services["devis"]),
        "user": UserHandler(services["user"]),
    }

    @router.post("/actions")
    async def perform_action(request: Request, body: ActionRequest):
        handler = handlers.get(body.domain)
        if handler is None:
            raise ValueError(
                f"Unknown domain '{body.domain}'. "
                f"Valid domains: {', '.join(sorted(handlers.keys()))}"
            )

        if body.action not in handler.ALLOWED_ACTIONS:
            raise ValueError(
                f"Action '{body.action}' not allowed on '{body.domain}'. "
                f"Allowed: {', '.join(sorted(handler.ALLOWED_ACTIONS))}"
            )

        capabilities = getattr(request.state, "capabilities", READER_CAPABILITIES)
        _require(capabilities, handler.ALLOWED_ACTIONS[body.action])

        method = getattr(handler, f"_handle_{body.action}")
        result = method(dict(body.data))
        return success_response(result).model_dump(mode="json")

    return router


def _require(capabilities: Capabilities, capability: str) -> None:
    if not getattr(capabilities, capability):
        raise PermissionError("Action non autorisée pour ce rôle")


# =============================================================================
# HANDLER CLASSES
# =============================================================================
# ALLOWED_ACTIONS maps each action to the capability it needs.


class LeadHandler:
    ALLOWED_ACTIONS = {
        "create": "can_edit",
        "update": "can_edit",
        "send_quote": "can_edit",
        "delete": "can_delete",
    }

    def __init__(self, service, dispatch):
        self.service = service
        self.dispatch = dispatch

    def _handle_create(self, data: dict):
        lead = self.service.create(LeadCreate(**data))
        return lead.model_dump(mode="json")

    def _handle_update(self, data: dict):
        lead_id = UUID(data.pop("id"))
        lead = self.service.update(lead_id, LeadUpdate(**data))
        return lead.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        lead_id = UUID(data["id"])
        deleted = self.service.delete(lead_id)
        if not deleted:
            raise ValueError(f"Lead {lead_id} not found")
        return {"deleted": True}

    def _handle_send_quote(self, data: dict):
        lead_id = UUID(data["id"])
        lead = self.service.get_by_id(lead_id)
        if lead is None:
            raise ValueError(f"Lead {lead_id} not found")
        result = self.dispatch.send_quote(lead)
        return {"sent": True, "status_updated": result.status_updated}


class DevisHandler:
    ALLOWED_ACTIONS = {
        "create": "can_edit",
        "update": "can_edit",
        "delete": "can_delete",
    }

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        data.pop("numero", None)
        data.pop("montant_ttc", None)
        devis = self.service.create(DevisCreate(**data))
        return devis.model_dump(mode="json")

    def _handle_update(self, data: dict):
        devis_id = UUID(data.pop("id"))
        data.pop("numero", None)
        data.pop("montant_ttc", None)
        devis = self.service.update(devis_id, DevisUpdate(**data))
        return devis.model_dump(mode="json")

    def _handle_delete(self, data: dict):
        devis_id = UUID(data["id"])
        deleted = self.service.delete(devis_id)
        if not deleted:
            raise ValueError(f"Devis {devis_id} not found")
        return {"deleted": True}


class UserHandler:
    ALLOWED_ACTIONS = {
        "create": "is_admin",
        "change_role": "is_admin",
        "delete": "is_admin",
    }

    def __init__(self, service):
        self.service = service

    def _handle_create(self, data: dict):
        user = self.service.create_user(UserCreate(**data))
        return user.model_dump(mode="json")

    def _handle_change_role(self, data: dict):
        user_id = UUID(data["id"])
        role = AppRole(data["role"])
        self.service.change_role(user_id, role)
        return {"id": str(user_id), "role": role.value}

    def _handle_delete(self, data: dict):
        self.service.delete_user(UUID(data["id"]))
        return {"deleted": True}
