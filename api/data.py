"""GET /api/data: unified read endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from api.base import success_response
from core.roles import READER_CAPABILITIES


VALID_TYPES = {"leads", "devis", "users"}


def _dump(items) -> list[dict]:
    return [item.model_dump(mode="json") for item in items]


def create_data_router(services: dict) -> APIRouter:
    router = APIRouter()

    lead_svc = services["lead"]
    devis_svc = services["devis"]
    user_svc = services["user"]

    # -------------------------------------------------------------------------
    # Convenience routes (must be registered before the generic /data route)
    # -------------------------------------------------------------------------

    @router.get("/data/devis/latest")
    async def latest_devis(request: Request, limit: int = Query(5, ge=1, le=50)):
        return success_response(_dump(devis_svc.latest(limit))).model_dump(mode="json")

    @router.get("/data/leads/references")
    async def lead_references(request: Request):
        return success_response(_dump(lead_svc.list_references())).model_dump(mode="json")

    # -------------------------------------------------------------------------
    # Generic data endpoint
    # -------------------------------------------------------------------------

    @router.get("/data")
    async def get_data(
        request: Request,
        type: str | None = Query(None),
        id: str | None = Query(None),
        search: str | None = Query(None),
        statut: str | None = Query(None),
        role: str | None = Query(None),
        limit: int = Query(500, ge=1, le=1000),
    ):
        if type is None:
            raise ValueError("'type' query parameter is required")

        if type not in VALID_TYPES:
            raise ValueError(f"Unknown type '{type}'. Valid types: {', '.join(sorted(VALID_TYPES))}")

        if type == "leads":
            return _handle_entity(lead_svc, "Lead", id, search, statut, limit)

        if type == "devis":
            return _handle_entity(devis_svc, "Devis", id, search, statut, limit)

        if type == "users":
            capabilities = getattr(request.state, "capabilities", READER_CAPABILITIES)
            if not capabilities.is_admin:
                raise PermissionError("Accès non autorisé")
            users = user_svc.list_users(search=search, role=role)
            return success_response(_dump(users)).model_dump(mode="json")

    return router


def _handle_entity(service, label, id, search, statut, limit):
    if id:
        record = service.get_by_id(UUID(id))
        if record is None:
            raise ValueError(f"{label} {id} not found")
        return success_response(record.model_dump(mode="json")).model_dump(mode="json")

    records = service.list_all(search=search, statut=statut, limit=limit)
    return success_response(_dump(records)).model_dump(mode="json")
