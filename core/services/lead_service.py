"""
Lead service for CRUD operations.

Hard deletes, like the rest of the back office. Every committed write is
announced on the realtime feed so open lead lists re-fetch.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.change_publisher import ChangePublisher
from core.models import Lead, LeadCreate, LeadReference, LeadUpdate
from core.status import LeadStatus, status_variants
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

TABLE = "leads"

_UPDATABLE_COLUMNS = {
    "nom", "prenom", "email", "telephone", "adresse", "code_postal", "ville",
    "source", "statut", "type_projet", "surface", "description",
    "budget_estime", "budget_negocie", "delai", "urgence",
    "lignes_devis_custom", "notes_devis_custom",
}


def _column_value(field: str, value):
    if field == "lignes_devis_custom" and value is not None:
        return [line.to_stored() for line in value]
    if field == "statut" and isinstance(value, LeadStatus):
        return value.value
    return value


class LeadService:
    """Service for lead operations."""

    def __init__(self, postgres: PostgresClient, changes: ChangePublisher):
        self.postgres = postgres
        self.changes = changes

    def create(self, data: LeadCreate) -> Lead:
        lead_id = uuid4()
        now = now_utc()
        values = {field: _column_value(field, getattr(data, field)) for field in _UPDATABLE_COLUMNS}
        columns = sorted(values)

        row = self.postgres.execute_returning(
            f"""
            INSERT INTO leads (id, {', '.join(columns)}, created_at, updated_at)
            VALUES (%s, {', '.join(['%s'] * len(columns))}, %s, %s)
            RETURNING *
            """,
            (lead_id, *[values[c] for c in columns], now, now)
        )[0]

        lead = Lead.model_validate(row)
        self.changes.published(TABLE, "insert", lead.id)
        return lead

    def get_by_id(self, lead_id: UUID) -> Lead | None:
        row = self.postgres.execute_single(
            "SELECT * FROM leads WHERE id = %s",
            (lead_id,)
        )
        if row is None:
            return None
        return Lead.model_validate(row)

    def update(self, lead_id: UUID, data: LeadUpdate) -> Lead:
        """
        Update the fields that were explicitly set on `data`; an explicit
        None clears the column.

        Raises:
            ValueError: If lead not found
        """
        updates = data.model_dump(exclude_unset=True)
        for field in updates:
            if field not in _UPDATABLE_COLUMNS:
                logger.warning(f"Attempted to update unknown field '{field}' on lead {lead_id}")

        valid_updates = {
            k: _column_value(k, getattr(data, k))
            for k in updates if k in _UPDATABLE_COLUMNS
        }
        if not valid_updates:
            current = self.get_by_id(lead_id)
            if current is None:
                raise ValueError(f"Lead {lead_id} not found")
            return current

        set_parts = [f"{field} = %s" for field in valid_updates]
        params = list(valid_updates.values())
        set_parts.append("updated_at = %s")
        params.extend([now_utc(), lead_id])

        rows = self.postgres.execute_returning(
            f"""
            UPDATE leads
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )
        if not rows:
            raise ValueError(f"Lead {lead_id} not found")

        updated = Lead.model_validate(rows[0])
        self.changes.published(TABLE, "update", lead_id)
        return updated

    def update_status(self, lead_id: UUID, statut: LeadStatus) -> Lead:
        return self.update(lead_id, LeadUpdate(statut=statut))

    def delete(self, lead_id: UUID) -> bool:
        """True if a row was deleted."""
        rows = self.postgres.execute_returning(
            "DELETE FROM leads WHERE id = %s RETURNING id",
            (lead_id,)
        )
        if not rows:
            return False
        self.changes.published(TABLE, "delete", lead_id)
        return True

    def list_all(
        self,
        search: str | None = None,
        statut: str | None = None,
        limit: int = 500,
    ) -> list[Lead]:
        """
        Newest first. `search` matches nom, email or ville (ILIKE substring);
        `statut` other than 'all' keeps that status in any stored spelling.
        """
        clauses = []
        params: list = []

        if search:
            pattern = f"%{search}%"
            clauses.append("(nom ILIKE %s OR email ILIKE %s OR ville ILIKE %s)")
            params.extend([pattern, pattern, pattern])

        if statut and statut != "all":
            clauses.append("statut = ANY(%s)")
            params.append(status_variants(statut))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM leads
            {where}
            ORDER BY created_at DESC
            LIMIT %s
            """,
            tuple(params)
        )
        return [Lead.model_validate(row) for row in rows]

    def list_references(self) -> list[LeadReference]:
        """Every lead, by name, for the devis client picker."""
        rows = self.postgres.execute(
            "SELECT id, nom, prenom, email, telephone, adresse FROM leads ORDER BY nom ASC"
        )
        return [LeadReference.model_validate(row) for row in rows]
