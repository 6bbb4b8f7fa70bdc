"""
Devis service for CRUD operations.

montant_ttc is always recomputed here from (montant_ht, tva_pct); callers
never write it. The devis number is assigned by the store on insert.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.change_publisher import ChangePublisher
from core.models import Devis, DevisCreate, DevisUpdate
from core.status import DevisStatus, status_variants
from core.tax import DEFAULT_TVA_PCT, compute_ttc, round_currency
from utils.timezone import now_utc, today_business

logger = logging.getLogger(__name__)

TABLE = "devis"

_UPDATABLE_COLUMNS = {
    "lead_id", "client_nom", "client_email", "client_telephone",
    "client_adresse", "montant_ht", "tva_pct", "statut", "url_pdf",
    "date_validite", "notes",
}


class DevisService:
    """Service for quote operations."""

    def __init__(self, postgres: PostgresClient, changes: ChangePublisher):
        self.postgres = postgres
        self.changes = changes

    def create(self, data: DevisCreate) -> Devis:
        devis_id = uuid4()
        now = now_utc()
        montant_ht = round_currency(data.montant_ht)

        row = self.postgres.execute_returning(
            """
            INSERT INTO devis (
                id, numero, lead_id, client_nom, client_email, client_telephone,
                client_adresse, montant_ht, tva_pct, montant_ttc, statut, url_pdf,
                date_creation, date_validite, notes, created_at, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                devis_id,
                "",  # assigned by the store
                data.lead_id,
                data.client_nom,
                data.client_email,
                data.client_telephone,
                data.client_adresse,
                montant_ht,
                data.tva_pct,
                compute_ttc(montant_ht, data.tva_pct),
                data.statut.value,
                data.url_pdf,
                data.date_creation or today_business(),
                data.date_validite,
                data.notes,
                now,
                now,
            )
        )[0]

        devis = Devis.model_validate(row)
        logger.info(f"Created devis {devis.numero or devis.id} for {devis.client_nom}")
        self.changes.published(TABLE, "insert", devis.id)
        return devis

    def get_by_id(self, devis_id: UUID) -> Devis | None:
        row = self.postgres.execute_single(
            "SELECT * FROM devis WHERE id = %s",
            (devis_id,)
        )
        if row is None:
            return None
        return Devis.model_validate(row)

    def update(self, devis_id: UUID, data: DevisUpdate) -> Devis:
        """
        Update the fields that were explicitly set on `data`.

        When montant_ht or tva_pct changes, montant_ttc is recomputed from
        the merged pair (the new value plus the stored other half).

        Raises:
            ValueError: If devis not found
        """
        updates = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if k in _UPDATABLE_COLUMNS
        }

        current = self.get_by_id(devis_id)
        if current is None:
            raise ValueError(f"Devis {devis_id} not found")
        if not updates:
            return current

        for required in ("client_nom", "statut"):
            if required in updates and updates[required] is None:
                del updates[required]
        if not updates:
            return current

        if isinstance(updates.get("statut"), DevisStatus):
            updates["statut"] = updates["statut"].value

        if "montant_ht" in updates or "tva_pct" in updates:
            if updates.get("montant_ht") is None:
                updates["montant_ht"] = current.montant_ht
            if updates.get("tva_pct") is None:
                updates["tva_pct"] = current.tva_pct if current.tva_pct is not None else DEFAULT_TVA_PCT
            updates["montant_ht"] = round_currency(updates["montant_ht"])
            updates["montant_ttc"] = compute_ttc(updates["montant_ht"], updates["tva_pct"])

        set_parts = [f"{field} = %s" for field in updates]
        params = list(updates.values())
        set_parts.append("updated_at = %s")
        params.extend([now_utc(), devis_id])

        rows = self.postgres.execute_returning(
            f"""
            UPDATE devis
            SET {', '.join(set_parts)}
            WHERE id = %s
            RETURNING *
            """,
            tuple(params)
        )
        if not rows:
            raise ValueError(f"Devis {devis_id} not found")

        updated = Devis.model_validate(rows[0])
        self.changes.published(TABLE, "update", devis_id)
        return updated

    def delete(self, devis_id: UUID) -> bool:
        rows = self.postgres.execute_returning(
            "DELETE FROM devis WHERE id = %s RETURNING id",
            (devis_id,)
        )
        if not rows:
            return False
        self.changes.published(TABLE, "delete", devis_id)
        return True

    def list_all(
        self,
        search: str | None = None,
        statut: str | None = None,
        limit: int = 500,
    ) -> list[Devis]:
        """Newest first. `search` matches client_nom or numero."""
        clauses = []
        params: list = []

        if search:
            pattern = f"%{search}%"
            clauses.append("(client_nom ILIKE %s OR numero ILIKE %s)")
            params.extend([pattern, pattern])

        if statut and statut != "all":
            clauses.append("statut = ANY(%s)")
            params.append(status_variants(statut))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.append(limit)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM devis
            {where}
            ORDER BY created_at DESC
            LIMIT %s
            """,
            tuple(params)
        )
        return [Devis.model_validate(row) for row in rows]

    def latest(self, limit: int = 5) -> list[Devis]:
        rows = self.postgres.execute(
            "SELECT * FROM devis ORDER BY created_at DESC LIMIT %s",
            (limit,)
        )
        return [Devis.model_validate(row) for row in rows]
