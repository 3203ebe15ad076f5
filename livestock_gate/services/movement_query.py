# =======================================================================================
# livestock_gate/services/movement_query.py - Movement Query Service
# =======================================================================================
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import DateTime, text
from sqlalchemy.engine import Connection
from ..models.enums import Direction
from ..models.movement import MovementEvent, location_of
from .identity_resolver import IdentityResolver
from .ledger import LocationLedger, event_from_row, typed_query, range_clause

# last event per animal; an animal is inside a pen when that event is an Entry
_TAIL_JOIN = """
    FROM movements m
    JOIN (SELECT animal_id, MAX(seq) AS seq FROM movements GROUP BY animal_id) t
      ON m.animal_id = t.animal_id AND m.seq = t.seq
"""


class MovementQueryService:
    """Read-side answers over the ledger. Never writes."""

    def __init__(self, ledger: Optional[LocationLedger] = None,
                 resolver: Optional[IdentityResolver] = None):
        self.ledger = ledger or LocationLedger()
        self.resolver = resolver or IdentityResolver()

    # ---------- per animal ----------

    def current_location(self, conn: Connection, animal_id: str) -> str:
        """Pen id the animal is inside, or ``Outside``."""
        self.resolver.ensure_exists(conn, animal_id)
        return location_of(self.ledger.last_event(conn, animal_id))

    def history_for(self, conn: Connection, animal_id: str, start: Optional[datetime] = None,
                    end: Optional[datetime] = None, limit: Optional[int] = None) -> List[MovementEvent]:
        self.resolver.ensure_exists(conn, animal_id)
        return self.ledger.history(conn, animal_id, start, end, limit)

    def audit_for(self, conn: Connection, animal_id: str) -> List[Dict[str, Any]]:
        self.resolver.ensure_exists(conn, animal_id)
        return self.ledger.audit_trail(conn, animal_id)

    # ---------- aggregates ----------

    def counts(self, conn: Connection, start: Optional[datetime] = None,
               end: Optional[datetime] = None) -> Dict[str, int]:
        """Entry and exit totals within ``[start, end)``."""
        window, params, typed = range_clause(start, end)
        sql = "SELECT direction, COUNT(*) AS n FROM movements"
        if window:
            sql += f" WHERE {window}"
        sql += " GROUP BY direction"

        totals = {row["direction"]: int(row["n"])
                  for row in conn.execute(typed_query(sql, *typed), params).mappings().all()}
        return {
            "entries": totals.get(Direction.ENTRY.value, 0),
            "exits": totals.get(Direction.EXIT.value, 0),
        }

    def gate_history(self, conn: Connection, limit: int = 1000,
                     direction: Optional[Direction] = None,
                     search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Latest movements across all animals with pen name and breed.

        ``search`` is a case-insensitive substring match on breed or pen name.
        """
        filters, params = [], {"limit": limit}
        if direction is not None:
            filters.append("m.direction = :dir")
            params["dir"] = Direction(direction).value
        if search:
            filters.append("(LOWER(a.breed) LIKE :term OR LOWER(p.name) LIKE :term)")
            params["term"] = f"%{search.lower()}%"
        where = f"WHERE {' AND '.join(filters)}" if filters else ""

        rows = conn.execute(
            typed_query(
                f"""
                SELECT m.id, m.animal_id, m.pen_id, m.direction, m.seq, m.recorded_at,
                       p.name AS pen_name, a.breed AS breed
                FROM movements m
                LEFT JOIN pens p ON m.pen_id = p.id
                LEFT JOIN animals a ON m.animal_id = a.id
                {where}
                ORDER BY m.recorded_at DESC, m.id DESC
                LIMIT :limit
                """,
                recorded_at=DateTime,
            ),
            params,
        ).mappings().all()
        return [
            {"event": event_from_row(row), "pen_name": row["pen_name"], "breed": row["breed"]}
            for row in rows
        ]

    def occupancy(self, conn: Connection) -> List[Dict[str, Any]]:
        """Animals currently inside each pen, derived from the ledger."""
        rows = conn.execute(
            text(
                f"""
                SELECT p.id AS pen_id, p.name AS pen_name, COALESCE(i.n, 0) AS animals_inside
                FROM pens p
                LEFT JOIN (
                    SELECT m.pen_id, COUNT(*) AS n
                    {_TAIL_JOIN}
                    WHERE m.direction = :entry
                    GROUP BY m.pen_id
                ) i ON i.pen_id = p.id
                ORDER BY p.name
                """
            ),
            {"entry": Direction.ENTRY.value},
        ).mappings().all()
        return [
            {"pen_id": r["pen_id"], "pen_name": r["pen_name"], "animals_inside": int(r["animals_inside"])}
            for r in rows
        ]

    def get_summary(self, conn: Connection) -> Dict[str, int]:
        row = conn.execute(
            text(
                f"""
                SELECT
                  (SELECT COUNT(*) FROM animals) AS total_animals,
                  (SELECT COUNT(*) FROM pens)    AS total_pens,
                  (SELECT COUNT(*) {_TAIL_JOIN} WHERE m.direction = :entry) AS animals_inside
                """
            ),
            {"entry": Direction.ENTRY.value},
        ).mappings().first()
        counts = self.counts(conn)

        return {
            "total_animals": int(row["total_animals"] or 0),
            "total_pens": int(row["total_pens"] or 0),
            "entries": counts["entries"],
            "exits": counts["exits"],
            "total_gate_activity": counts["entries"] + counts["exits"],
            "animals_inside": int(row["animals_inside"] or 0),
        }
