# =======================================================================================
# livestock_gate/services/ledger.py - Location Ledger
# =======================================================================================
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..models.enums import AuditAction, Direction
from ..models.movement import MovementEvent, follows
from ..utils.clock import utc_now
from ..utils.exceptions import (
    AlternationViolationError, ConcurrentScanConflictError, MovementNotFoundError,
)

logger = logging.getLogger(__name__)

_EVENT_COLUMNS = "id, animal_id, pen_id, direction, seq, recorded_at"


def typed_query(sql: str, *datetime_params: str, **column_types):
    """text() with DateTime binds and result columns, so SQLite round-trips datetimes."""
    stmt = text(sql)
    if datetime_params:
        stmt = stmt.bindparams(*(bindparam(name, type_=DateTime) for name in datetime_params))
    if column_types:
        stmt = stmt.columns(**column_types)
    return stmt


def event_from_row(row) -> MovementEvent:
    return MovementEvent(
        id=row["id"],
        animal_id=row["animal_id"],
        pen_id=row["pen_id"],
        direction=Direction(row["direction"]),
        seq=row["seq"],
        recorded_at=row["recorded_at"],
    )


def range_clause(start: Optional[datetime], end: Optional[datetime],
                 column: str = "recorded_at") -> Tuple[str, Dict[str, Any], List[str]]:
    """SQL fragment for a half-open ``[start, end)`` window plus its params."""
    parts, params, typed = [], {}, []
    if start is not None:
        parts.append(f"{column} >= :start")
        params["start"] = start
        typed.append("start")
    if end is not None:
        parts.append(f"{column} < :end")
        params["end"] = end
        typed.append("end")
    return " AND ".join(parts), params, typed


class LocationLedger:
    """Append-only store of movement events; the source of truth for location.

    All methods run on the caller's connection, so they commit or roll back
    together with whatever else the caller does in that transaction.
    """

    # ---------- reads ----------

    def last_event(self, conn: Connection, animal_id: str) -> Optional[MovementEvent]:
        row = conn.execute(
            typed_query(
                f"SELECT {_EVENT_COLUMNS} FROM movements WHERE animal_id=:aid "
                "ORDER BY seq DESC LIMIT 1",
                recorded_at=DateTime,
            ),
            {"aid": animal_id},
        ).mappings().first()
        return event_from_row(row) if row else None

    def get_event(self, conn: Connection, event_id: int) -> MovementEvent:
        row = conn.execute(
            typed_query(f"SELECT {_EVENT_COLUMNS} FROM movements WHERE id=:mid", recorded_at=DateTime),
            {"mid": event_id},
        ).mappings().first()
        if not row:
            raise MovementNotFoundError(f"Movement {event_id} not found")
        return event_from_row(row)

    def history(self, conn: Connection, animal_id: str, start: Optional[datetime] = None,
                end: Optional[datetime] = None, limit: Optional[int] = None) -> List[MovementEvent]:
        """Events for one animal, newest first, optionally within ``[start, end)``."""
        window, params, typed = range_clause(start, end)
        sql = f"SELECT {_EVENT_COLUMNS} FROM movements WHERE animal_id=:aid"
        if window:
            sql += f" AND {window}"
        sql += " ORDER BY seq DESC"
        if limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = limit
        params["aid"] = animal_id

        rows = conn.execute(typed_query(sql, *typed, recorded_at=DateTime), params).mappings().all()
        return [event_from_row(row) for row in rows]

    def audit_trail(self, conn: Connection, animal_id: str) -> List[Dict[str, Any]]:
        rows = conn.execute(
            typed_query(
                """
                SELECT id, movement_id, action, old_direction, new_direction, actor, acted_at
                FROM movement_audit
                WHERE animal_id=:aid
                ORDER BY id DESC
                """,
                acted_at=DateTime,
            ),
            {"aid": animal_id},
        ).mappings().all()
        return [dict(row) for row in rows]

    # ---------- writes ----------

    def lock_tail(self, conn: Connection, animal_id: str) -> None:
        """Row-lock the animal for the rest of the transaction where the database supports it."""
        if conn.dialect.name == "sqlite":
            return
        conn.execute(text("SELECT id FROM animals WHERE id=:aid FOR UPDATE"), {"aid": animal_id})

    def append(self, conn: Connection, event: MovementEvent, expected_seq: int) -> MovementEvent:
        """Compare-and-append: write ``event`` only if the tail is still ``expected_seq``.

        ``expected_seq`` is the seq of the last event the caller based its
        decision on (0 for an animal that was never scanned).
        """
        tail = self.last_event(conn, event.animal_id)
        tail_seq = tail.seq if tail else 0
        if tail_seq != expected_seq:
            raise ConcurrentScanConflictError(
                f"Ledger tail for {event.animal_id!r} moved from seq {expected_seq} to {tail_seq}"
            )
        if not follows(tail.direction if tail else None, event.direction):
            raise AlternationViolationError(
                f"{event.direction.value} cannot follow "
                f"{tail.direction.value if tail else 'Outside'} for animal {event.animal_id!r}"
            )

        seq = expected_seq + 1
        try:
            result = conn.execute(
                typed_query(
                    """
                    INSERT INTO movements (animal_id, pen_id, direction, seq, recorded_at)
                    VALUES (:aid, :pid, :dir, :seq, :ts)
                    """,
                    "ts",
                ),
                {
                    "aid": event.animal_id, "pid": event.pen_id,
                    "dir": event.direction.value, "seq": seq, "ts": event.recorded_at,
                },
            )
        except IntegrityError as e:
            raise ConcurrentScanConflictError(
                f"Concurrent append for animal {event.animal_id!r} at seq {seq}"
            ) from e

        stored = event.model_copy(update={"id": result.lastrowid, "seq": seq})
        self._sync_current_pen(conn, event.animal_id, stored)
        return stored

    def correct(self, conn: Connection, event_id: int, new_direction: Direction,
                actor: str) -> MovementEvent:
        """Change an event's direction if alternation with its neighbours survives."""
        event = self.get_event(conn, event_id)
        if event.direction is new_direction:
            return event

        previous, following = self._neighbours(conn, event)
        if not follows(previous.direction if previous else None, new_direction):
            raise AlternationViolationError(
                f"Movement {event_id} cannot become {new_direction.value}: "
                f"previous event is {previous.direction.value if previous else 'Outside'}"
            )
        if following is not None and not follows(new_direction, following.direction):
            raise AlternationViolationError(
                f"Movement {event_id} cannot become {new_direction.value}: "
                f"next event is {following.direction.value}"
            )

        conn.execute(
            text("UPDATE movements SET direction=:dir WHERE id=:mid"),
            {"dir": new_direction.value, "mid": event_id},
        )
        self._audit(conn, event, "CORRECT", actor, new_direction)
        self._sync_current_pen(conn, event.animal_id)
        logger.info("Movement %s corrected %s -> %s by %s",
                    event_id, event.direction.value, new_direction.value, actor)
        return event.model_copy(update={"direction": new_direction})

    def remove(self, conn: Connection, event_id: int, actor: str) -> MovementEvent:
        """Delete an event if the events on either side of it still alternate."""
        event = self.get_event(conn, event_id)
        previous, following = self._neighbours(conn, event)
        if following is not None and not follows(
            previous.direction if previous else None, following.direction
        ):
            raise AlternationViolationError(
                f"Removing movement {event_id} would leave "
                f"{previous.direction.value if previous else 'Outside'} "
                f"followed by {following.direction.value}"
            )

        conn.execute(text("DELETE FROM movements WHERE id=:mid"), {"mid": event_id})
        self._audit(conn, event, "REMOVE", actor)
        self._sync_current_pen(conn, event.animal_id)
        logger.info("Movement %s (%s) removed by %s", event_id, event.direction.value, actor)
        return event

    # ---------- helpers ----------

    def _neighbours(self, conn: Connection,
                    event: MovementEvent) -> Tuple[Optional[MovementEvent], Optional[MovementEvent]]:
        params = {"aid": event.animal_id, "seq": event.seq}
        before = conn.execute(
            typed_query(
                f"SELECT {_EVENT_COLUMNS} FROM movements WHERE animal_id=:aid AND seq < :seq "
                "ORDER BY seq DESC LIMIT 1",
                recorded_at=DateTime,
            ),
            params,
        ).mappings().first()
        after = conn.execute(
            typed_query(
                f"SELECT {_EVENT_COLUMNS} FROM movements WHERE animal_id=:aid AND seq > :seq "
                "ORDER BY seq ASC LIMIT 1",
                recorded_at=DateTime,
            ),
            params,
        ).mappings().first()
        return (
            event_from_row(before) if before else None,
            event_from_row(after) if after else None,
        )

    def _sync_current_pen(self, conn: Connection, animal_id: str,
                          last: Optional[MovementEvent] = None) -> None:
        """Refresh the cached ``animals.pen_id`` from the ledger tail."""
        if last is None:
            last = self.last_event(conn, animal_id)
        inside = last is not None and last.direction is Direction.ENTRY
        conn.execute(
            text("UPDATE animals SET pen_id=:pid WHERE id=:aid"),
            {"pid": last.pen_id if inside else None, "aid": animal_id},
        )

    def _audit(self, conn: Connection, event: MovementEvent, action: AuditAction, actor: str,
               new_direction: Optional[Direction] = None) -> None:
        conn.execute(
            typed_query(
                """
                INSERT INTO movement_audit
                    (movement_id, animal_id, action, old_direction, new_direction, actor, acted_at)
                VALUES (:mid, :aid, :action, :old, :new, :actor, :at)
                """,
                "at",
            ),
            {
                "mid": event.id, "aid": event.animal_id, "action": action,
                "old": event.direction.value,
                "new": new_direction.value if new_direction else None,
                "actor": actor, "at": utc_now(),
            },
        )
