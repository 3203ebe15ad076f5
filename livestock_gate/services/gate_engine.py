# =======================================================================================
# livestock_gate/services/gate_engine.py - Gate Movement Engine (Core Business Logic)
# =======================================================================================
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from sqlalchemy.engine import Connection
from ..config import config
from ..database import DatabaseManager, db_manager
from ..models.enums import Direction
from ..models.movement import MovementEvent, next_direction
from ..utils.clock import utc_now
from ..utils.exceptions import ConcurrentScanConflictError
from ..utils.validators import PenValidator
from .identity_resolver import IdentityResolver
from .ledger import LocationLedger
from .locks import AnimalLockRegistry, animal_locks

logger = logging.getLogger(__name__)


class GateMovementEngine:
    """Turns gate scans into ledger events and owns every ledger write.

    Each write for an animal runs under that animal's lock and inside its own
    transaction, so a scan is either fully recorded or not recorded at all.
    """

    def __init__(self, db: Optional[DatabaseManager] = None,
                 ledger: Optional[LocationLedger] = None,
                 resolver: Optional[IdentityResolver] = None,
                 locks: Optional[AnimalLockRegistry] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.db = db or db_manager
        self.ledger = ledger or LocationLedger()
        self.resolver = resolver or IdentityResolver()
        self.locks = locks or animal_locks
        self.pen_validator = PenValidator()
        self.clock = clock
        self.epsilon = timedelta(microseconds=config.CLOCK_SKEW_EPSILON_US)

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------
    def process_scan(self, pen_id: str, raw_payload: str) -> MovementEvent:
        """Inbound scan: resolve the QR payload, then record the movement."""
        with self.db.get_connection() as conn:
            animal_id = self.resolver.resolve(conn, raw_payload)
        return self.record_scan(animal_id, pen_id)

    def record_scan(self, animal_id: str, pen_id: str) -> MovementEvent:
        """Append the next Entry/Exit event for ``animal_id`` at ``pen_id``.

        A lost race for the ledger tail is retried with a fresh read up to
        SCAN_CONFLICT_RETRIES times, then surfaced.
        """
        attempts = 1 + config.SCAN_CONFLICT_RETRIES
        with self.locks.hold(animal_id):
            for attempt in range(1, attempts + 1):
                try:
                    with self.db.get_connection() as conn:
                        event = self._apply_scan(conn, animal_id, pen_id)
                except ConcurrentScanConflictError:
                    if attempt == attempts:
                        logger.warning("Scan for %s at %s still conflicting after %d attempts",
                                       animal_id, pen_id, attempts)
                        raise
                    logger.warning("Scan for %s at %s conflicted; retrying", animal_id, pen_id)
                    continue

                logger.info("%s recorded for %s at pen %s (movement %s)",
                            event.direction.value, animal_id, pen_id, event.id)
                return event

    def _apply_scan(self, conn: Connection, animal_id: str, pen_id: str) -> MovementEvent:
        self.pen_validator.ensure_pen(conn, pen_id)
        self.resolver.ensure_exists(conn, animal_id)
        self.ledger.lock_tail(conn, animal_id)

        last = self.ledger.last_event(conn, animal_id)
        event = MovementEvent(
            animal_id=animal_id,
            pen_id=pen_id,
            direction=next_direction(last),
            recorded_at=self._timestamp_after(last),
        )
        return self.ledger.append(conn, event, expected_seq=last.seq if last else 0)

    def _timestamp_after(self, last: Optional[MovementEvent]) -> datetime:
        """Clock reading, clamped to just after the previous event on clock skew."""
        now = self.clock()
        if last is not None and now <= last.recorded_at:
            clamped = last.recorded_at + self.epsilon
            logger.warning("Clock skew for %s: %s is not after %s; using %s",
                           last.animal_id, now.isoformat(), last.recorded_at.isoformat(),
                           clamped.isoformat())
            return clamped
        return now

    # ------------------------------------------------------------------
    # Administrative edits
    # ------------------------------------------------------------------
    def correct_event(self, event_id: int, direction: Direction, actor: str) -> MovementEvent:
        animal_id = self._owner_of(event_id)
        with self.locks.hold(animal_id):
            with self.db.get_connection() as conn:
                self.ledger.lock_tail(conn, animal_id)
                return self.ledger.correct(conn, event_id, direction, actor)

    def remove_event(self, event_id: int, actor: str) -> MovementEvent:
        animal_id = self._owner_of(event_id)
        with self.locks.hold(animal_id):
            with self.db.get_connection() as conn:
                self.ledger.lock_tail(conn, animal_id)
                return self.ledger.remove(conn, event_id, actor)

    def _owner_of(self, event_id: int) -> str:
        with self.db.get_connection() as conn:
            return self.ledger.get_event(conn, event_id).animal_id
