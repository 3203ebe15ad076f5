# =======================================================================================
# livestock_gate/models/movement.py - Movement Event and Gate State Machine
# =======================================================================================
"""
Per-animal gate state machine.

States are ``Outside`` and ``Inside(pen)``. Every animal starts ``Outside``.
A scan at any pen moves ``Outside -> Inside(pen)`` (an ``Entry`` event) and
``Inside(_) -> Outside`` (an ``Exit`` event recorded against the scanned pen,
which may differ from the pen last entered). There is no terminal state.
"""
from datetime import datetime
from typing import Iterable, Optional
from pydantic import BaseModel, ConfigDict
from .enums import Direction, OUTSIDE
from ..utils.exceptions import AlternationViolationError


class MovementEvent(BaseModel):
    """One ledger entry. Immutable once written."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    animal_id: str
    pen_id: str
    direction: Direction
    recorded_at: datetime
    seq: Optional[int] = None


def next_direction(last: Optional[MovementEvent]) -> Direction:
    """Direction of the next scan given the animal's last event."""
    if last is None or last.direction is Direction.EXIT:
        return Direction.ENTRY
    return Direction.EXIT


def follows(previous: Optional[Direction], direction: Direction) -> bool:
    """True when ``direction`` may come right after ``previous`` (None = never scanned)."""
    return direction is not (previous or Direction.EXIT)


def location_of(last: Optional[MovementEvent]) -> str:
    """Current location: the pen of a trailing Entry, otherwise Outside."""
    if last is not None and last.direction is Direction.ENTRY:
        return last.pen_id
    return OUTSIDE


def location_after(events: Iterable[MovementEvent]) -> str:
    """Replay events (oldest first) from Outside and return the final location."""
    last: Optional[MovementEvent] = None
    for event in events:
        if not follows(last.direction if last else None, event.direction):
            raise AlternationViolationError(
                f"Event {event.id} for animal {event.animal_id} repeats {event.direction.value}"
            )
        last = event
    return location_of(last)
