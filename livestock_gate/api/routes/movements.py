# =======================================================================================
# livestock_gate/api/routes/movements.py - Gate History Endpoints
# =======================================================================================
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from ...config import config
from ...models.enums import Direction
from ...models.schemas import (
    CorrectionRequest, CountsResponse, MovementItem, MovementsResponse, MovementUpdateResponse,
)
from ...services.gate_engine import GateMovementEngine
from ...services.ledger import LocationLedger
from ...services.movement_query import MovementQueryService
from ...utils.clock import as_naive_utc
from ...utils.exceptions import LivestockGateError
from ..dependencies import get_gate_engine, get_read_connection, http_error

router = APIRouter()
query_service = MovementQueryService()
ledger = LocationLedger()


@router.get("/movements", response_model=MovementsResponse)
def list_movements(
    limit: int = Query(config.HISTORY_DEFAULT_LIMIT, ge=1),
    direction: Optional[Direction] = Query(None, description="Entry | Exit"),
    search: Optional[str] = Query(None, description="Breed or pen name"),
    conn: Connection = Depends(get_read_connection),
):
    rows = query_service.gate_history(conn, limit, direction, search)
    return MovementsResponse(
        movements=[MovementItem.from_event(r["event"], r["pen_name"], r["breed"]) for r in rows]
    )


# declared before /movements/{event_id} so "counts" is not parsed as an id
@router.get("/movements/counts", response_model=CountsResponse)
def movement_counts(
    start: Optional[datetime] = Query(None, description="Inclusive lower bound"),
    end: Optional[datetime] = Query(None, description="Exclusive upper bound"),
    conn: Connection = Depends(get_read_connection),
):
    start, end = as_naive_utc(start), as_naive_utc(end)
    counts = query_service.counts(conn, start, end)
    return CountsResponse(**counts, start=start, end=end)


@router.get("/movements/{event_id}", response_model=MovementItem)
def get_movement(event_id: int, conn: Connection = Depends(get_read_connection)):
    try:
        event = ledger.get_event(conn, event_id)
    except LivestockGateError as e:
        raise http_error(e)
    return MovementItem.from_event(event)


@router.put("/movements/{event_id}", response_model=MovementUpdateResponse)
def correct_movement(
    event_id: int,
    request: CorrectionRequest,
    engine: GateMovementEngine = Depends(get_gate_engine),
):
    """Administrative direction correction; rejected if alternation would break."""
    try:
        event = engine.correct_event(event_id, request.direction, request.actor)
    except LivestockGateError as e:
        raise http_error(e)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return MovementUpdateResponse(
        success=True,
        message=f"Movement {event_id} is now {event.direction.value}",
        movement=MovementItem.from_event(event),
    )


@router.delete("/movements/{event_id}", response_model=MovementUpdateResponse)
def delete_movement(
    event_id: int,
    actor: str = Query(..., min_length=1, max_length=100, description="Who is removing the event"),
    engine: GateMovementEngine = Depends(get_gate_engine),
):
    try:
        event = engine.remove_event(event_id, actor)
    except LivestockGateError as e:
        raise http_error(e)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return MovementUpdateResponse(
        success=True,
        message=f"Movement {event_id} removed",
        movement=MovementItem.from_event(event),
    )
