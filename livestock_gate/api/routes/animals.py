# =======================================================================================
# livestock_gate/api/routes/animals.py - Per-Animal Location Endpoints
# =======================================================================================
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Connection
from ...models.enums import OUTSIDE
from ...models.schemas import (
    AuditItem, AuditResponse, HistoryResponse, LocationResponse, MovementItem,
)
from ...services.movement_query import MovementQueryService
from ...utils.clock import as_naive_utc
from ...utils.exceptions import LivestockGateError
from ..dependencies import get_read_connection, http_error

router = APIRouter()
query_service = MovementQueryService()


@router.get("/animals/{animal_id}/location", response_model=LocationResponse)
def get_location(animal_id: str, conn: Connection = Depends(get_read_connection)):
    try:
        location = query_service.current_location(conn, animal_id)
    except LivestockGateError as e:
        raise http_error(e)
    return LocationResponse(animal_id=animal_id, location=location, inside=location != OUTSIDE)


@router.get("/animals/{animal_id}/history", response_model=HistoryResponse)
def get_history(
    animal_id: str,
    start: Optional[datetime] = Query(None, description="Inclusive lower bound"),
    end: Optional[datetime] = Query(None, description="Exclusive upper bound"),
    limit: Optional[int] = Query(None, ge=1),
    conn: Connection = Depends(get_read_connection),
):
    try:
        events = query_service.history_for(
            conn, animal_id, as_naive_utc(start), as_naive_utc(end), limit
        )
    except LivestockGateError as e:
        raise http_error(e)
    return HistoryResponse(animal_id=animal_id, events=[MovementItem.from_event(ev) for ev in events])


@router.get("/animals/{animal_id}/audit", response_model=AuditResponse)
def get_audit(animal_id: str, conn: Connection = Depends(get_read_connection)):
    try:
        rows = query_service.audit_for(conn, animal_id)
    except LivestockGateError as e:
        raise http_error(e)
    return AuditResponse(animal_id=animal_id, entries=[AuditItem(**row) for row in rows])
