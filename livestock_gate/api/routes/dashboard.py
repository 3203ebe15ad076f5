# =======================================================================================
# livestock_gate/api/routes/dashboard.py - Dashboard Endpoints
# =======================================================================================

from fastapi import APIRouter, Depends
from sqlalchemy.engine import Connection

from ...models.schemas import AnalyticsResponse, OccupancyResponse, PenOccupancy, Summary
from ...services.movement_query import MovementQueryService
from ..dependencies import get_read_connection

router = APIRouter()
query_service = MovementQueryService()


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(conn: Connection = Depends(get_read_connection)):
    summary_dict = query_service.get_summary(conn)
    return AnalyticsResponse(summary=Summary(**summary_dict))


@router.get("/pens/occupancy", response_model=OccupancyResponse)
def get_occupancy(conn: Connection = Depends(get_read_connection)):
    return OccupancyResponse(pens=[PenOccupancy(**row) for row in query_service.occupancy(conn)])
