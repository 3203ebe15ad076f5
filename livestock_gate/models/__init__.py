# =======================================================================================
# livestock_gate/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *
from .movement import MovementEvent, next_direction, location_of, location_after

__all__ = [
    "ScanRequest", "ScanResponse", "MovementItem", "MovementsResponse",
    "HistoryResponse", "LocationResponse", "CountsResponse", "CorrectionRequest",
    "MovementUpdateResponse", "AuditItem", "AuditResponse", "Summary",
    "AnalyticsResponse", "PenOccupancy", "OccupancyResponse", "HealthResponse",
    "Direction", "OUTSIDE", "AuditAction", "MovementEvent", "next_direction",
    "location_of", "location_after"
]
