# =======================================================================================
# livestock_gate/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field
from .enums import Direction, HealthStatus
from .movement import MovementEvent

# ========== Gate scan ==========
class ScanRequest(BaseModel):
    """QR gate scan request model."""
    pen_id: str = Field(..., description="Pen whose gate was scanned")
    qr_payload: str = Field(..., description="Decoded QR text (the animal id)")

class ScanResponse(BaseModel):
    """QR gate scan response model."""
    event_id: int
    animal_id: str
    pen_id: str
    direction: Direction
    timestamp: datetime
    message: str

    @classmethod
    def from_event(cls, event: MovementEvent) -> "ScanResponse":
        return cls(
            event_id=event.id,
            animal_id=event.animal_id,
            pen_id=event.pen_id,
            direction=event.direction,
            timestamp=event.recorded_at,
            message=f"{event.direction.value} recorded",
        )

# ========== Movements ==========
class MovementItem(BaseModel):
    id: int
    animal_id: str
    pen_id: str
    pen_name: Optional[str] = None
    breed: Optional[str] = None
    direction: Direction
    timestamp: datetime

    @classmethod
    def from_event(cls, event: MovementEvent, pen_name: Optional[str] = None,
                   breed: Optional[str] = None) -> "MovementItem":
        return cls(
            id=event.id,
            animal_id=event.animal_id,
            pen_id=event.pen_id,
            pen_name=pen_name,
            breed=breed,
            direction=event.direction,
            timestamp=event.recorded_at,
        )

class MovementsResponse(BaseModel):
    movements: List[MovementItem]

class HistoryResponse(BaseModel):
    animal_id: str
    events: List[MovementItem]

class LocationResponse(BaseModel):
    animal_id: str
    location: str               # pen id or "Outside"
    inside: bool

class CountsResponse(BaseModel):
    entries: int
    exits: int
    start: Optional[datetime] = None
    end: Optional[datetime] = None

class CorrectionRequest(BaseModel):
    direction: Direction
    actor: str = Field(..., min_length=1, max_length=100, description="Who is making the correction")

class MovementUpdateResponse(BaseModel):
    success: bool
    message: str
    movement: Optional[MovementItem] = None

class AuditItem(BaseModel):
    id: int
    movement_id: int
    action: str
    old_direction: Direction
    new_direction: Optional[Direction] = None
    actor: str
    acted_at: datetime

class AuditResponse(BaseModel):
    animal_id: str
    entries: List[AuditItem]

# ========== Analytics ==========
class Summary(BaseModel):
    total_animals: int
    total_pens: int
    entries: int
    exits: int
    total_gate_activity: int
    animals_inside: int

class AnalyticsResponse(BaseModel):
    summary: Summary

class PenOccupancy(BaseModel):
    pen_id: str
    pen_name: str
    animals_inside: int

class OccupancyResponse(BaseModel):
    pens: List[PenOccupancy]

# ========== Health ==========
class HealthResponse(BaseModel):
    status: HealthStatus
    dataAvailable: bool
    message: Optional[str] = None
