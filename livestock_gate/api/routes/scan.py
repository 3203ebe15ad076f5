# =======================================================================================
# livestock_gate/api/routes/scan.py - Gate Scan Endpoints
# =======================================================================================
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import SQLAlchemyError
from ...models.schemas import ScanRequest, ScanResponse
from ...services.gate_engine import GateMovementEngine
from ...utils.exceptions import LivestockGateError
from ..dependencies import get_gate_engine, http_error

router = APIRouter()

@router.post("/scan", response_model=ScanResponse)
def handle_scan(request: ScanRequest, engine: GateMovementEngine = Depends(get_gate_engine)):
    """Record a QR scan at a pen gate as an Entry or Exit."""
    try:
        event = engine.process_scan(request.pen_id, request.qr_payload)
    except LivestockGateError as e:
        raise http_error(e)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return ScanResponse.from_event(event)
