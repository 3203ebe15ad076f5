# =======================================================================================
# livestock_gate/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from typing import Iterator
from fastapi import Depends, HTTPException, status
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from ..database import DatabaseManager, db_manager, read_db_manager
from ..services.gate_engine import GateMovementEngine
from ..utils.exceptions import (
    LivestockGateError, UnknownAnimalError, UnknownPenError, MovementNotFoundError,
    ConcurrentScanConflictError, AlternationViolationError,
)

_ERROR_STATUS = {
    UnknownAnimalError: status.HTTP_404_NOT_FOUND,
    UnknownPenError: status.HTTP_404_NOT_FOUND,
    MovementNotFoundError: status.HTTP_404_NOT_FOUND,
    ConcurrentScanConflictError: status.HTTP_409_CONFLICT,
    AlternationViolationError: status.HTTP_409_CONFLICT,
}

def http_error(exc: LivestockGateError) -> HTTPException:
    """Map a domain error to the HTTP error reported to the caller."""
    code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail=str(exc))

def get_db_manager() -> DatabaseManager:
    return db_manager

def get_read_db_manager() -> DatabaseManager:
    return read_db_manager

def get_read_connection(db: DatabaseManager = Depends(get_read_db_manager)) -> Iterator[Connection]:
    """Dependency to get a connection for read-only queries (replica if configured)."""
    try:
        with db.get_connection() as conn:
            yield conn
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=f"Database connection error: {str(e)}")

def get_gate_engine(db: DatabaseManager = Depends(get_db_manager)) -> GateMovementEngine:
    return GateMovementEngine(db=db)
