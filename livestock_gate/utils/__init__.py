# =======================================================================================
# livestock_gate/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *
from .clock import utc_now, as_naive_utc

__all__ = [
    "LivestockGateError", "UnknownAnimalError", "UnknownPenError",
    "MovementNotFoundError", "ConcurrentScanConflictError",
    "AlternationViolationError", "PenValidator", "utc_now", "as_naive_utc"
]
