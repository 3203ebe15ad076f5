# =======================================================================================
# livestock_gate/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal

# Type aliases for better type hints
AuditAction = Literal["CORRECT", "REMOVE"]
HealthStatus = Literal["ok", "error"]

# Location value for an animal that is inside no pen
OUTSIDE = "Outside"

class Direction(str, Enum):
    """Semantic meaning of a movement event."""
    ENTRY = "Entry"
    EXIT = "Exit"
