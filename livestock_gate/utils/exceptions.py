# =======================================================================================
# livestock_gate/utils/exceptions.py - Custom Exceptions
# =======================================================================================
class LivestockGateError(Exception):
    """Base exception for the livestock gate tracker."""
    pass

class UnknownAnimalError(LivestockGateError):
    """Raised when a scanned or requested animal id matches no animal."""
    pass

class UnknownPenError(LivestockGateError):
    """Raised when the target pen id is invalid."""
    pass

class MovementNotFoundError(LivestockGateError):
    """Raised when a movement event id does not exist."""
    pass

class ConcurrentScanConflictError(LivestockGateError):
    """Raised when another write for the same animal won the race for the ledger tail."""
    pass

class AlternationViolationError(LivestockGateError):
    """Raised when a write would break Entry/Exit alternation for an animal."""
    pass
