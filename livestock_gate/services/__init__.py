# =======================================================================================
# livestock_gate/services/__init__.py - Services Package
# =======================================================================================
from .identity_resolver import IdentityResolver
from .ledger import LocationLedger
from .locks import AnimalLockRegistry, animal_locks
from .gate_engine import GateMovementEngine
from .movement_query import MovementQueryService

__all__ = [
    "IdentityResolver", "LocationLedger", "AnimalLockRegistry", "animal_locks",
    "GateMovementEngine", "MovementQueryService"
]
