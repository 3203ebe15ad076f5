# =======================================================================================
# livestock_gate/services/locks.py - Per-Animal Write Serialization
# =======================================================================================
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional
from ..config import config
from ..utils.exceptions import ConcurrentScanConflictError


class AnimalLockRegistry:
    """One lock per animal id, created on first use.

    Writes for the same animal queue behind each other; writes for different
    animals never share a lock.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = config.SCAN_LOCK_TIMEOUT if timeout is None else timeout
        # grows to one entry per animal ever written, never evicted
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, animal_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(animal_id)
            if lock is None:
                lock = self._locks[animal_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, animal_id: str) -> Iterator[None]:
        lock = self.lock_for(animal_id)
        if not lock.acquire(timeout=self.timeout):
            raise ConcurrentScanConflictError(
                f"Timed out waiting for another write on animal {animal_id!r}"
            )
        try:
            yield
        finally:
            lock.release()


# Shared by every engine in the process
animal_locks = AnimalLockRegistry()
