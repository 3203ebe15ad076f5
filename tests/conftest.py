"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from datetime import datetime, timedelta

# Keep the module-level engines off MySQL while tests import the package
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("DB_AUTO_CREATE_SCHEMA", "false")

import pytest

from livestock_gate.database import DatabaseManager
from livestock_gate.models.tables import animals, movements, pens
from livestock_gate.services import (
    AnimalLockRegistry, GateMovementEngine, LocationLedger, MovementQueryService,
)

SEEDED_AT = datetime(2025, 12, 1, 7, 0)


class FakeClock:
    """Returns a fixed time that moves forward by ``step`` on every reading."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 8, 0), step=timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now += self.step
        return current


def insert_raw_movement(db, animal_id, pen_id, direction, seq, recorded_at):
    """Write a ledger row directly, bypassing the engine (legacy/imported data)."""
    with db.get_connection() as conn:
        result = conn.execute(
            movements.insert().values(
                animal_id=animal_id, pen_id=pen_id, direction=direction,
                seq=seq, recorded_at=recorded_at,
            )
        )
        return result.inserted_primary_key[0]


@pytest.fixture
def db(tmp_path):
    """Temporary SQLite database with two pens and three animals."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'gate.db'}")
    manager.init_schema()
    with manager.get_connection() as conn:
        conn.execute(pens.insert(), [
            {"id": "P1", "name": "Kandang A", "created_at": SEEDED_AT},
            {"id": "P2", "name": "Kandang B", "created_at": SEEDED_AT},
        ])
        conn.execute(animals.insert(), [
            {"id": "KMB-001", "breed": "Etawa", "registered_at": SEEDED_AT},
            {"id": "KMB-002", "breed": "Boer", "registered_at": SEEDED_AT},
            {"id": "KMB-003", "breed": "Kacang", "registered_at": SEEDED_AT},
        ])
    yield manager
    manager.dispose()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def locks():
    return AnimalLockRegistry(timeout=2)


@pytest.fixture
def ledger():
    return LocationLedger()


@pytest.fixture
def engine(db, ledger, locks, clock):
    return GateMovementEngine(db=db, ledger=ledger, locks=locks, clock=clock)


@pytest.fixture
def queries(ledger):
    return MovementQueryService(ledger=ledger)
