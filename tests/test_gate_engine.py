"""Tests for the gate movement engine."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytest

from livestock_gate.models import OUTSIDE, Direction, location_after
from livestock_gate.services import GateMovementEngine, LocationLedger
from livestock_gate.utils.exceptions import (
    ConcurrentScanConflictError, UnknownAnimalError, UnknownPenError,
)


def _history(db, ledger, animal_id):
    with db.get_connection() as conn:
        return ledger.history(conn, animal_id)


def _location(db, queries, animal_id):
    with db.get_connection() as conn:
        return queries.current_location(conn, animal_id)


class FlakyLedger(LocationLedger):
    """Loses the race for the ledger tail a fixed number of times."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    def append(self, conn, event, expected_seq):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrentScanConflictError("simulated concurrent append")
        return super().append(conn, event, expected_seq)


class SyncFailingLedger(LocationLedger):
    """Inserts the movement row, then fails updating the cached pen."""

    def _sync_current_pen(self, conn, animal_id, last=None):
        raise RuntimeError("simulated failure after insert")


class TestRecordScan:
    def test_first_scan_enters_pen(self, engine, db, queries):
        event = engine.record_scan("KMB-001", "P1")

        assert event.direction is Direction.ENTRY
        assert event.pen_id == "P1"
        assert event.seq == 1
        assert event.id is not None
        assert _location(db, queries, "KMB-001") == "P1"

    def test_second_scan_exits_against_scanned_pen(self, engine, db, queries):
        engine.record_scan("KMB-001", "P1")
        event = engine.record_scan("KMB-001", "P2")

        assert event.direction is Direction.EXIT
        assert event.pen_id == "P2"
        assert _location(db, queries, "KMB-001") == OUTSIDE

    def test_scans_toggle_location(self, engine, db, queries):
        for i in range(6):
            event = engine.record_scan("KMB-001", "P1")
            expected = Direction.ENTRY if i % 2 == 0 else Direction.EXIT
            assert event.direction is expected
            assert _location(db, queries, "KMB-001") == ("P1" if expected is Direction.ENTRY else OUTSIDE)

    def test_other_animals_do_not_affect_direction(self, engine):
        engine.record_scan("KMB-001", "P1")
        for _ in range(3):
            engine.record_scan("KMB-002", "P2")
        engine.record_scan("KMB-003", "P1")

        assert engine.record_scan("KMB-001", "P1").direction is Direction.EXIT

    def test_unknown_pen_rejected(self, engine, db, ledger):
        with pytest.raises(UnknownPenError):
            engine.record_scan("KMB-001", "P9")
        assert _history(db, ledger, "KMB-001") == []

    def test_timestamps_strictly_increase(self, engine):
        first = engine.record_scan("KMB-001", "P1")
        second = engine.record_scan("KMB-001", "P1")
        assert second.recorded_at > first.recorded_at


class TestProcessScan:
    def test_payload_resolves_to_animal(self, engine):
        event = engine.process_scan("P2", "KMB-002")
        assert event.animal_id == "KMB-002"
        assert event.direction is Direction.ENTRY

    def test_unknown_animal_leaves_ledger_unchanged(self, engine, db, queries):
        with pytest.raises(UnknownAnimalError):
            engine.process_scan("P1", "KMB-404")

        with db.get_connection() as conn:
            assert queries.counts(conn) == {"entries": 0, "exits": 0}

    def test_payload_must_match_exactly(self, engine):
        with pytest.raises(UnknownAnimalError):
            engine.process_scan("P1", " KMB-001")
        with pytest.raises(UnknownAnimalError):
            engine.process_scan("P1", "kmb-001")
        with pytest.raises(UnknownAnimalError):
            engine.process_scan("P1", "")


class TestClockSkew:
    def test_clock_behind_last_event_is_clamped(self, engine, clock):
        first = engine.record_scan("KMB-001", "P1")
        clock.now = first.recorded_at - timedelta(hours=2)

        second = engine.record_scan("KMB-001", "P1")

        assert second.direction is Direction.EXIT
        assert second.recorded_at == first.recorded_at + timedelta(microseconds=1)

    def test_clock_equal_to_last_event_is_clamped(self, engine, clock):
        first = engine.record_scan("KMB-001", "P1")
        clock.now = first.recorded_at
        second = engine.record_scan("KMB-001", "P1")
        assert second.recorded_at > first.recorded_at

    def test_clamped_timestamp_survives_storage(self, engine, clock, db, ledger):
        first = engine.record_scan("KMB-001", "P1")
        clock.now = first.recorded_at
        engine.record_scan("KMB-001", "P1")

        newest, oldest = _history(db, ledger, "KMB-001")
        assert newest.recorded_at - oldest.recorded_at == timedelta(microseconds=1)


class TestConflicts:
    def test_conflict_is_retried_once(self, db, locks, clock):
        ledger = FlakyLedger(failures=1)
        engine = GateMovementEngine(db=db, ledger=ledger, locks=locks, clock=clock)

        event = engine.record_scan("KMB-001", "P1")

        assert ledger.calls == 2
        assert event.direction is Direction.ENTRY
        assert len(_history(db, ledger, "KMB-001")) == 1

    def test_second_conflict_is_surfaced(self, db, locks, clock):
        ledger = FlakyLedger(failures=2)
        engine = GateMovementEngine(db=db, ledger=ledger, locks=locks, clock=clock)

        with pytest.raises(ConcurrentScanConflictError):
            engine.record_scan("KMB-001", "P1")

        assert ledger.calls == 2
        assert _history(db, ledger, "KMB-001") == []

    def test_failure_after_insert_rolls_back_movement(self, db, locks, clock, queries):
        ledger = SyncFailingLedger()
        engine = GateMovementEngine(db=db, ledger=ledger, locks=locks, clock=clock)

        with pytest.raises(RuntimeError):
            engine.record_scan("KMB-001", "P1")

        assert _history(db, ledger, "KMB-001") == []
        assert _location(db, queries, "KMB-001") == OUTSIDE

    def test_lock_timeout_is_reported_as_conflict(self, engine, locks):
        locks.timeout = 0.05
        with locks.hold("KMB-001"):
            with pytest.raises(ConcurrentScanConflictError):
                engine.record_scan("KMB-001", "P1")

    def test_other_animals_not_blocked_by_held_lock(self, engine, locks):
        locks.timeout = 0.05
        with locks.hold("KMB-001"):
            event = engine.record_scan("KMB-002", "P1")
        assert event.direction is Direction.ENTRY

    def test_simultaneous_scans_of_one_animal_alternate(self, engine, db, ledger):
        barrier = threading.Barrier(2)
        results, errors = [], []

        def scan():
            barrier.wait()
            try:
                results.append(engine.record_scan("KMB-001", "P1"))
            except ConcurrentScanConflictError as e:
                errors.append(e)

        threads = [threading.Thread(target=scan) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        directions = sorted(e.direction.value for e in results)
        assert directions in (["Entry", "Exit"], ["Entry"])
        assert len(results) + len(errors) == 2

        history = list(reversed(_history(db, ledger, "KMB-001")))
        assert [e.direction for e in history][:1] == [Direction.ENTRY]
        location_after(history)  # raises on two consecutive Entry events


class TestReplay:
    def test_replayed_history_matches_live_location(self, engine, db, ledger, queries):
        pens = ["P1", "P2", "P2", "P1", "P1"]
        for pen in pens:
            engine.record_scan("KMB-001", pen)

        history = _history(db, ledger, "KMB-001")
        assert location_after(reversed(history)) == _location(db, queries, "KMB-001") == "P1"

    def test_cached_pen_follows_ledger(self, engine, db):
        engine.record_scan("KMB-001", "P2")
        assert db.fetch_one("SELECT pen_id FROM animals WHERE id='KMB-001'")["pen_id"] == "P2"

        engine.record_scan("KMB-001", "P1")
        assert db.fetch_one("SELECT pen_id FROM animals WHERE id='KMB-001'")["pen_id"] is None
