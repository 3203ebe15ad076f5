# =======================================================================================
# livestock_gate/models/tables.py - Table Definitions
# =======================================================================================
from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, MetaData, String, Table, UniqueConstraint,
)
from sqlalchemy.dialects import mysql

metadata = MetaData()

# Microsecond precision on MySQL so clamped timestamps stay distinct
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")

pens = Table(
    "pens",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(100), nullable=False),
    Column("created_at", Timestamp, nullable=False),
)

animals = Table(
    "animals",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("breed", String(100), nullable=False),
    Column("registered_at", Timestamp, nullable=False),
    Column("vaccine_id", String(64), nullable=True),
    # cache of the ledger-derived location, refreshed on every ledger write
    Column("pen_id", String(64), ForeignKey("pens.id"), nullable=True),
    Column("image_path", String(255), nullable=True),
)

movements = Table(
    "movements",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("animal_id", String(64), ForeignKey("animals.id"), nullable=False),
    Column("pen_id", String(64), ForeignKey("pens.id"), nullable=False),
    Column("direction", String(5), nullable=False),
    Column("seq", Integer, nullable=False),
    Column("recorded_at", Timestamp, nullable=False),
    UniqueConstraint("animal_id", "seq", name="uq_movements_animal_seq"),
    Index("ix_movements_recorded_at", "recorded_at"),
)

movement_audit = Table(
    "movement_audit",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("movement_id", Integer, nullable=False),
    Column("animal_id", String(64), nullable=False, index=True),
    Column("action", String(10), nullable=False),
    Column("old_direction", String(5), nullable=False),
    Column("new_direction", String(5), nullable=True),
    Column("actor", String(100), nullable=False),
    Column("acted_at", Timestamp, nullable=False),
)
