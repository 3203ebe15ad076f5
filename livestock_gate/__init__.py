# =======================================================================================
# livestock_gate/__init__.py - Package Initialization
# =======================================================================================
"""
Livestock Gate Movement Tracker

Records QR gate scans at pens as an append-only Entry/Exit ledger per animal
and answers current-location, history and count queries from it.
"""

__version__ = "1.0.0"
