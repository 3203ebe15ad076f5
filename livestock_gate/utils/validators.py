# =======================================================================================
# livestock_gate/utils/validators.py - Validation Helpers
# =======================================================================================
from sqlalchemy import text
from sqlalchemy.engine import Connection
from .exceptions import UnknownPenError


class PenValidator:
    """Validates pen references used by gate scans."""

    @staticmethod
    def ensure_pen(conn: Connection, pen_id: str) -> bool:
        """Validate the pen exists."""
        pen = conn.execute(
            text("SELECT id FROM pens WHERE id=:pid"),
            {"pid": pen_id}
        ).mappings().first()

        if not pen:
            raise UnknownPenError(f"Pen {pen_id!r} not found")

        return True
