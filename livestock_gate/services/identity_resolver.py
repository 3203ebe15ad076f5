# =======================================================================================
# livestock_gate/services/identity_resolver.py - Scanned Payload -> Animal Id
# =======================================================================================
from sqlalchemy import text
from sqlalchemy.engine import Connection
from ..utils.exceptions import UnknownAnimalError


class IdentityResolver:
    """Maps a decoded QR payload to a known animal id.

    The payload is the literal animal id printed into the QR label. Matching is
    exact: no trimming, no case folding, no lookup table. Labels are reprinted
    whenever an id changes.
    """

    def resolve(self, conn: Connection, raw_payload: str) -> str:
        if not raw_payload:
            raise UnknownAnimalError("Empty QR payload")
        return self.ensure_exists(conn, raw_payload)

    def ensure_exists(self, conn: Connection, animal_id: str) -> str:
        row = conn.execute(
            text("SELECT id FROM animals WHERE id=:aid"),
            {"aid": animal_id}
        ).mappings().first()

        if not row:
            raise UnknownAnimalError(f"Unknown animal {animal_id!r}")
        return row["id"]
