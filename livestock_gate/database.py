# =======================================================================================
# livestock_gate/database.py - Database Management
# =======================================================================================
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool
from .config import config
from .models.tables import metadata

class DatabaseManager:
    """Manages database connections and transactions."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or config.DB_URL
        self.engine: Engine = create_engine(self.url, **self._engine_options(self.url))

    @staticmethod
    def _engine_options(url: str) -> Dict[str, Any]:
        # SQLite has no READ COMMITTED level and manages its own pool
        if url.startswith("sqlite"):
            return {"future": True, "connect_args": {"check_same_thread": False}}
        return {
            "poolclass": QueuePool,
            "pool_size": config.DB_POOL_SIZE,
            "max_overflow": config.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
            "isolation_level": config.DB_ISOLATION_LEVEL,
            "future": True,
        }

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """Get a connection inside a transaction; commits on success, rolls back on error."""
        with self.engine.begin() as conn:
            yield conn

    def fetch_one(self, query: str, params: dict = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().first()

    def init_schema(self) -> None:
        """Create any missing tables."""
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

# Global database instances; reads may go to a replica
db_manager = DatabaseManager()
read_db_manager = DatabaseManager(config.READ_DB_URL) if config.READ_DB_URL else db_manager
