# =======================================================================================
# livestock_gate/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .config import config
from .api.routes.scan import router as scan_router
from .api.routes.animals import router as animals_router
from .api.routes.movements import router as movements_router
from .api.routes.dashboard import router as dashboard_router
from .api.dependencies import get_db_manager
from .database import DatabaseManager, db_manager
from .models.schemas import HealthResponse

logger = logging.getLogger("livestock_gate")


def configure_logging() -> None:
    level = logging.DEBUG if config.API_DEBUG else getattr(logging, config.LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(
        title="Livestock Gate Movement API",
        version="1.0.0",
        description="QR gate check-in/check-out ledger for animals and pens",
        debug=config.API_DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(scan_router, prefix="/api", tags=["scan"])
    app.include_router(animals_router, prefix="/api", tags=["animals"])
    app.include_router(movements_router, prefix="/api", tags=["movements"])
    app.include_router(dashboard_router, prefix="/api", tags=["dashboard"])

    @app.get("/api/health", response_model=HealthResponse, tags=["health"])
    def api_health(db: DatabaseManager = Depends(get_db_manager)):
        try:
            db.fetch_one("SELECT 1")
            return HealthResponse(status="ok", dataAvailable=True, message=None)
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return HealthResponse(
                status="error", dataAvailable=False, message=str(e)
            )

    @app.on_event("startup")
    async def startup_event():
        if config.DB_AUTO_CREATE_SCHEMA:
            db_manager.init_schema()
        logger.info("Livestock Gate Movement API started")

    return app


app = create_app()
