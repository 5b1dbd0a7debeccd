"""QuickDrop — Main application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from alembic import command
from alembic.config import Config
from fastapi import FastAPI, Request

from config import get_settings
from janitor import Janitor
from logging_config import setup_logging
from api.download.controllers.download_controller import router as download_router
from api.drops.controllers.drops_controller import router as drops_router
from api.upload.controllers.upload_controller import router as upload_router

logger = logging.getLogger(__name__)


def run_migrations():
    """Run Alembic migrations on startup."""
    try:
        alembic_ini = Path(__file__).parent / "alembic.ini"
        alembic_cfg = Config(str(alembic_ini))
        alembic_cfg.set_main_option(
            "script_location", str(Path(__file__).parent / "db_migrations")
        )
        command.upgrade(alembic_cfg, "head")
    except Exception:
        logger.exception("Migration failed, falling back to create_all")
        from database import init_db

        init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    settings = get_settings()
    settings.ensure_dirs()
    if not settings.admin_enabled:
        logger.warning("DROP_ADMIN_PASS is not set; uploads and deletes are disabled")

    run_migrations()

    janitor = Janitor(settings)
    app.state.janitor = janitor
    await janitor.start()
    yield
    await janitor.stop()


def create_app() -> FastAPI:
    app = FastAPI(title="QuickDrop", version="0.1.0", lifespan=lifespan)

    @app.get("/api/health")
    async def health(request: Request):
        janitor = getattr(request.app.state, "janitor", None)
        report = janitor.last_report if janitor else None
        return {
            "status": "ok",
            "last_sweep": report.finished_at if report else None,
            "last_sweep_removed": report.removed if report else None,
            "last_sweep_failures": len(report.failures) if report else None,
        }

    app.include_router(upload_router)
    app.include_router(download_router)
    app.include_router(drops_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)
