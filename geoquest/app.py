"""FastAPI application factory and configuration."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import ALLOWED_CORS_ORIGINS, LOG_DIR, LOG_LEVEL, PROVIDER_STATUS_TTL_SEC, init_db
from .core.errors import register_error_handlers
from .core.logging_setup import setup_logging
from .services.providers import ProviderStatusCache


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="GeoQuest API", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "x-user-email"],
    )

    app.state.provider_status = ProviderStatusCache(ttl_seconds=PROVIDER_STATUS_TTL_SEC)

    register_error_handlers(app)
    register_routes(app)
    return app


app = create_app()


def run() -> None:
    """Console entry point."""

    import uvicorn

    setup_logging(level=LOG_LEVEL, log_dir=LOG_DIR)
    uvicorn.run("geoquest.app:app", host="127.0.0.1", port=3000, log_config=None)


if __name__ == "__main__":
    run()
