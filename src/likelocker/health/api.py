"""
Liveness endpoint for container orchestrators.

`GET /health` answers `200 OK` in plain text as long as the process is up.
It reports process liveness only and shares no state with the archiver.
"""

from __future__ import annotations

import logging
import threading

import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.responses import PlainTextResponse


DEFAULT_HOST = "0.0.0.0"

logger = logging.getLogger(__name__)


def create_health_router() -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    return router


def create_health_app() -> FastAPI:
    app = FastAPI(title="likelocker", docs_url=None, redoc_url=None, openapi_url=None)
    app.include_router(create_health_router())
    return app


def start_health_server(port: int, *, host: str = DEFAULT_HOST) -> threading.Thread:
    """Serve the health app with uvicorn on a daemon thread."""
    config = uvicorn.Config(
        create_health_app(),
        host=host,
        port=port,
        log_level="warning",
        log_config=None,
        access_log=False,
    )
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, name="health-server", daemon=True)
    thread.start()
    logger.info("Health endpoint listening on :%d/health", port)
    return thread
