from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import INVALID_READING_MESSAGE, router
from datastore.mongo import ReadingStore, StoreConnectionError, connect_default_store
from logging_config import configure_logging
from settings import get_settings

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], ReadingStore]


def _build_lifespan(store_factory: StoreFactory):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            store = store_factory()
        except StoreConnectionError:
            logger.critical("MongoDB connection error, refusing to serve requests")
            raise
        app.state.store = store
        try:
            yield
        finally:
            store.close()

    return lifespan


async def _http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    reasons = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.warning(
        "Rejected request %s %s",
        request.method,
        request.url.path,
        extra={"reason": reasons, "status_code": 400},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": INVALID_READING_MESSAGE},
    )


def create_app(store_factory: Optional[StoreFactory] = None) -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Sensor Relay",
        description="Stores readings pushed by devices in MongoDB and serves the latest one.",
        version="0.1.0",
        lifespan=_build_lifespan(store_factory or connect_default_store),
    )
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(router)
    return app


def run() -> None:
    """Connect to MongoDB, then serve; exit with status 1 if the database is unreachable."""
    configure_logging()
    settings = get_settings()
    try:
        store = connect_default_store()
    except StoreConnectionError as exc:
        logger.critical("MongoDB connection error: %s", exc)
        sys.exit(1)

    service = create_app(store_factory=lambda: store)
    # uvicorn logs "Uvicorn running on ..." once the socket is actually bound.
    logger.info("Starting sensor relay API on http://%s:%d", settings.host, settings.port)
    uvicorn.run(service, host=settings.host, port=settings.port, lifespan="on", log_config=None)


# Served by `uvicorn app.main:app`; run() builds its own app around an already connected store.
app = create_app()


if __name__ == "__main__":
    run()
