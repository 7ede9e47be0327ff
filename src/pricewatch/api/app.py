"""FastAPI application factory for the price query API."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pricewatch.api import routes
from pricewatch.exceptions import InvalidArgument, PersistenceError, UpstreamError
from pricewatch.logging import get_logger

logger = get_logger(__name__)


async def _invalid_argument_handler(request: Request, exc: InvalidArgument) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_argument", "detail": str(exc)})


async def _upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    logger.warning("upstream_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=502, content={"error": "upstream_unavailable", "detail": str(exc)})


async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("persistence_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"error": "storage_unavailable", "detail": str(exc)})


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Route handlers read ``query_service`` and ``scheduler`` from app.state.
    """
    app = FastAPI(
        title="Price Watch API",
        lifespan=lifespan,
    )

    app.add_exception_handler(InvalidArgument, _invalid_argument_handler)
    app.add_exception_handler(UpstreamError, _upstream_error_handler)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)

    app.include_router(routes.router)

    return app
