"""FastAPI application wiring for the deployment engine."""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deployer import __version__
from deployer.api import routes
from deployer.api.runtime import ApiState, build_state
from deployer.catalog import CatalogError
from deployer.config import get_settings

logger = logging.getLogger(__name__)


async def _catalog_unavailable(request: Request, exc: Exception) -> JSONResponse:
    # sessions cannot be restored or created until the catalog loads
    logger.error("catalog unavailable for %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": f"Card catalog unavailable: {exc}"},
    )


def create_app(*, state_factory: Callable[[], ApiState] = build_state) -> FastAPI:
    """Build the deployment API with session routing and catalog error handling."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = state_factory()
        app.state.api_state = state
        logger.info(
            "deployment API %s serving sessions from %s", __version__, state.settings.data_dir
        )
        try:
            yield
        finally:
            await state.shutdown()

    app = FastAPI(title="Deployment Engine API", version=__version__, lifespan=lifespan)
    settings = get_settings()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CatalogError, _catalog_unavailable)
    app.include_router(routes.router)
    return app


app = create_app()
