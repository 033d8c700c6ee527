from contextlib import asynccontextmanager
from typing import Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vidsearch.api.deps import Runtime
from vidsearch.api.routes import admin, bangs, engines, search
from vidsearch.config import Settings, settings
from vidsearch.engines.base import BaseEngine
from vidsearch.engines.catalog import build_default_engines
from vidsearch.engines.http_client import shutdown_shared_http_client
from vidsearch.errors import (
    InvalidQueryError,
    SearchError,
    UnauthorizedError,
    UnknownEngineError,
)
from vidsearch.services.logger import log_event


def _status_for(exc: SearchError) -> int:
    if isinstance(exc, UnauthorizedError):
        return 401
    if isinstance(exc, UnknownEngineError):
        return 404
    if isinstance(exc, InvalidQueryError):
        return 400
    return 500


def create_app(
    engine_list: Optional[Iterable[BaseEngine]] = None,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        available = list(engine_list) if engine_list is not None else build_default_engines()
        app.state.runtime = Runtime.build(available, app_settings)
        log_event(
            event_type="startup",
            message="vidsearch ready",
            engines=len(available),
            enabled=len(app.state.runtime.registry.snapshot().enabled()),
        )
        yield
        # Shutdown
        await shutdown_shared_http_client()

    app = FastAPI(
        title="vidsearch",
        description="Meta-search across video sites with streamed results",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError):
        return JSONResponse(
            status_code=_status_for(exc),
            content={"ok": False, "error": exc.error_code, "message": exc.message},
        )

    # Routes
    app.include_router(search.router)
    app.include_router(engines.router)
    app.include_router(admin.router)
    app.include_router(bangs.router)

    @app.get("/api/health")
    async def health():
        runtime = app.state.runtime
        snapshot = runtime.registry.snapshot()
        return {
            "status": "ok",
            "service": "vidsearch",
            "engines": len(snapshot.entries),
            "enabled": len(snapshot.enabled()),
        }

    return app


app = create_app()
