from __future__ import annotations

import logging
import time
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles

from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.base import Base
from app.db.session import engine

import app.models

from app.routers import auth, users, breweries, reviews
from app.services.breweries import BreweryNotFound, BreweryValidationError, NotAuthorized, SlugConflict

configure_logging(log_dir=settings.log_dir, level=settings.log_level)
logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BreweryNotFound)
    async def not_found(request: Request, exc: BreweryNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": "Brewery not found"})

    @app.exception_handler(NotAuthorized)
    async def forbidden(request: Request, exc: NotAuthorized) -> JSONResponse:
        logger.warning("Forbidden %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=403, content={"detail": str(exc)})

    @app.exception_handler(BreweryValidationError)
    async def invalid(request: Request, exc: BreweryValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": "Validation failed", "errors": exc.errors})

    @app.exception_handler(SlugConflict)
    async def conflict(request: Request, exc: SlugConflict) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})


def create_app(*, storage_dir: str | None = None) -> FastAPI:
    app = FastAPI(title="Brewery Listings", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def on_startup() -> None:
        Base.metadata.create_all(bind=engine)
        logger.info("DB ready")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error")
            return JSONResponse(status_code=500, content={"detail": "Internal server error"})
        duration_ms = int((time.time() - start) * 1000)
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration_ms)
        return response

    _register_error_handlers(app)

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(breweries.router)
    app.include_router(reviews.router)

    # Public file area: uploaded brewery images are served from here.
    public_dir = Path(storage_dir or settings.storage_dir)
    public_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/storage", StaticFiles(directory=str(public_dir)), name="storage")

    @app.get("/", include_in_schema=False)
    def root_redirect() -> RedirectResponse:
        return RedirectResponse(url="/breweries")

    return app


app = create_app()
