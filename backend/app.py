"""FastAPI application entry point for the quote cache service."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from config import Settings, settings
from errors import register_error_handlers
from services.cache import MemoryCache, StoreCache
from services.entry_store import EntryStore
from services.providers import AlphaVantageClient, GoldApiClient
from services.quotes import QuoteService

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=settings.log_level,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def build_quote_service(app_settings: Settings) -> QuoteService:
    """Wire caches and provider adapters from settings.

    Prices always use a transient cache. Overviews use the durable store when
    CACHE_DB_PATH is set. A missing or unopenable store file is fatal at startup;
    create one first with `quote-cache -i`.
    """
    if app_settings.cache_db_path:
        if not Path(app_settings.cache_db_path).is_file():
            raise FileNotFoundError(
                f"Store file '{app_settings.cache_db_path}' doesn't exist. "
                f"Create one using: quote-cache -i {app_settings.cache_db_path}"
            )
        store = EntryStore.open(app_settings.cache_db_path)
        store.create_tables()
        overview_cache = StoreCache(store)
        logger.info("Overview cache backed by %s", app_settings.cache_db_path)
    else:
        overview_cache = MemoryCache()
        logger.info("No CACHE_DB_PATH set; overview cache is transient")

    return QuoteService(
        price_cache=MemoryCache(),
        overview_cache=overview_cache,
        alpha_vantage=AlphaVantageClient(
            app_settings.alphavantage_api_key,
            base_url=app_settings.alphavantage_url,
            timeout=app_settings.provider_timeout,
        ),
        gold_api=GoldApiClient(
            app_settings.goldapi_access_token,
            base_url=app_settings.goldapi_url,
            timeout=app_settings.provider_timeout,
        ),
    )


def create_app(app_settings: Settings | None = None, quote_service: QuoteService | None = None) -> FastAPI:
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = app_settings.validate()
        if missing:
            logger.warning("Missing env vars (provider requests will fail): %s", ", ".join(missing))
        yield
        app.state.quote_service.close()

    app = FastAPI(title="Quote Cache API", version="1.0.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.state.quote_service = quote_service or build_quote_service(app_settings)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if app_settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.cache_admin import router as cache_admin_router
    from routes.health import router as health_router
    from routes.lookup import router as lookup_router

    app.include_router(health_router)
    app.include_router(lookup_router)
    app.include_router(cache_admin_router)

    static_dir = Path(app_settings.static_dir)
    if static_dir.is_dir():
        favicon = static_dir / "coffee.ico"
        if favicon.is_file():

            @app.get("/favicon.ico", include_in_schema=False)
            async def _favicon() -> FileResponse:
                return FileResponse(favicon)

        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    return app


app = create_app()
