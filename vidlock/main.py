"""
VidLock API - Prompt/Image to Video Proxy
FastAPI Backend Entry Point
"""

import logging
import secrets
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidlock import __version__
from vidlock.core.config import Settings, get_settings
from vidlock.core.database import create_store_engine
from vidlock.core.errors import ContentProxyError, Unauthorized, VidLockError
from vidlock.api import characters, jobs, render, snapshots
from vidlock.services import (
    CharacterRegistry,
    ContentProxy,
    ImageNormalizer,
    JobStore,
    ProviderClient,
    RenderOrchestrator,
    SnapshotRegistry,
    StatusReconciler,
)
from vidlock.services.store import open_store

logger = logging.getLogger("vidlock")

GATE_EXEMPT_PATHS = ("/health",)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    settings: Settings = app.state.settings
    logger.info("[Startup] Starting VidLock API...")
    if not settings.OPENAI_API_KEY:
        logger.warning("[Startup] OPENAI_API_KEY is not set; provider calls will be rejected")

    engine = create_store_engine(settings.DATABASE_URL) if settings.STORE_BACKEND == "sql" else None
    job_store = JobStore(open_store(settings, "jobs", engine), history_limit=settings.HISTORY_LIMIT)
    character_registry = CharacterRegistry(open_store(settings, "characters", engine), settings.locks_path)
    snapshot_registry = SnapshotRegistry(open_store(settings, "snapshots", engine))
    provider = ProviderClient.from_settings(settings, transport=app.state.provider_transport)

    app.state.provider = provider
    app.state.jobs = job_store
    app.state.characters = character_registry
    app.state.snapshots = snapshot_registry
    app.state.orchestrator = RenderOrchestrator(
        provider, job_store, character_registry, settings, normalizer=ImageNormalizer()
    )
    app.state.reconciler = StatusReconciler(provider, job_store, settings)
    app.state.content_proxy = ContentProxy(provider)
    logger.info(f"[Startup] Store backend: {settings.STORE_BACKEND}, data dir: {settings.DATA_DIR}")
    yield
    # Shutdown
    logger.info("[Shutdown] Shutting down VidLock API...")
    await provider.close()
    await job_store.close()
    await character_registry.close()
    await snapshot_registry.close()
    if engine is not None:
        engine.dispose()


def register_error_handlers(app: FastAPI):
    """Every API failure becomes {"error": message}; content errors stay plain text."""

    @app.exception_handler(ContentProxyError)
    async def content_error_handler(request: Request, exc: ContentProxyError):
        logger.warning(f"[Content] {request.url.path} failed: {exc.message}")
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    @app.exception_handler(VidLockError)
    async def vidlock_error_handler(request: Request, exc: VidLockError):
        if exc.status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
            for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": problems or "Invalid request"})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"[API] {request.method} {request.url.path} failed: {exc!r}", exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_password_gate(app: FastAPI, password: Optional[str]):
    """Optional shared-secret gate: X-App-Password header or ?pwd= query."""
    if not password:
        return

    @app.middleware("http")
    async def password_gate(request: Request, call_next):
        if request.url.path in GATE_EXEMPT_PATHS:
            return await call_next(request)
        supplied = request.headers.get("x-app-password") or request.query_params.get("pwd") or ""
        if secrets.compare_digest(supplied.encode("utf-8"), password.encode("utf-8")):
            return await call_next(request)
        err = Unauthorized("Unauthorized. Append ?pwd=YOUR_PASSWORD or send X-App-Password header.")
        return JSONResponse(status_code=err.status_code, content={"error": err.message})


def create_app(
    settings: Optional[Settings] = None,
    provider_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Prompt and reference image to video, with character locks and job history",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider_transport = provider_transport

    register_password_gate(app, settings.APP_PASSWORD)
    # CORS middleware (added last so it wraps the gate)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # Include routers
    app.include_router(render.router, prefix="/api", tags=["Render"])
    app.include_router(jobs.router, prefix="/api", tags=["Jobs"])
    app.include_router(characters.router, prefix="/api", tags=["Characters"])
    app.include_router(snapshots.router, prefix="/api/snapshots", tags=["Snapshots"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Liveness plus a non-secret echo of the active configuration."""
        return {
            "ok": True,
            "version": __version__,
            "defaultModel": settings.DEFAULT_MODEL,
            "fallbackModel": settings.FALLBACK_MODEL,
            "allowedModels": settings.ALLOWED_MODELS,
            "allowedSeconds": settings.ALLOWED_SECONDS,
            "moderationFallback": settings.MODERATION_FALLBACK,
            "store": settings.STORE_BACKEND,
            "gate": bool(settings.APP_PASSWORD),
            "hasApiKey": bool(settings.OPENAI_API_KEY),
        }

    return app


app = create_app()
