"""Application entry point."""

import asyncio
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import close_container, get_container
from src.api.dependencies import limiter
from src.api.routes.config import router as config_router
from src.api.routes.data_sources import router as data_sources_router
from src.api.routes.models import router as models_router
from src.api.routes.sessions import router as sessions_router
from src.infrastructure.config.model_validator import validate_generation_model
from src.shared.logging import clear_session, setup_logging

log = structlog.get_logger()

SESSION_PURGE_INTERVAL_SECONDS = 60.0


def _apply_logging_config(container):
    """Apply logging from container config (stdout + optional file)."""
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


async def purge_sessions_periodically(interval: float = SESSION_PURGE_INTERVAL_SECONDS) -> None:
    """Close idle sessions of the current container until cancelled."""
    while True:
        await asyncio.sleep(interval)
        closed = get_container().session_store.purge_expired()
        if closed:
            log.info("sessions_purged", count=closed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: setup logging, check the generation model, start session purge.

    Shutdown: stop the purge, end sessions, close clients.
    """
    container = get_container()
    _apply_logging_config(container)
    log.info(
        "startup_begin",
        llm_provider=container.config.llm.provider,
        generation_model=container.config.generation.model,
    )
    await validate_generation_model(container.llm, container.config)
    purge_task = asyncio.create_task(purge_sessions_periodically())
    log.info("startup_complete")
    yield
    log.info("shutdown_begin")
    purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await purge_task
    await close_container()
    log.info("shutdown_complete")


app = FastAPI(
    title="GraphQL Factory",
    version="0.1.0",
    description="AI-powered GraphQL schema and example generation from data source descriptions",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
container = get_container()
app.add_middleware(
    CORSMiddleware,
    allow_origins=container.config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reset_log_context(request: Request, call_next):
    """Drop session ids bound by a previous request on this context."""
    clear_session()
    return await call_next(request)


app.include_router(config_router)
app.include_router(data_sources_router)
app.include_router(models_router)
app.include_router(sessions_router)


@app.get("/health")
@limiter.limit("100/minute")
async def health(request: Request) -> dict:
    """Health check with LLM availability."""
    container = get_container()
    llm_available = await container.llm.is_available()
    return {
        "status": "ok",
        "service": "graphql-factory",
        "llm_provider": container.config.llm.provider,
        "llm_available": llm_available,
    }
