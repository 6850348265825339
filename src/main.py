"""FastAPI Application - Main entry point."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from src.config.settings import get_settings
from src.core.errors import register_exception_handlers
from src.handlers.appointments import router as appointments_router
from src.handlers.auth import router as auth_router
from src.handlers.two_factor import router as two_factor_router
from src.services.observability import instrument_fastapi, setup_tracing
from src.utils.logger import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)

# Initialize settings early
settings = get_settings()

# Setup logging
setup_logging(settings.log_level)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Handles startup and shutdown events.
    """
    logger.info(
        "application_starting",
        environment=settings.app_env,
        port=settings.api_port,
    )

    setup_tracing(settings)

    yield

    logger.info("application_shutting_down")

    try:
        from src.core.rate_limit import get_rate_limiter
        from src.services.evolution import get_evolution_client

        await get_rate_limiter().close()
        await get_evolution_client().close()
    except Exception as e:
        logger.warning("cleanup_error", error=str(e))


app = FastAPI(
    title="Booky API",
    description="Agendamentos, horários e autenticação em dois fatores",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_log_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Scope structlog context to a single request."""
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    try:
        return await call_next(request)
    finally:
        clear_request_context()


register_exception_handlers(app)

instrument_fastapi(app, settings)

app.include_router(appointments_router)
app.include_router(two_factor_router)
app.include_router(auth_router)


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": "Booky API",
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        Health status with environment info.
    """
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "version": "1.0.0",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
