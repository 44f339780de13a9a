"""FastAPI application for CompileStrength."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import get_settings
from .api.routes import chat, routines, sessions, usage, webhooks
from .api.exception_handlers import register_exception_handlers
from .api.middleware.rate_limit import limiter
from .db.database import SQLiteRepository, get_default_db_path
from .utils.log_sanitizer import install_log_sanitizer

# Must run before any logging occurs
install_log_sanitizer()

logger = logging.getLogger(__name__)


def validate_configuration(settings) -> None:
    """Log what is and is not configured; nothing here is fatal."""
    if settings.jwt_secret_key == "dev-secret-change-me":
        logger.warning("JWT_SECRET_KEY is the development default. Set it before deploying.")

    if not settings.openai_api_key and not settings.anthropic_api_key:
        logger.warning(
            "No LLM provider key configured (OPENAI_API_KEY / ANTHROPIC_API_KEY). "
            "Chat will be unavailable."
        )
    else:
        logger.info(f"LLM: {settings.llm_model}, max {settings.max_tool_steps} tool steps per turn")

    if not settings.lemonsqueezy_webhook_secret:
        logger.warning("LEMONSQUEEZY_WEBHOOK_SECRET is not configured. Billing webhooks will fail.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    db_path = get_default_db_path()
    logger.info(f"Starting CompileStrength v{__version__}")
    logger.info(f"Database: {db_path}")

    validate_configuration(settings)

    # Creates the schema if the database is new
    SQLiteRepository(str(db_path))

    yield

    logger.info("Shutting down CompileStrength")


app = FastAPI(
    title="CompileStrength API",
    description="AI-assisted workout program generation with usage-metered plans",
    version=__version__,
    lifespan=lifespan,
    redirect_slashes=False,
)

# Rate limiting
app.state.limiter = limiter

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(chat.router, prefix="/api/v1", tags=["chat"])
app.include_router(routines.router, prefix="/api/v1", tags=["routines"])
app.include_router(usage.router, prefix="/api/v1/usage", tags=["usage"])
app.include_router(sessions.router, prefix="/api/v1", tags=["workout-logging"])
app.include_router(webhooks.router, prefix="/api/v1", tags=["webhooks"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "CompileStrength API",
        "version": __version__,
        "status": "healthy",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
