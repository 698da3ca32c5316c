"""Grocery Admin API — Main entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from grocery_admin.config import settings
from grocery_admin.core.logging import configure_logging
from grocery_admin.core.middleware import RequestLoggingMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    configure_logging()
    logger.info("Starting Grocery Admin API", env=settings.app_env)
    yield
    logger.info("Shutting down Grocery Admin API")


app = FastAPI(
    title="Grocery Admin API",
    description="Category hierarchy API for the marketplace admin dashboard",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# ── Middleware ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ── Health Check ──────────────────────────────────
@app.get("/health", tags=["system"])
async def health_check():
    """Liveness probe — always returns healthy if the process is running."""
    return {"status": "healthy", "version": "0.1.0"}


# ── API Routes ────────────────────────────────────
from grocery_admin.api.v1 import categories  # noqa: E402

app.include_router(categories.router, prefix="/api/v1/categories", tags=["categories"])
