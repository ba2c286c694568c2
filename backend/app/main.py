"""GigFlow Backend API - FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from gigflow import __version__

from .config import get_settings
from .database import get_storage_instance, get_topic_router
from .errors import register_exception_handlers
from .logging_config import configure_logging, get_logger
from .rate_limit import limiter
from .routes import auth_router, gigs_router, realtime_router, users_router

logger = get_logger("gigflow.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    settings = get_settings()
    configure_logging(settings.debug)
    storage = get_storage_instance(settings)
    logger.info(f"Starting GigFlow API (debug={settings.debug}, db={storage.db_path})")
    yield
    # Shutdown
    logger.info("Shutting down GigFlow API")


app = FastAPI(
    title="GigFlow API",
    description="Freelance marketplace: gigs, bids, hiring and realtime notifications",
    version=__version__,
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/api")
app.include_router(gigs_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(realtime_router)


@app.get("/")
async def root():
    """Service banner."""
    return {
        "service": "gigflow-backend",
        "version": __version__,
        "status": "ok",
    }


def _health() -> dict:
    db_status = "disconnected"
    try:
        get_storage_instance().count_unread_notifications("__health__")
        db_status = "connected"
    except Exception as e:
        db_status = f"error: {str(e)[:50]}"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "connections": get_topic_router().connection_count,
    }


@app.get("/health")
def health():
    """Detailed health check with actual database verification."""
    return _health()


@app.get("/api/health")
def api_health():
    return _health()
