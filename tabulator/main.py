"""
Judging Tabulator API

FastAPI application serving scores and live rankings.
"""

from contextlib import asynccontextmanager
import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tabulator import __version__
from tabulator.config import settings
from tabulator.db.session import init_db, dispose_db
from tabulator.api.v1.router import api_router
from tabulator.features.rankings.service import ranking_service
from tabulator.shared.events import score_events


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting Judging Tabulator API...")
    await init_db()
    logger.info("Database initialized")

    # Score events invalidate cached rankings
    ranking_service.start()

    yield

    # Shutdown
    ranking_service.stop()
    await score_events.close()
    await dispose_db()
    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="Judging Tabulator API",
    description="Score ledger, live rankings and change feeds for juried competitions",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag"],
)


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
