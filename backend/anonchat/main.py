"""Anonchat Backend Application.

This is the main entry point for the Anonchat backend service: anonymous,
real-time chat rooms with presence.

Modules:
    - realtime: WebSocket presence and message broadcast engine
    - store: DuckDB storage for users, rooms and messages
    - auth: anonymous identity issuance
    - rooms: room CRUD and room history
    - messages: message listing and deletion
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from anonchat import __version__
from anonchat.auth.router import router as auth_router
from anonchat.config import get_config
from anonchat.messages.router import router as messages_router
from anonchat.realtime.engine import get_engine, reset_engine
from anonchat.realtime.router import router as realtime_router
from anonchat.rooms.router import router as rooms_router
from anonchat.store.service import ChatStore, get_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Per-request access and HTTP client logs drown out chat traffic.
for _noisy in ("uvicorn.access", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    configured_level = getattr(logging, config.server.log_level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.server.log_level.upper())

    get_store()
    get_engine()
    logger.info(
        f"Anonchat ready on http://{config.server.host}:{config.server.port} "
        f"(database={config.database.path})"
    )

    yield  # Application runs here

    # Shutdown
    reset_engine()
    ChatStore.reset_instance()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Anonchat API",
    description="Anonymous real-time chat rooms",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(realtime_router)
app.include_router(auth_router)
app.include_router(rooms_router)
app.include_router(messages_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status, server time and the number of rooms with members online.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "activeRooms": get_engine().registry.room_count(),
    }


@app.get("/")
async def root() -> dict:
    return {"message": "Anonymous Chat API is running!", "version": __version__}
