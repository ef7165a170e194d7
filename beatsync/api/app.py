"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from beatsync.config import LOG_LEVEL

# Configure logging in the worker process (so trigger INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(levelname)s: %(name)s: %(message)s",
)

from beatsync.api.state import AppState, get_state
from beatsync.config import ensure_data_dir

# Import routes after state to avoid circular imports
from beatsync.api.routes import spotify, webhooks

__all__ = ["app", "AppState", "get_state"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = get_state()
    logger.info("Document store ready")

    yield

    # Let reconciliations started by webhooks finish before the loop closes
    await state.store.drain()


app = FastAPI(
    title="beatsync API",
    description="Purchase webhooks to Spotify playlist sync",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
app.include_router(spotify.router, prefix="/api/spotify", tags=["spotify"])
