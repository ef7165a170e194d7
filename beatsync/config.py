"""Configuration: env, document store location, Spotify credentials and playlist."""
import os
from pathlib import Path

from dotenv import load_dotenv

# Base paths (project root = parent of beatsync package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
load_dotenv(BASE_DIR / ".env")

DATA_DIR = Path(os.getenv("BEATSYNC_DATA_DIR", str(BASE_DIR / "data")))
STORE_PATH = DATA_DIR / "store.json"

# API
API_HOST = os.getenv("BEATSYNC_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("BEATSYNC_API_PORT", "8000"))
LOG_LEVEL = os.getenv("BEATSYNC_LOG_LEVEL", "INFO").upper()

# Spotify (OAuth; refresh token stored in the document store after first connect)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://localhost:8000/api/spotify/callback")
SPOTIFY_SCOPES = "playlist-modify-public playlist-modify-private"
SPOTIFY_REQUEST_TIMEOUT = float(os.getenv("SPOTIFY_REQUEST_TIMEOUT", "10"))
SPOTIFY_SEARCH_LIMIT = int(os.getenv("SPOTIFY_SEARCH_LIMIT", "5"))
# After OAuth callback, redirect here (e.g. http://localhost:5173 for a dev frontend)
BEATSYNC_WEB_ORIGIN = os.getenv("BEATSYNC_WEB_ORIGIN", "")

# Playlist that purchased tracks are prepended to
SPOTIFY_PLAYLIST_ID = os.getenv("SPOTIFY_PLAYLIST_ID", "6WyKo6Zejscls8G676N8UX")
PLAYLIST_INSERT_POSITION = 0

# Retry sweep page size; kept small to stay under Spotify rate limits
RETRY_BATCH_SIZE = int(os.getenv("BEATSYNC_RETRY_BATCH_SIZE", "10"))

# Document store paths
PURCHASES_PATH = "/purchases"
TRACKS_PATH = "/tracks"
ACCESS_TOKEN_PATH = "/tokens/access_token"
REFRESH_TOKEN_PATH = "/tokens/refresh_token"


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
