"""Spotify credentials for one reconciliation: load, refresh on 401, retry once."""
import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Optional

from spotipy import Spotify

from beatsync.config import ACCESS_TOKEN_PATH, REFRESH_TOKEN_PATH
from beatsync.core import spotify_client
from beatsync.core.document_store import DocumentStore
from beatsync.models.credentials import Credentials

logger = logging.getLogger(__name__)


async def load_credentials(store: DocumentStore) -> Credentials:
    """Read the current token pair from the store."""
    access_token, refresh_token = await asyncio.gather(
        store.get(ACCESS_TOKEN_PATH),
        store.get(REFRESH_TOKEN_PATH),
    )
    return Credentials(access_token=access_token, refresh_token=refresh_token)


async def save_tokens(store: DocumentStore, token_info: dict) -> None:
    """Persist tokens obtained from the OAuth flow."""
    await store.set(ACCESS_TOKEN_PATH, token_info.get("access_token"))
    if token_info.get("refresh_token"):
        await store.set(REFRESH_TOKEN_PATH, token_info["refresh_token"])


async def clear_tokens(store: DocumentStore) -> None:
    await store.set(ACCESS_TOKEN_PATH, None)
    await store.set(REFRESH_TOKEN_PATH, None)


class TokenManager:
    """Holds the credentials of a single reconciliation and the client built from them.

    Concurrent reconciliations each hold their own copy; a refresh updates
    this copy and /tokens/access_token, where the last write wins.
    """

    def __init__(self, store: DocumentStore, credentials: Credentials) -> None:
        self._store = store
        self._credentials = credentials
        self._client: Optional[Spotify] = None
        self._refresh_lock = asyncio.Lock()

    @classmethod
    async def load(cls, store: DocumentStore) -> "TokenManager":
        return cls(store, await load_credentials(store))

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def client(self) -> Spotify:
        if self._client is None:
            self._client = spotify_client.build_client(self._credentials.access_token)
        return self._client

    async def refresh(self, stale_token: Optional[str] = None) -> None:
        """Best-effort access token refresh. Logs and returns on failure.

        If stale_token is given and another caller already replaced it, the
        refresh is skipped.
        """
        async with self._refresh_lock:
            if stale_token is not None and self._credentials.access_token != stale_token:
                logger.debug("refresh :: token already refreshed")
                return
            refresh_token = self._credentials.refresh_token
            if not refresh_token:
                logger.warning("refresh :: no refresh token stored; link Spotify first")
                return
            logger.info("refresh :: requesting new access token")
            try:
                access_token = await asyncio.to_thread(
                    spotify_client.refresh_access_token, refresh_token
                )
            except Exception as e:
                logger.warning("refresh :: error :: %s", e)
                return
            self._credentials = replace(self._credentials, access_token=access_token)
            self._client = None
            await self._store.set(ACCESS_TOKEN_PATH, access_token)
            logger.info("refresh :: success")

    async def call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run fn(client, *args) in a worker thread.

        On an authorization error refresh once and retry once; any other error,
        or a second failure, propagates.
        """
        token = self._credentials.access_token
        try:
            return await asyncio.to_thread(fn, self.client, *args, **kwargs)
        except Exception as e:
            if not spotify_client.is_authorization_error(e):
                raise
            logger.info("call :: authorization failed for %s, refreshing", getattr(fn, "__name__", fn))
        await self.refresh(stale_token=token)
        return await asyncio.to_thread(fn, self.client, *args, **kwargs)
