"""Match a purchased track on Spotify, record the URI, and prepend it to the playlist."""
import logging
from typing import Any, Dict, List, Optional

from beatsync.config import RETRY_BATCH_SIZE, SPOTIFY_PLAYLIST_ID, TRACKS_PATH
from beatsync.core import spotify_client
from beatsync.core.document_store import DocumentStore
from beatsync.core.resolver import resolve_track
from beatsync.core.token_manager import TokenManager
from beatsync.models.track import SNAPSHOT_ID_FIELD, SPOTIFY_URI_FIELD, TrackRecord

logger = logging.getLogger(__name__)


async def import_track(
    store: DocumentStore,
    track_id: str,
    record: TrackRecord,
    playlist_id: str = SPOTIFY_PLAYLIST_ID,
) -> None:
    """Reconcile one track: search, persist URI, insert into playlist, persist snapshot id.

    Each write is a separate partial update, so a failure after the URI is
    stored leaves a record the next run can finish. Playlist errors propagate.
    """
    logger.info("import_track :: %s %r by %r", track_id, record.name, record.artists)
    tokens = await TokenManager.load(store)
    track_path = f"{TRACKS_PATH}/{track_id}"

    spotify_uri = record.spotify_uri
    if spotify_uri:
        logger.info("import_track :: %s already matched to %s", track_id, spotify_uri)
    else:
        spotify_uri = await resolve_track(tokens, record)
        if not spotify_uri:
            return
        await store.update(track_path, {SPOTIFY_URI_FIELD: spotify_uri})

    logger.info("import_track :: adding %s to playlist %s", spotify_uri, playlist_id)
    try:
        snapshot_id = await tokens.call(
            spotify_client.add_track_to_playlist, playlist_id, spotify_uri
        )
    except Exception as e:
        logger.error("import_track :: playlist insert failed for %s :: %s", track_id, e)
        raise
    logger.info("import_track :: playlist snapshot %s", snapshot_id)
    if snapshot_id:
        await store.update(track_path, {SNAPSHOT_ID_FIELD: snapshot_id})


async def on_new_track(store: DocumentStore, value: Any, params: Dict[str, str]) -> None:
    """Create-trigger for /tracks/{id}."""
    await import_track(store, params["id"], TrackRecord.from_document(value))
    logger.info("on_new_track :: complete %s", params["id"])


async def find_unresolved_tracks(
    store: DocumentStore,
    limit: Optional[int] = RETRY_BATCH_SIZE,
) -> Dict[str, Any]:
    """First page of /tracks entries with no Spotify URI, keyed by track id."""
    return await store.query(TRACKS_PATH, SPOTIFY_URI_FIELD, None, limit)


async def batch_import_tracks(store: DocumentStore, collection: Dict[str, Any]) -> List[str]:
    """Reconcile tracks one at a time to stay under Spotify rate limits.

    Returns the ids that were processed.
    """
    logger.info("batch_import_tracks :: %d tracks", len(collection))
    done = []
    for track_id, doc in collection.items():
        await import_track(store, track_id, TrackRecord.from_document(doc))
        done.append(track_id)
    logger.info("batch_import_tracks :: complete")
    return done


async def sweep_unresolved_tracks(store: DocumentStore) -> List[str]:
    """Retry a page of unresolved tracks and wait for the whole batch."""
    orphans = await find_unresolved_tracks(store)
    return await batch_import_tracks(store, orphans)
