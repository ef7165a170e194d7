"""Turn purchase webhooks into /purchases and /tracks entries."""
import asyncio
import logging
import math
from typing import Any, Dict, Iterable, Optional

from beatsync.config import PURCHASES_PATH, TRACKS_PATH
from beatsync.core.document_store import DocumentStore
from beatsync.models.track import TrackRecord

logger = logging.getLogger(__name__)

# Store payload capitalization varies ("Item", "item", "ITEM"); map to canonical names
TRACK_FIELDS = {
    "item": "item",
    "name": "name",
    "artists": "artists",
}


def normalize_track(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Canonicalize known field names; other keys are lowercased as-is."""
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        lowered = str(key).lower()
        out[TRACK_FIELDS.get(lowered, lowered)] = value
    return out


def parse_track_id(value: Any) -> Optional[str]:
    """Return the id as a store key if it is a non-zero number, else None."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    try:
        number = float(text)
    except ValueError:
        return None
    if number == 0 or math.isnan(number):
        return None
    return text


def build_track_collection(order_id: str, tracks: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Key normalized tracks by item id, skipping any with a malformed id."""
    collection: Dict[str, Dict[str, Any]] = {}
    for raw in tracks:
        track = normalize_track(raw)
        track_id = parse_track_id(track.get("item"))
        if track_id is None:
            # Pre-orders have been seen to arrive without a numeric id
            logger.warning("Skipping track with unexpected id %r in order %s", track.get("item"), order_id)
            continue
        collection[track_id] = track
    if not collection:
        logger.error("Unable to parse any tracks for order %s", order_id)
    return collection


async def save_purchase(store: DocumentStore, order_id: str, tracks: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Write /purchases/{order_id}; returns the stored track collection."""
    collection = build_track_collection(order_id, tracks)
    await store.set(f"{PURCHASES_PATH}/{order_id}", {"tracks": collection})
    return collection


async def on_new_purchase(store: DocumentStore, value: Any, params: Dict[str, str]) -> None:
    """Create-trigger for /purchases/{id}: fan tracks out to /tracks concurrently.

    Existing /tracks entries keep their Spotify URI and snapshot id; only the
    payload is refreshed.
    """
    tracks = (value or {}).get("tracks") or {}
    logger.info("on_new_purchase :: %s with %d tracks", params.get("id"), len(tracks))
    await asyncio.gather(
        *(
            store.update(f"{TRACKS_PATH}/{track_id}", TrackRecord(track=track).to_document())
            for track_id, track in tracks.items()
        )
    )
