"""Resolve a purchased track to a Spotify URI by searching once per credited artist.

Store credits often join artists and remixers ("A, B"), which Spotify search
handles poorly, so each artist is searched separately and the first hit in
credit order wins.
"""
import asyncio
import logging
from typing import List, Optional

from beatsync.core import spotify_client
from beatsync.core.sanitizer import build_search_query
from beatsync.core.token_manager import TokenManager
from beatsync.models.track import SearchOutcome, SearchStatus, TrackRecord

logger = logging.getLogger(__name__)


def split_artists(artists: str) -> List[str]:
    """'A, B' -> ['A', 'B']; blank entries are dropped."""
    return [a.strip() for a in (artists or "").split(",") if a.strip()]


async def search_artist(tokens: TokenManager, artist: str, name: str) -> SearchOutcome:
    """Search one artist/title pair. Never raises; failures become FAILED outcomes."""
    query = build_search_query(artist, name)
    logger.info("search_artist :: query :: %s", query)
    try:
        uris = await tokens.call(spotify_client.search_track_uris, query)
    except Exception as e:
        logger.warning("search_artist :: error :: %s :: %s", query, e)
        return SearchOutcome(artist, query, SearchStatus.FAILED, error=str(e))
    if not uris:
        logger.info("search_artist :: no match :: %s", query)
        return SearchOutcome(artist, query, SearchStatus.NO_MATCH)
    logger.info("search_artist :: success :: %s -> %s", query, uris[0])
    return SearchOutcome(artist, query, SearchStatus.MATCH, uri=uris[0])


async def search_all_artists(tokens: TokenManager, track: TrackRecord) -> List[SearchOutcome]:
    """Fire one search per artist concurrently; outcomes keep credit order."""
    return list(
        await asyncio.gather(
            *(search_artist(tokens, artist, track.name) for artist in split_artists(track.artists))
        )
    )


async def resolve_track(tokens: TokenManager, track: TrackRecord) -> Optional[str]:
    """Return the URI of the first matching artist search, or None."""
    outcomes = await search_all_artists(tokens, track)
    for outcome in outcomes:
        if outcome.matched:
            return outcome.uri
    failed = sum(1 for o in outcomes if o.status is SearchStatus.FAILED)
    logger.info(
        "resolve_track :: no match for %r (%d queries, %d failed)",
        track.name,
        len(outcomes),
        failed,
    )
    return None
