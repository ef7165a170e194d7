"""Track records persisted under /tracks and per-artist search outcomes."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

# Field names of the persisted /tracks/{id} document
SPOTIFY_URI_FIELD = "spotifyUri"
SNAPSHOT_ID_FIELD = "spotifyPlaylistSnapshotId"


@dataclass
class TrackRecord:
    """Stored state for one purchased track: payload plus resolution outcome."""
    track: Dict[str, Any] = field(default_factory=dict)
    spotify_uri: Optional[str] = None
    playlist_snapshot_id: Optional[str] = None

    @property
    def item(self) -> Optional[str]:
        item = self.track.get("item")
        return str(item) if item is not None else None

    @property
    def name(self) -> str:
        return str(self.track.get("name") or "")

    @property
    def artists(self) -> str:
        return str(self.track.get("artists") or "")

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "TrackRecord":
        doc = doc or {}
        return cls(
            track=dict(doc.get("track") or {}),
            spotify_uri=doc.get(SPOTIFY_URI_FIELD),
            playlist_snapshot_id=doc.get(SNAPSHOT_ID_FIELD),
        )

    def to_document(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"track": dict(self.track)}
        if self.spotify_uri:
            doc[SPOTIFY_URI_FIELD] = self.spotify_uri
        if self.playlist_snapshot_id:
            doc[SNAPSHOT_ID_FIELD] = self.playlist_snapshot_id
        return doc


class SearchStatus(str, Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchOutcome:
    """Result of a single per-artist catalog search."""
    artist: str
    query: str
    status: SearchStatus
    uri: Optional[str] = None
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status is SearchStatus.MATCH
