"""Data models for track records, search outcomes, and credentials."""
from beatsync.models.credentials import Credentials
from beatsync.models.track import SearchOutcome, SearchStatus, TrackRecord

__all__ = [
    "Credentials",
    "SearchOutcome",
    "SearchStatus",
    "TrackRecord",
]
