"""Core services: document store, Spotify access, resolution, reconciliation."""
from beatsync.core.document_store import DocumentStore
from beatsync.core.token_manager import TokenManager

__all__ = ["DocumentStore", "TokenManager"]
