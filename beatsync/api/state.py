"""Shared application state (injected into routes)."""
from beatsync.config import STORE_PATH
from beatsync.core.document_store import DocumentStore
from beatsync.core.triggers import register_triggers


class AppState:
    def __init__(self, store: DocumentStore | None = None, *, triggers: bool = True) -> None:
        self.store = store if store is not None else DocumentStore(STORE_PATH)
        if triggers:
            register_triggers(self.store)


_state: AppState | None = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state
