"""Wire document-store create events to ingestion and reconciliation."""
from functools import partial

from beatsync.config import PURCHASES_PATH, TRACKS_PATH
from beatsync.core.document_store import DocumentStore
from beatsync.core.ingest import on_new_purchase
from beatsync.core.reconcile import on_new_track


def register_triggers(store: DocumentStore) -> None:
    store.on_create(f"{PURCHASES_PATH}/{{id}}", partial(on_new_purchase, store))
    store.on_create(f"{TRACKS_PATH}/{{id}}", partial(on_new_track, store))
