"""Purchase webhook and manual retry sweep."""
import logging
from typing import Any, Dict, List, Union

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, field_validator

from beatsync.api.state import AppState, get_state
from beatsync.core import reconcile
from beatsync.core.ingest import save_purchase

logger = logging.getLogger(__name__)

router = APIRouter()


class PurchaseBody(BaseModel):
    """Order payload from the store; track keys vary in capitalization."""
    order_id: Union[str, int]
    tracks: List[Dict[str, Any]]

    @field_validator("order_id")
    @classmethod
    def _order_id_is_a_key(cls, value: Union[str, int]) -> str:
        """The order id becomes a store key: non-empty and without '/'."""
        key = str(value).strip()
        if not key or "/" in key:
            raise ValueError("order_id must be a non-empty id without '/'")
        return key


@router.post("/import-tracks")
async def import_tracks(body: PurchaseBody, state: AppState = Depends(get_state)):
    """Store the purchase; reconciliation continues from the create trigger."""
    order_id = str(body.order_id)
    logger.info("import_tracks :: order %s with %d tracks", order_id, len(body.tracks))
    collection = await save_purchase(state.store, order_id, body.tracks)
    return {"ok": True, "order_id": order_id, "track_ids": list(collection)}


@router.api_route("/retry-spotify", methods=["GET", "POST"])
async def retry_spotify(background_tasks: BackgroundTasks, state: AppState = Depends(get_state)):
    """Return the next page of unresolved tracks and reconcile them after responding."""
    orphans = await reconcile.find_unresolved_tracks(state.store)
    logger.info("retry_spotify :: %d unresolved tracks", len(orphans))
    background_tasks.add_task(reconcile.batch_import_tracks, state.store, orphans)
    return orphans
