"""Synchronization routes.

The browser calls ``POST /api/sync`` when the window regains focus, comes
back online or becomes visible, and polls ``GET /api/sync/status`` for the
sync indicator.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ...event_synchronizer import SYNC_TRIGGERS, EventSynchronizer
from ..dependencies import get_synchronizer

router = APIRouter(tags=["sync"])

@router.post("/sync")
async def trigger_sync(reason: str = "manual", synchronizer: EventSynchronizer = Depends(get_synchronizer)):
    """
    Trigger a synchronization pass.

    ``reason=manual`` runs the pass before responding. UI triggers
    (focus, online, visibility) wake the background loop and return at once.
    """
    if reason == "manual":
        synced = await synchronizer.force_sync_now()
        return {"synced": synced, **synchronizer.get_sync_status()}

    if reason not in SYNC_TRIGGERS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown sync reason '{reason}'. Expected manual, {', '.join(SYNC_TRIGGERS)}"
        )

    synchronizer.request_sync(reason)
    return JSONResponse(status_code=202, content={"status": "scheduled", "reason": reason})

@router.get("/sync/status")
async def sync_status(synchronizer: EventSynchronizer = Depends(get_synchronizer)):
    """Current synchronization state."""
    return synchronizer.get_sync_status()
