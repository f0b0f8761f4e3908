from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
import logging

from app.db.database import get_db
from app.schemas.sync import SyncRequest, SyncResponse
from app.services.sync_guard import SyncGuard, get_sync_guard
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sync",
    tags=["Sync"]
)


def get_sync_service(db: Session = Depends(get_db)) -> SyncService:
    """Dependency to get sync service"""
    return SyncService(db)


@router.post(
    "",
    response_model=SyncResponse,
    summary="Trigger a sync",
    description="""
    Run a sync from Square and wait for it to finish.

    **Types:** `full`, `products`, `locations`, `sales`, `inventory`.

    Only one sync runs at a time. A trigger while another sync is running is
    rejected with 429 and is not queued.
    """,
    responses={
        200: {"description": "Sync completed"},
        429: {"description": "A sync is already in progress"},
        500: {"description": "Sync failed"},
    }
)
async def trigger_sync(
    request: SyncRequest = SyncRequest(),
    sync_service: SyncService = Depends(get_sync_service),
    guard: SyncGuard = Depends(get_sync_guard),
):
    """Run one sync under the process-wide guard"""
    with guard.hold():
        try:
            summary = await sync_service.run(request.type)
        except Exception as e:
            logger.error(f"Manual {request.type} sync failed: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Sync failed: {e}"
            )
    return SyncResponse(success=True, **summary)


@router.post(
    "/catalog-objects/{object_id}",
    summary="Catalog object changed",
    description="Refetch one catalog object; drop its id mapping when it was deleted.",
)
async def catalog_object_changed(
    object_id: str,
    sync_service: SyncService = Depends(get_sync_service),
):
    removed = await sync_service.handle_catalog_change(object_id)
    return {"object_id": object_id, "mapping_removed": removed}
