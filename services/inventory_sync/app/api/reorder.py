from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.db.database import get_db
from app.schemas.reorder import LowStockResponse
from app.services.reorder_service import ReorderService

router = APIRouter(tags=["Reorder"])


def get_reorder_service(db: Session = Depends(get_db)) -> ReorderService:
    """Dependency to get reorder service"""
    return ReorderService(db)


@router.get(
    "/low-stock",
    response_model=LowStockResponse,
    summary="Reorder recommendations",
    description="""
    Recommendations for every counted item, grouped location -> product -> variation.

    Every location is listed, with an empty product list when it has no
    resolved inventory. Suggested orders are rounded up to whole cases.
    """,
)
async def low_stock(
    location_id: Optional[UUID] = Query(None, description="Limit the report to one location"),
    window_days: Optional[int] = Query(None, gt=0, le=365, description="Sales window in days"),
    lead_time_days: Optional[float] = Query(None, ge=0, description="Days between ordering and delivery"),
    reorder_service: ReorderService = Depends(get_reorder_service),
):
    """Compute the reorder report from synced data"""
    return reorder_service.build_report(
        location_id=location_id,
        window_days=window_days,
        lead_time_days=lead_time_days,
    )
