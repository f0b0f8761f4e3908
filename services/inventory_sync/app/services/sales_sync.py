"""Store completed-order line items as sale rows"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.db.batching import write_in_batches
from app.models.sale import SaleRecord
from app.schemas.square import RemoteOrderLine
from app.services.catalog_index import CatalogIndex
from app.services.identity_resolver import IdentityResolver
from app.utils.numeric import minor_to_major

logger = logging.getLogger(__name__)


class SalesSyncService:
    """Service layer for sales writes"""

    def __init__(self, db: Session, resolver: Optional[IdentityResolver] = None):
        self.db = db
        self.resolver = resolver or IdentityResolver(db)

    async def sync_sales(self, lines: Sequence[RemoteOrderLine], index: Optional[CatalogIndex] = None) -> int:
        """Upsert sale rows keyed by ``order_id::line_uid``.

        Lines whose catalog object or location cannot be resolved are
        skipped and counted; they do not fail the sync.
        """
        if not lines:
            logger.info("No sales to sync.")
            return 0

        index = index or CatalogIndex.load(self.db)
        items = index.resolve_items(self.resolver, [line.catalog_object_id for line in lines])

        now = datetime.now(timezone.utc)
        rows = []
        skipped = 0
        for line in lines:
            item = items.get(line.catalog_object_id) if line.catalog_object_id else None
            location_id = index.location_id(line.location_id)
            if item is None or location_id is None:
                skipped += 1
                continue

            total: Optional[Decimal] = None
            unit_price: Optional[Decimal] = None
            if line.total_money_cents is not None:
                total = minor_to_major(line.total_money_cents)
                if line.quantity > 0:
                    unit_price = (total / line.quantity).quantize(Decimal("0.01"))

            rows.append({
                "external_id": line.external_id,
                "order_id": line.order_id,
                "location_id": location_id,
                "product_id": item.product_id,
                "variation_id": item.variation_id,
                "quantity": max(line.quantity, 0),
                "unit_price": unit_price,
                "total_amount": total,
                "sale_date": line.sale_date,
                "synced_at": now,
            })

        if skipped:
            logger.warning(f"Skipped {skipped} sale lines with unresolved item or location")

        written = await write_in_batches(
            self.db, SaleRecord, rows, ("external_id",),
            batch_size=settings.sales_upsert_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )
        logger.info(f"Sales sync wrote {written} rows from {len(lines)} order lines")
        return written
