"""Write current on-hand quantities from remote inventory counts"""
from datetime import datetime, timezone
from typing import Optional, Sequence
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.db.batching import write_in_batches
from app.models.inventory import InventoryRecord
from app.schemas.square import RemoteInventoryCount
from app.services.aggregation import CountRecord, aggregate_inventory, is_on_hand
from app.services.catalog_index import CatalogIndex
from app.services.identity_resolver import IdentityResolver

logger = logging.getLogger(__name__)

INVENTORY_KEY = ("location_id", "product_id", "variation_id")


class InventorySyncService:
    """Service layer for inventory writes"""

    def __init__(self, db: Session, resolver: Optional[IdentityResolver] = None):
        self.db = db
        self.resolver = resolver or IdentityResolver(db)

    def resolve_counts(self, counts: Sequence[RemoteInventoryCount], index: CatalogIndex) -> Sequence[CountRecord]:
        """Attach local ids to on-hand counts; unresolvable counts are dropped"""
        on_hand = [c for c in counts if is_on_hand(c.state) and c.catalog_object_id]
        items = index.resolve_items(self.resolver, [c.catalog_object_id for c in on_hand])

        records = []
        skipped = 0
        for count in on_hand:
            location_id = index.location_id(count.location_id)
            item = items.get(count.catalog_object_id)
            if location_id is None or item is None:
                skipped += 1
                continue
            records.append(CountRecord(
                location_id=location_id,
                product_id=item.product_id,
                variation_id=item.variation_id,
                quantity=count.quantity,
                state=count.state,
                counted_at=count.calculated_at,
            ))

        if skipped:
            logger.warning(f"Skipped {skipped} inventory counts with unknown location or item")
        return records

    async def sync_inventory(
        self,
        counts: Sequence[RemoteInventoryCount],
        index: Optional[CatalogIndex] = None,
    ) -> int:
        """Replace current inventory rows with the latest on-hand counts.

        Returns the number of inventory rows written.
        """
        if not counts:
            logger.info("No inventory counts to sync.")
            return 0

        index = index or CatalogIndex.load(self.db)
        current = aggregate_inventory(self.resolve_counts(counts, index))

        now = datetime.now(timezone.utc)
        rows = [
            {
                "location_id": record.location_id,
                "product_id": record.product_id,
                "variation_id": record.variation_id,
                "quantity": record.quantity,
                "counted_at": record.counted_at,
                "updated_at": now,
            }
            for record in current.values()
        ]

        written = await write_in_batches(
            self.db, InventoryRecord, rows, INVENTORY_KEY,
            batch_size=settings.upsert_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )
        logger.info(f"Inventory sync wrote {written} rows from {len(counts)} remote counts")
        return written
