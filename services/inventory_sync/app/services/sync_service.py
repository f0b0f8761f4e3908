"""Orchestrates one sync run: fetch from Square, write to the database"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import asyncio
import logging
import time

from sqlalchemy.orm import Session

from app.config import settings
from app.schemas.square import CatalogSnapshot
from app.services.catalog_index import CatalogIndex
from app.services.catalog_sync import CatalogSyncService
from app.services.errors import UnknownSyncTypeError
from app.services.identity_resolver import IdentityResolver
from app.services.inventory_sync import InventorySyncService
from app.services.sales_sync import SalesSyncService
from app.services.square_client import SquareClient, get_square_client

logger = logging.getLogger(__name__)

SYNC_TYPES = ("full", "products", "locations", "sales", "inventory")


class SyncService:
    """Runs full or partial syncs against one database session.

    Fetches with no data dependency run concurrently. Writes run in order:
    locations and products before variations, and the catalog before the
    inventory and sales rows that reference it.
    """

    def __init__(self, db: Session, client: Optional[SquareClient] = None, window_days: Optional[int] = None):
        self.db = db
        self.client = client or get_square_client()
        self.window_days = window_days or settings.sales_window_days
        self.resolver = IdentityResolver(db)
        self.catalog = CatalogSyncService(db, self.resolver)
        self.inventory = InventorySyncService(db, self.resolver)
        self.sales = SalesSyncService(db, self.resolver)

    def _sales_window(self):
        end_at = datetime.now(timezone.utc)
        return end_at - timedelta(days=self.window_days), end_at

    async def _write_catalog(self, snapshot: CatalogSnapshot) -> Dict[str, int]:
        products = await self.catalog.sync_products(snapshot.items, snapshot.category_name_by_id)
        variations = await self.catalog.sync_variations(snapshot.variations)
        return {"products": products, "variations": variations}

    async def _fetch_orders(self, location_ids: List[str]):
        if not location_ids:
            logger.info("No locations synced; skipping order search")
            return []
        start_at, end_at = self._sales_window()
        return await self.client.search_orders(location_ids, start_at, end_at)

    async def sync_locations(self) -> Dict[str, int]:
        locations = await self.client.list_locations()
        return {"locations": await self.catalog.sync_locations(locations)}

    async def sync_products(self) -> Dict[str, int]:
        snapshot = await self.client.list_catalog()
        return await self._write_catalog(snapshot)

    async def sync_inventory(self) -> Dict[str, int]:
        index = CatalogIndex.load(self.db)
        counts = await self.client.batch_retrieve_inventory_counts(list(index.variations))
        return {"inventory": await self.inventory.sync_inventory(counts, index)}

    async def sync_sales(self) -> Dict[str, int]:
        index = CatalogIndex.load(self.db)
        lines = await self._fetch_orders(list(index.locations))
        return {"sales": await self.sales.sync_sales(lines, index)}

    async def sync_full(self) -> Dict[str, int]:
        locations, snapshot = await asyncio.gather(
            self.client.list_locations(),
            self.client.list_catalog(),
        )

        summary = {"locations": await self.catalog.sync_locations(locations)}
        summary.update(await self._write_catalog(snapshot))

        index = CatalogIndex.load(self.db)
        counts, lines = await asyncio.gather(
            self.client.batch_retrieve_inventory_counts(snapshot.variation_ids),
            self._fetch_orders(list(index.locations)),
        )

        summary["sales"] = await self.sales.sync_sales(lines, index)
        summary["inventory"] = await self.inventory.sync_inventory(counts, index)
        return summary

    async def run(self, sync_type: str = "full") -> Dict[str, Any]:
        """Run one sync and return counts per stage.

        Raises:
            UnknownSyncTypeError: ``sync_type`` is not one of SYNC_TYPES.
        """
        handlers = {
            "full": self.sync_full,
            "products": self.sync_products,
            "locations": self.sync_locations,
            "sales": self.sync_sales,
            "inventory": self.sync_inventory,
        }
        handler = handlers.get(sync_type)
        if handler is None:
            raise UnknownSyncTypeError(sync_type)

        logger.info(f"Starting {sync_type} sync")
        started = time.monotonic()
        try:
            counts = await handler()
        except Exception as e:
            logger.error(f"{sync_type} sync failed after {time.monotonic() - started:.1f}s: {e}", exc_info=True)
            raise

        duration = round(time.monotonic() - started, 2)
        logger.info(f"{sync_type} sync completed in {duration}s: {counts}")
        return {"type": sync_type, "duration_seconds": duration, **counts}

    async def handle_catalog_change(self, object_id: str) -> bool:
        """React to a change notification for one catalog object.

        Returns True when the object is gone or deleted and its mapping was
        dropped. Other changes are picked up by the next full sync.
        """
        obj = await self.client.retrieve_catalog_object(object_id)
        if obj is None or obj.get("is_deleted"):
            logger.info(f"Catalog object {object_id} deleted; removing mapping")
            self.resolver.forget(object_id)
            return True
        logger.info(f"Catalog object {object_id} changed; deferring to next full sync")
        return False
