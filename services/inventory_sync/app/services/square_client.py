"""Client for the Square commerce API (catalog, locations, inventory, orders)"""
import httpx
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from app.config import settings
from app.db.batching import chunked
from app.schemas.square import (
    CatalogSnapshot,
    RemoteInventoryCount,
    RemoteLocation,
    RemoteOrderLine,
)
from app.services.errors import RemoteAPIError, SyncError
from app.services.http_retry import fetch_with_retry, run_batch_workers

logger = logging.getLogger(__name__)

CATALOG_TYPES = "ITEM,ITEM_VARIATION,CATEGORY"


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


class SquareClient:
    """Fetches catalog, location, inventory and order data from Square"""

    def __init__(
        self,
        access_token: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.square_api_url).rstrip('/')
        self.access_token = access_token or settings.square_access_token
        self.api_version = settings.square_api_version
        self.timeout = settings.square_timeout_seconds
        self.retries = settings.retry_attempts
        self.backoff = settings.retry_backoff_seconds
        self.transport = transport

    def _get_headers(self) -> Dict[str, str]:
        if not self.access_token:
            raise SyncError("SQUARE_ACCESS_TOKEN is not configured")
        return {
            "Square-Version": self.api_version,
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._get_headers(),
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(self, client: httpx.AsyncClient, method: str, path: str, what: str, **kwargs) -> Dict[str, Any]:
        response = await fetch_with_retry(
            client, method, path, retries=self.retries, backoff=self.backoff, **kwargs
        )
        if response.status_code >= 400:
            raise RemoteAPIError(f"Failed to fetch {what}", response.status_code, response.text)
        return response.json()

    async def list_locations(self) -> List[RemoteLocation]:
        async with self._client() as client:
            data = await self._request(client, "GET", "/locations", "locations")
        locations = [RemoteLocation.from_api(loc) for loc in data.get("locations") or [] if loc.get("id")]
        logger.info(f"Fetched {len(locations)} locations")
        return locations

    async def list_catalog(self, types: str = CATALOG_TYPES) -> CatalogSnapshot:
        """List every catalog object of ``types``, following the cursor to the end"""
        objects: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        page = 0

        async with self._client() as client:
            while True:
                params = {"types": types}
                if cursor:
                    params["cursor"] = cursor
                data = await self._request(client, "GET", "/catalog/list", "catalog list", params=params)
                objects.extend(data.get("objects") or [])
                page += 1
                cursor = data.get("cursor")
                if not cursor:
                    break

        snapshot = CatalogSnapshot.from_objects(objects)
        logger.info(
            f"Fetched {len(objects)} catalog objects in {page} pages "
            f"({len(snapshot.items)} items, {len(snapshot.variations)} variations, {len(snapshot.categories)} categories)"
        )
        return snapshot

    async def retrieve_catalog_object(self, object_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one catalog object, or None when Square does not return it"""
        async with self._client() as client:
            response = await fetch_with_retry(
                client, "GET", f"/catalog/object/{object_id}", retries=self.retries, backoff=self.backoff
            )
        if response.status_code >= 400:
            logger.error(f"Failed to fetch catalog object {object_id}: {response.status_code} {response.text}")
            return None
        return response.json().get("object")

    async def batch_retrieve_inventory_counts(self, catalog_object_ids: List[str]) -> List[RemoteInventoryCount]:
        """Fetch inventory counts for catalog objects in parallel batches.

        Ids are split into chunks of ``inventory_batch_size``; at most
        ``inventory_batch_workers`` chunks are in flight, each worker pausing
        after every chunk. Any failed chunk fails the whole fetch.
        """
        ids = [i for i in dict.fromkeys(catalog_object_ids) if i]
        chunks = list(chunked(ids, settings.inventory_batch_size))
        if not chunks:
            return []

        async with self._client() as client:
            async def fetch_chunk(index: int, chunk: List[str]) -> List[RemoteInventoryCount]:
                counts: List[RemoteInventoryCount] = []
                cursor: Optional[str] = None
                while True:
                    body: Dict[str, Any] = {"catalog_object_ids": chunk}
                    if cursor:
                        body["cursor"] = cursor
                    data = await self._request(
                        client, "POST", "/inventory/counts/batch-retrieve", "inventory batch", json=body
                    )
                    counts.extend(RemoteInventoryCount.from_api(c) for c in data.get("counts") or [])
                    cursor = data.get("cursor")
                    if not cursor:
                        break
                logger.info(f"Fetched inventory batch {index + 1}/{len(chunks)}")
                return counts

            results = await run_batch_workers(
                chunks,
                fetch_chunk,
                max_workers=settings.inventory_batch_workers,
                delay_seconds=settings.inventory_batch_delay_seconds,
            )

        counts = [count for batch in results for count in batch]
        logger.info(f"Fetched {len(counts)} inventory counts for {len(ids)} catalog objects")
        return counts

    async def search_orders(self, location_ids: List[str], start_at: datetime, end_at: datetime) -> List[RemoteOrderLine]:
        """Fetch line items of COMPLETED orders closed within [start_at, end_at].

        Square accepts a limited number of location ids per search, so
        locations are queried in groups, each group paged by cursor.
        """
        if not location_ids:
            raise ValueError("search_orders requires at least one location id")

        lines: List[RemoteOrderLine] = []
        async with self._client() as client:
            for locs in chunked(location_ids, settings.order_location_batch):
                cursor: Optional[str] = None
                page = 0
                while True:
                    body: Dict[str, Any] = {
                        "return_entries": False,
                        "limit": settings.order_page_limit,
                        "location_ids": locs,
                        "query": {
                            "filter": {
                                "date_time_filter": {
                                    "closed_at": {"start_at": _iso(start_at), "end_at": _iso(end_at)}
                                },
                                "state_filter": {"states": ["COMPLETED"]},
                            },
                            "sort": {"sort_field": "CLOSED_AT", "sort_order": "DESC"},
                        },
                    }
                    if cursor:
                        body["cursor"] = cursor
                    data = await self._request(client, "POST", "/orders/search", "orders", json=body)
                    orders = data.get("orders") or []
                    page += 1
                    for order in orders:
                        lines.extend(RemoteOrderLine.lines_from_order(order))
                    logger.info(f"Fetched {len(orders)} orders (page {page}) for locations {', '.join(locs)}")
                    cursor = data.get("cursor")
                    if not cursor:
                        break

        logger.info(f"Fetched {len(lines)} order line items")
        return lines


# Singleton instance
_square_client: Optional[SquareClient] = None


def get_square_client() -> SquareClient:
    """Get the Square client singleton"""
    global _square_client
    if _square_client is None:
        _square_client = SquareClient()
    return _square_client
