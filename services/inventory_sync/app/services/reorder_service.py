"""Build the location -> product -> variation reorder report"""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.db.pagination import fetch_all_rows
from app.models.inventory import InventoryRecord
from app.models.location import Location
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.models.sale import SaleRecord
from app.schemas.reorder import (
    LocationReorder,
    LowStockResponse,
    ProductReorder,
    RecommendationResponse,
    VariationReorder,
)
from app.services.aggregation import SaleEvent, aggregate_sales, lookup_sales
from app.services.reorder_rules import compute_recommendation, effective_category

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION_NAME = "(unknown location)"


class ReorderService:
    """Read-only service computing reorder recommendations from synced data"""

    def __init__(self, db: Session):
        self.db = db
        self.page_size = settings.db_page_size

    def _locations(self, location_id: Optional[UUID]) -> List[Location]:
        stmt = select(Location).order_by(Location.name, Location.id)
        if location_id is not None:
            stmt = stmt.where(Location.id == location_id)
        return fetch_all_rows(self.db, stmt, self.page_size)

    def _inventory(self, location_id: Optional[UUID]) -> List[InventoryRecord]:
        stmt = select(InventoryRecord).order_by(InventoryRecord.id)
        if location_id is not None:
            stmt = stmt.where(InventoryRecord.location_id == location_id)
        return fetch_all_rows(self.db, stmt, self.page_size)

    def _sale_events(self, since: datetime, location_id: Optional[UUID]) -> List[SaleEvent]:
        stmt = select(
            SaleRecord.location_id,
            SaleRecord.product_id,
            SaleRecord.variation_id,
            SaleRecord.quantity,
            SaleRecord.sale_date,
        ).where(SaleRecord.sale_date >= since).order_by(SaleRecord.id)
        if location_id is not None:
            stmt = stmt.where(SaleRecord.location_id == location_id)
        rows = fetch_all_rows(self.db, stmt, self.page_size, scalars=False)
        return [
            SaleEvent(row.location_id, row.product_id, row.variation_id, row.quantity or 0, row.sale_date)
            for row in rows
        ]

    def build_report(
        self,
        location_id: Optional[UUID] = None,
        window_days: Optional[int] = None,
        lead_time_days: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> LowStockResponse:
        """Compute recommendations for every inventory row, grouped by location.

        Every location is present in the result, with an empty product list
        when nothing resolves for it. A failed page read propagates; partial
        data is never reported as zero sales.
        """
        window_days = window_days or settings.sales_window_days
        lead_time_days = settings.lead_time_days if lead_time_days is None else lead_time_days
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=window_days)

        locations = self._locations(location_id)
        products: Dict[UUID, Product] = {
            p.id: p for p in fetch_all_rows(self.db, select(Product).order_by(Product.id), self.page_size)
        }
        variations: Dict[UUID, ProductVariation] = {
            v.id: v for v in fetch_all_rows(self.db, select(ProductVariation).order_by(ProductVariation.id), self.page_size)
        }
        inventory = self._inventory(location_id)
        sales = aggregate_sales(self._sale_events(since, location_id), window_days)
        logger.info(
            f"Building reorder report: {len(locations)} locations, {len(products)} products, "
            f"{len(inventory)} inventory rows, {len(sales)} sales keys"
        )

        nodes: Dict[Optional[UUID], LocationReorder] = {
            loc.id: LocationReorder(id=loc.id, name=loc.name) for loc in locations
        }
        product_nodes: Dict[tuple, ProductReorder] = {}
        skipped = 0

        for row in inventory:
            product = products.get(row.product_id)
            if product is None or product.is_deleted:
                skipped += 1
                continue

            location_key = row.location_id if row.location_id in nodes else None
            if location_key is None and None not in nodes:
                nodes[None] = LocationReorder(id=None, name=UNKNOWN_LOCATION_NAME)
            location_node = nodes[location_key]

            category = effective_category(product.name, product.category)
            node_key = (location_key, product.id)
            product_node = product_nodes.get(node_key)
            if product_node is None:
                product_node = ProductReorder(id=product.id, name=product.name, sku=product.sku, category=category)
                product_nodes[node_key] = product_node
                location_node.products.append(product_node)

            aggregate = lookup_sales(sales, row.product_id, row.variation_id, row.location_id, window_days)
            recommendation = compute_recommendation(
                item_id=str(row.variation_id or row.product_id),
                item_name=product.name,
                category=category,
                current_quantity=row.quantity,
                sales_total=aggregate.total_quantity,
                window_days=window_days,
                lead_time_days=lead_time_days,
            )
            response = RecommendationResponse.model_validate(recommendation)

            if row.variation_id is None:
                product_node.recommendation = response
                continue

            variation = variations.get(row.variation_id)
            product_node.variations.append(VariationReorder(
                id=row.variation_id,
                name=variation.name if variation else None,
                sku=variation.sku if variation else None,
                recommendation=response,
            ))

        if skipped:
            logger.warning(f"Skipped {skipped} inventory rows with missing or deleted products")

        return LowStockResponse(
            window_days=window_days,
            lead_time_days=lead_time_days,
            locations=list(nodes.values()),
        )
