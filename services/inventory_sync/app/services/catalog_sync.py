"""Upsert locations, canonical products and variations from the remote catalog"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.config import settings
from app.db.batching import chunked, write_in_batches
from app.models.catalog_mapping import CatalogMapping
from app.models.location import Location
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.schemas.square import RemoteCatalogItem, RemoteCatalogVariation, RemoteLocation
from app.services.identity_resolver import IdentityResolver
from app.utils.numeric import minor_to_major

logger = logging.getLogger(__name__)

# A strategy returns a category for the item, or None to defer to the next one
CategoryStrategy = Callable[[RemoteCatalogItem], Optional[str]]


class CategoryResolver:
    """Decides which category to store for a remote item.

    The remote taxonomy is sparse, so an item that arrives without a
    category keeps whatever was curated locally. Strategies are tried in
    order and the first hit wins:

    1. the remote category name
    2. the category already stored for this external id
    3. the category of the product this id was previously a variation of
    4. the most recently synced product with the same name and a category
    """

    def __init__(
        self,
        remote_names: Dict[str, str],
        by_external_id: Dict[str, str],
        by_variation_id: Dict[str, str],
        by_name: Dict[str, str],
    ):
        self.remote_names = remote_names
        self.by_external_id = by_external_id
        self.by_variation_id = by_variation_id
        self.by_name = by_name
        self.strategies: Tuple[Tuple[str, CategoryStrategy], ...] = (
            ("remote", self.from_remote),
            ("existing", self.from_existing_product),
            ("variation", self.from_previous_variation),
            ("name", self.from_same_name),
        )

    def from_remote(self, item: RemoteCatalogItem) -> Optional[str]:
        if item.category_id:
            return self.remote_names.get(item.category_id)
        return None

    def from_existing_product(self, item: RemoteCatalogItem) -> Optional[str]:
        return self.by_external_id.get(item.id)

    def from_previous_variation(self, item: RemoteCatalogItem) -> Optional[str]:
        return self.by_variation_id.get(item.id)

    def from_same_name(self, item: RemoteCatalogItem) -> Optional[str]:
        if item.name:
            return self.by_name.get(item.name)
        return None

    def resolve(self, item: RemoteCatalogItem) -> Optional[str]:
        for name, strategy in self.strategies:
            category = strategy(item)
            if category:
                if name != "remote":
                    logger.debug(f"Preserved category '{category}' for {item.id} via {name} lookup")
                return category
        return None

    @classmethod
    def load(
        cls,
        db: Session,
        items: Sequence[RemoteCatalogItem],
        category_name_by_id: Dict[str, str],
        chunk_size: int = 200,
    ) -> "CategoryResolver":
        """Preload the local categories needed to resolve ``items``"""
        ids = [item.id for item in items]
        names = list({item.name for item in items if item.name})

        by_external_id: Dict[str, str] = {}
        by_variation_id: Dict[str, str] = {}
        by_name: Dict[str, str] = {}

        for chunk in chunked(ids, chunk_size):
            rows = db.query(Product.external_id, Product.category).filter(
                Product.external_id.in_(chunk),
                Product.category.isnot(None),
            ).all()
            by_external_id.update({row.external_id: row.category for row in rows})

            rows = db.query(ProductVariation.external_variation_id, Product.category).join(
                Product, ProductVariation.product_id == Product.id
            ).filter(
                ProductVariation.external_variation_id.in_(chunk),
                Product.category.isnot(None),
            ).all()
            by_variation_id.update({row.external_variation_id: row.category for row in rows})

        for chunk in chunked(names, chunk_size):
            rows = db.query(Product.name, Product.category).filter(
                Product.name.in_(chunk),
                Product.category.isnot(None),
            ).order_by(Product.synced_at.desc().nulls_last(), Product.updated_at.desc()).all()
            for row in rows:
                # Rows are newest first; keep the first candidate per name
                by_name.setdefault(row.name, row.category)

        return cls(category_name_by_id, by_external_id, by_variation_id, by_name)


class CatalogSyncService:
    """Service layer for catalog reconciliation"""

    def __init__(self, db: Session, resolver: Optional[IdentityResolver] = None):
        self.db = db
        self.resolver = resolver or IdentityResolver(db)

    async def sync_locations(self, remote_locations: Sequence[RemoteLocation]) -> int:
        if not remote_locations:
            logger.info("No locations to upsert.")
            return 0

        rows = [
            {"external_id": loc.id, "name": loc.name, "address": loc.address}
            for loc in remote_locations
        ]
        written = await write_in_batches(
            self.db, Location, rows, ("external_id",),
            batch_size=settings.upsert_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )
        logger.info(f"Upserted {written} location(s)")
        return written

    async def sync_products(
        self,
        remote_items: Sequence[RemoteCatalogItem],
        category_name_by_id: Dict[str, str],
    ) -> int:
        """Upsert canonical products keyed by external id.

        Duplicates overwrite. A missing remote category never clears a
        category that is already known locally (see CategoryResolver).
        Deleted remote items are flagged and their id mapping is removed.
        """
        items = [item for item in remote_items if item.id]
        if not items:
            logger.info("No products to upsert.")
            return 0

        categories = CategoryResolver.load(
            self.db, items, category_name_by_id, chunk_size=settings.resolver_chunk_size
        )
        now = datetime.now(timezone.utc)
        rows = []
        for item in items:
            row = {
                "external_id": item.id,
                "name": item.name or f"Item {item.id}",
                "category": categories.resolve(item),
                "is_deleted": item.is_deleted,
                "synced_at": now,
            }
            skus = [v.sku for v in item.variations if v.sku]
            if skus:
                row["sku"] = skus[0]
            rows.append(row)

        written = await write_in_batches(
            self.db, Product, rows, ("external_id",),
            batch_size=settings.upsert_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )

        for item in items:
            if item.is_deleted:
                self.resolver.forget(item.id)

        logger.info(f"Upserted {written} products")
        return written

    def _product_ids_by_external_id(self, external_ids: List[str]) -> Dict[str, UUID]:
        found: Dict[str, UUID] = {}
        for chunk in chunked(external_ids, settings.resolver_chunk_size):
            rows = self.db.query(Product.external_id, Product.id).filter(
                Product.external_id.in_(chunk)
            ).all()
            found.update({row.external_id: row.id for row in rows})
        return found

    async def sync_variations(self, remote_variations: Sequence[RemoteCatalogVariation]) -> int:
        """Upsert variations under their already-synced parent products.

        A variation whose parent item is not a canonical product is dropped.
        Each stored variation id is also written to the mapping cache.
        """
        variations = [v for v in remote_variations if v.id]
        if not variations:
            logger.info("No variations to upsert.")
            return 0

        parents = self._product_ids_by_external_id(list({v.item_id for v in variations if v.item_id}))
        now = datetime.now(timezone.utc)
        rows = []
        orphaned = 0
        for variation in variations:
            product_id = parents.get(variation.item_id) if variation.item_id else None
            if product_id is None:
                orphaned += 1
                logger.warning(f"Skipping variation {variation.id}: parent item {variation.item_id} is not synced")
                continue
            rows.append({
                "external_variation_id": variation.id,
                "product_id": product_id,
                "name": variation.name,
                "sku": variation.sku,
                "price": minor_to_major(variation.price_amount) if variation.price_amount is not None else None,
                "synced_at": now,
            })

        written = await write_in_batches(
            self.db, ProductVariation, rows, ("external_variation_id",),
            batch_size=settings.upsert_batch_size,
            delay_seconds=settings.batch_delay_seconds,
        )

        mapping_rows = [
            {"external_id": row["external_variation_id"], "product_id": row["product_id"]}
            for row in rows
        ]
        await write_in_batches(
            self.db, CatalogMapping, mapping_rows, ("external_id",),
            batch_size=settings.resolver_chunk_size,
        )

        logger.info(f"Upserted {written} variations ({orphaned} orphaned variations skipped)")
        return written
