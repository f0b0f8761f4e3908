"""In-memory lookup of synced locations and variations by external id"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, NamedTuple, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.db.pagination import fetch_all_rows
from app.models.location import Location
from app.models.product_variation import ProductVariation

logger = logging.getLogger(__name__)


class VariationRef(NamedTuple):
    variation_id: UUID
    product_id: UUID


class ItemRef(NamedTuple):
    product_id: UUID
    variation_id: Optional[UUID]


@dataclass
class CatalogIndex:
    locations: Dict[str, UUID] = field(default_factory=dict)
    variations: Dict[str, VariationRef] = field(default_factory=dict)

    def location_id(self, external_id: Optional[str]) -> Optional[UUID]:
        if not external_id:
            return None
        return self.locations.get(external_id)

    def variation(self, external_id: Optional[str]) -> Optional[VariationRef]:
        if not external_id:
            return None
        return self.variations.get(external_id)

    def resolve_items(self, resolver, external_ids: Iterable[str]) -> Dict[str, ItemRef]:
        """Map catalog object ids to (product, variation) pairs.

        Known variation ids resolve directly to their variation and parent.
        Everything else goes through ``resolver`` and resolves at product
        level only. Unresolvable ids are absent from the result.
        """
        resolved: Dict[str, ItemRef] = {}
        remaining = []
        for external_id in dict.fromkeys(i for i in external_ids if i):
            ref = self.variations.get(external_id)
            if ref is not None:
                resolved[external_id] = ItemRef(ref.product_id, ref.variation_id)
            else:
                remaining.append(external_id)

        if remaining:
            for external_id, product_id in resolver.resolve_product_ids(remaining).items():
                resolved[external_id] = ItemRef(product_id, None)
        return resolved

    @classmethod
    def load(cls, db: Session, page_size: Optional[int] = None) -> "CatalogIndex":
        page_size = page_size or settings.db_page_size

        locations = fetch_all_rows(
            db,
            select(Location.external_id, Location.id).order_by(Location.id),
            page_size,
            scalars=False,
        )
        variations = fetch_all_rows(
            db,
            select(
                ProductVariation.external_variation_id,
                ProductVariation.id,
                ProductVariation.product_id,
            ).order_by(ProductVariation.id),
            page_size,
            scalars=False,
        )

        index = cls(
            locations={row.external_id: row.id for row in locations},
            variations={
                row.external_variation_id: VariationRef(row.id, row.product_id)
                for row in variations
                if row.external_variation_id
            },
        )
        logger.info(f"Loaded catalog index: {len(index.locations)} locations, {len(index.variations)} variations")
        return index
