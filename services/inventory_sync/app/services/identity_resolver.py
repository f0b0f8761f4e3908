"""Resolve remote catalog ids to canonical product ids"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.db.batching import chunked, upsert_rows
from app.models.catalog_mapping import CatalogMapping
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.services.errors import IdentityResolutionError

logger = logging.getLogger(__name__)

FALLBACK_NAME_PREFIX = "Imported "


class IdentityResolver:
    """Maps remote item/variation ids to canonical product ids.

    Lookups go, in order, through the catalog_mappings cache, canonical
    products by external id, and variations by external variation id. Ids
    still unknown get a fallback product named ``"Imported <id>"``. Every
    resolved id is then written back to the cache, so resolving the same id
    again never creates a second fallback product.
    """

    def __init__(self, db: Session, chunk_size: Optional[int] = None):
        self.db = db
        self.chunk_size = chunk_size or settings.resolver_chunk_size

    def _fetch_mappings(self, external_ids: List[str]) -> Dict[str, UUID]:
        found: Dict[str, UUID] = {}
        for number, chunk in enumerate(chunked(external_ids, self.chunk_size), start=1):
            rows = self.db.query(CatalogMapping.external_id, CatalogMapping.product_id).filter(
                CatalogMapping.external_id.in_(chunk)
            ).all()
            found.update({row.external_id: row.product_id for row in rows})
            logger.debug(f"[resolve] mapping batch {number} succeeded ({len(chunk)} ids)")
        return found

    def _fetch_products(self, external_ids: List[str]) -> Dict[str, UUID]:
        found: Dict[str, UUID] = {}
        for number, chunk in enumerate(chunked(external_ids, self.chunk_size), start=1):
            rows = self.db.query(Product.external_id, Product.id).filter(
                Product.external_id.in_(chunk)
            ).all()
            found.update({row.external_id: row.id for row in rows})
            logger.debug(f"[resolve] product batch {number} succeeded ({len(chunk)} ids)")
        return found

    def _fetch_variation_parents(self, external_ids: List[str]) -> Dict[str, UUID]:
        found: Dict[str, UUID] = {}
        for chunk in chunked(external_ids, self.chunk_size):
            rows = self.db.query(ProductVariation.external_variation_id, ProductVariation.product_id).filter(
                ProductVariation.external_variation_id.in_(chunk)
            ).all()
            found.update({row.external_variation_id: row.product_id for row in rows})
        return found

    def _insert_fallbacks(self, external_ids: List[str]) -> Dict[str, UUID]:
        now = datetime.now(timezone.utc)
        products = [
            Product(
                external_id=external_id,
                name=f"{FALLBACK_NAME_PREFIX}{external_id}",
                category=None,
                synced_at=now,
            )
            for external_id in external_ids
        ]

        logger.info(f"[resolve] Inserting {len(products)} fallback products")
        try:
            self.db.add_all(products)
            self.db.commit()
        except SQLAlchemyError as insert_err:
            self.db.rollback()
            logger.error(f"[resolve] Error inserting fallback products: {insert_err}")
            logger.info("[resolve] Retrying fetch for unresolved ids...")
            try:
                retried = self._fetch_products(external_ids)
            except SQLAlchemyError as retry_err:
                logger.error(f"[resolve] Retry fetch also failed: {retry_err}")
                raise IdentityResolutionError(
                    f"Could not create fallback products for {len(external_ids)} ids"
                ) from insert_err
            logger.info(f"[resolve] Retry fetched {len(retried)} products")
            return retried

        return {p.external_id: p.id for p in products}

    def resolve_product_ids(self, external_ids: Iterable[str]) -> Dict[str, UUID]:
        """Resolve remote catalog ids to canonical product ids.

        Args:
            external_ids: Remote item or variation ids; duplicates and empty
                values are ignored.

        Returns:
            Mapping of external id to product id. Ids that could not be
            resolved even after fallback creation are absent.

        Raises:
            IdentityResolutionError: Fallback insert failed and so did the
                follow-up fetch.
        """
        unique_ids = list(dict.fromkeys(i for i in external_ids if i))
        if not unique_ids:
            return {}

        logger.info(f"[resolve] Resolving {len(unique_ids)} unique ids")

        result = self._fetch_mappings(unique_ids)
        unresolved = [i for i in unique_ids if i not in result]
        logger.info(f"[resolve] {len(unresolved)} unresolved after mapping lookup")

        if unresolved:
            result.update(self._fetch_products(unresolved))
            unresolved = [i for i in unresolved if i not in result]

        if unresolved:
            result.update(self._fetch_variation_parents(unresolved))
            unresolved = [i for i in unresolved if i not in result]
            logger.info(f"[resolve] {len(unresolved)} still unresolved after direct lookups")

        if unresolved:
            result.update(self._insert_fallbacks(unresolved))

        mapping_rows = [
            {"external_id": external_id, "product_id": result[external_id]}
            for external_id in unique_ids
            if external_id in result
        ]
        for chunk in chunked(mapping_rows, self.chunk_size):
            upsert_rows(self.db, CatalogMapping, chunk, ("external_id",))

        missing = len(unique_ids) - len(mapping_rows)
        if missing:
            logger.warning(f"[resolve] {missing} ids could not be resolved")
        logger.info(f"[resolve] Completed. Total resolved: {len(mapping_rows)}")
        return {external_id: result[external_id] for external_id in unique_ids if external_id in result}

    def forget(self, external_id: str) -> bool:
        """Remove the cached mapping for a deleted remote object.

        The canonical product is kept; only the id mapping goes away.
        """
        deleted = self.db.query(CatalogMapping).filter(
            CatalogMapping.external_id == external_id
        ).delete(synchronize_session=False)
        self.db.commit()
        if deleted:
            logger.info(f"Removed mapping for deleted catalog object {external_id}")
        return bool(deleted)
