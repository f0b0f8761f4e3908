from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from app.db.database import Base


class CatalogMapping(Base):
    """Cache resolving a remote catalog id (item or variation) to a canonical product.

    Rows are written lazily by the identity resolver and by variation sync.
    """
    __tablename__ = "catalog_mappings"

    external_id = Column(Text, primary_key=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_catalog_mappings_product", "product_id"),
    )
