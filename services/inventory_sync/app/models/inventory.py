from sqlalchemy import Column, Integer, DateTime, ForeignKey, Index, CheckConstraint, Uuid
from sqlalchemy.sql import func
import uuid
from app.db.database import Base


class InventoryRecord(Base):
    """Current on-hand quantity for one (location, product, variation).

    At most one row exists per composite key; sync replaces it in place.
    ``variation_id`` is null for product-level counts.
    """
    __tablename__ = "inventory"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variation_id = Column(Uuid(as_uuid=True), ForeignKey("product_variations.id", ondelete="CASCADE"))
    quantity = Column(Integer, nullable=False, default=0)
    counted_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index(
            "idx_inventory_key", "location_id", "product_id", "variation_id",
            unique=True, postgresql_nulls_not_distinct=True,
        ),
        CheckConstraint("quantity >= 0", name="inventory_quantity_non_negative"),
    )
