from sqlalchemy import Column, Text, Integer, Numeric, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
import uuid
from app.db.database import Base


class SaleRecord(Base):
    """One line item from a completed remote order."""
    __tablename__ = "sales"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(Text, unique=True, nullable=False)  # "{order_id}::{line_uid}"
    order_id = Column(Text)
    location_id = Column(Uuid(as_uuid=True), ForeignKey("locations.id", ondelete="SET NULL"))
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="SET NULL"))
    variation_id = Column(Uuid(as_uuid=True), ForeignKey("product_variations.id", ondelete="SET NULL"))
    quantity = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 2))
    total_amount = Column(Numeric(12, 2))
    sale_date = Column(DateTime(timezone=True))
    synced_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_sales_sale_date", "sale_date"),
        Index("idx_sales_location", "location_id"),
    )
