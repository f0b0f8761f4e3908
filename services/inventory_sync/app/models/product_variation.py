from sqlalchemy import Column, Text, Numeric, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from app.db.database import Base


class ProductVariation(Base):
    __tablename__ = "product_variations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    external_variation_id = Column(Text, unique=True)
    name = Column(Text)
    sku = Column(Text)
    price = Column(Numeric(12, 2))  # major currency units
    synced_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_variations_product", "product_id"),
    )

    product = relationship("Product", back_populates="variations")
