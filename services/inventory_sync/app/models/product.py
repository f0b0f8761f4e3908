from sqlalchemy import Column, Text, Boolean, DateTime, Index, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import uuid
from app.db.database import Base


class Product(Base):
    """Canonical product, independent of remote catalog identifiers.

    The product is the authoritative source of category for all of its
    variations. ``category`` is curated locally and survives syncs in which
    the remote catalog omits it.
    """
    __tablename__ = "products"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    external_id = Column(Text, unique=True)
    name = Column(Text, nullable=False)
    category = Column(Text)
    sku = Column(Text)
    is_deleted = Column(Boolean, nullable=False, default=False)
    synced_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_products_name", "name"),
    )

    variations = relationship("ProductVariation", back_populates="product", cascade="all, delete-orphan")
