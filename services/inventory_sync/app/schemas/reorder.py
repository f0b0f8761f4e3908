from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from uuid import UUID


class RecommendationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: Optional[str] = Field(None, description="Variation id, or product id for product-level stock")
    units_per_case: int = Field(..., description="Distributor case size", examples=[12])
    minimum_stock: int = Field(..., description="Units to keep on hand", examples=[7])
    days_of_supply: int = Field(..., description="Target days of supply", examples=[7])
    current_quantity: int = Field(..., description="Units on hand", examples=[0])
    sales: float = Field(..., description="Units sold in the sales window", examples=[21])
    sales_per_day: float = Field(..., description="Average units sold per day", examples=[1.5])
    suggested_order_units: int = Field(..., description="Units to order, in whole cases", examples=[12])
    low_stock: bool = Field(..., description="On-hand quantity is below minimum stock")


class VariationReorder(BaseModel):
    id: UUID = Field(..., description="Variation UUID")
    name: Optional[str] = Field(None, description="Variation name", examples=["Regular"])
    sku: Optional[str] = Field(None, description="Variation SKU")
    recommendation: RecommendationResponse


class ProductReorder(BaseModel):
    id: UUID = Field(..., description="Product UUID")
    name: str = Field(..., description="Product name", examples=["IPA 6-pack"])
    sku: Optional[str] = Field(None, description="Product SKU")
    category: str = Field(..., description="Effective (normalized) category", examples=["beer"])
    recommendation: Optional[RecommendationResponse] = Field(
        None, description="Recommendation for product-level stock, when counted without a variation"
    )
    variations: List[VariationReorder] = Field(default_factory=list)


class LocationReorder(BaseModel):
    id: Optional[UUID] = Field(None, description="Location UUID; null for the unknown-location group")
    name: str = Field(..., description="Location name", examples=["Main Street"])
    products: List[ProductReorder] = Field(default_factory=list)


class LowStockResponse(BaseModel):
    window_days: int = Field(..., description="Sales window in days", examples=[14])
    lead_time_days: float = Field(..., description="Lead time used for minimum stock", examples=[3])
    locations: List[LocationReorder] = Field(default_factory=list)
