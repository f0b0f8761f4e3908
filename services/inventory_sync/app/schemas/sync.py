from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SyncRequest(BaseModel):
    type: str = Field(
        default="full",
        pattern="^(full|products|locations|sales|inventory)$",
        description="What to sync",
        examples=["full"],
    )


class SyncResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = Field(..., description="Whether the sync completed")
    type: str = Field(..., description="Sync type that ran", examples=["full"])
    duration_seconds: Optional[float] = Field(None, description="Wall-clock duration", examples=[42.5])
    locations: Optional[int] = Field(None, description="Location rows written")
    products: Optional[int] = Field(None, description="Product rows written")
    variations: Optional[int] = Field(None, description="Variation rows written")
    inventory: Optional[int] = Field(None, description="Inventory rows written")
    sales: Optional[int] = Field(None, description="Sale rows written")
