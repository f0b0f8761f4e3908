# Package exports - these allow cleaner imports like:
# from app.schemas import LowStockResponse, SyncRequest
from app.schemas.reorder import LowStockResponse, LocationReorder, ProductReorder, VariationReorder, RecommendationResponse
from app.schemas.sync import SyncRequest, SyncResponse
from app.schemas.square import (
    CatalogSnapshot,
    RemoteCatalogItem,
    RemoteCatalogVariation,
    RemoteCategory,
    RemoteInventoryCount,
    RemoteLocation,
    RemoteOrderLine,
)
