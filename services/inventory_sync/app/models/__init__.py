# Package exports - these allow cleaner imports like:
# from app.models import Product, ProductVariation
# Used by alembic/env.py for migration autogenerate
from app.models.location import Location
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.models.catalog_mapping import CatalogMapping
from app.models.inventory import InventoryRecord
from app.models.sale import SaleRecord
