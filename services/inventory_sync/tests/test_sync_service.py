from datetime import datetime, timedelta, timezone

import pytest

from app.models.catalog_mapping import CatalogMapping
from app.models.inventory import InventoryRecord
from app.models.location import Location
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.models.sale import SaleRecord
from app.services.errors import RemoteAPIError, UnknownSyncTypeError
from app.services.sync_service import SyncService
from factories import FakeSquareClient, catalog_category, catalog_item, catalog_variation


def iso(dt):
    return dt.isoformat().replace("+00:00", "Z")


def store_client(**overrides):
    now = datetime.now(timezone.utc)
    data = dict(
        locations=[{"id": "L1", "name": "Main Street"}],
        objects=[
            catalog_category("C1", "Beer"),
            catalog_item("I1", "IPA 6-pack", "C1", [catalog_variation("V1", "I1", amount=1299)]),
            catalog_item("I2", "Cabernet"),
        ],
        counts=[
            {"catalog_object_id": "V1", "location_id": "L1", "state": "IN_STOCK", "quantity": "5",
             "calculated_at": iso(now - timedelta(hours=5))},
            {"catalog_object_id": "V1", "location_id": "L1", "state": "IN_STOCK", "quantity": "3",
             "calculated_at": iso(now - timedelta(hours=1))},
            {"catalog_object_id": "V1", "location_id": "L1", "state": "IN_TRANSIT_TO", "quantity": "50",
             "calculated_at": iso(now)},
            {"catalog_object_id": "I2", "location_id": "L1", "state": "IN_STOCK", "quantity": "4",
             "calculated_at": iso(now)},
            {"catalog_object_id": "GONE", "location_id": "L1", "state": "IN_STOCK", "quantity": "2",
             "calculated_at": iso(now)},
            {"catalog_object_id": "V1", "location_id": "L9", "state": "IN_STOCK", "quantity": "7",
             "calculated_at": iso(now)},
        ],
        orders=[{
            "id": "O1",
            "location_id": "L1",
            "closed_at": iso(now - timedelta(days=1)),
            "line_items": [
                {"uid": "a", "catalog_object_id": "V1", "quantity": "3", "total_money": {"amount": 3897}},
                {"uid": "b", "catalog_object_id": "I2", "quantity": "1"},
                {"uid": "c", "quantity": "1"},
            ],
        }],
    )
    data.update(overrides)
    return FakeSquareClient(**data)


class TestFullSync:
    @pytest.mark.asyncio
    async def test_writes_catalog_inventory_and_sales(self, db_session):
        summary = await SyncService(db_session, client=store_client()).run("full")

        assert summary["type"] == "full"
        assert summary["locations"] == 1
        assert summary["products"] == 2
        assert summary["variations"] == 1
        assert summary["inventory"] == 3
        assert summary["sales"] == 2

        ipa = db_session.query(Product).filter(Product.external_id == "I1").one()
        assert ipa.category == "Beer"
        variation = db_session.query(ProductVariation).one()
        row = db_session.query(InventoryRecord).filter(InventoryRecord.variation_id == variation.id).one()
        assert row.quantity == 3

        fallback = db_session.query(Product).filter(Product.external_id == "GONE").one()
        assert fallback.name == "Imported GONE"

        sale = db_session.query(SaleRecord).filter(SaleRecord.external_id == "O1::a").one()
        assert sale.variation_id == variation.id
        assert sale.product_id == ipa.id
        assert sale.quantity == 3
        assert float(sale.unit_price) == 12.99

    @pytest.mark.asyncio
    async def test_rerun_replaces_rows(self, db_session):
        await SyncService(db_session, client=store_client()).run("full")
        await SyncService(db_session, client=store_client()).run("full")

        assert db_session.query(Product).count() == 3
        assert db_session.query(InventoryRecord).count() == 3
        assert db_session.query(SaleRecord).count() == 2

    @pytest.mark.asyncio
    async def test_inventory_fetch_failure_is_fatal(self, db_session):
        client = store_client()

        async def failing_counts(ids):
            raise RemoteAPIError("Failed to fetch inventory batch", 500, "oops")

        client.batch_retrieve_inventory_counts = failing_counts

        with pytest.raises(RemoteAPIError):
            await SyncService(db_session, client=client).run("full")

        assert db_session.query(InventoryRecord).count() == 0

    @pytest.mark.asyncio
    async def test_no_locations_skips_order_search(self, db_session):
        client = store_client(locations=[], counts=[], orders=[])

        summary = await SyncService(db_session, client=client).run("full")

        assert summary["sales"] == 0
        assert "search_orders" not in client.calls


    @pytest.mark.asyncio
    async def test_negative_sale_quantity_is_stored_as_zero(self, db_session):
        closed_at = iso(datetime.now(timezone.utc) - timedelta(days=1))
        client = store_client(orders=[{
            "id": "O2",
            "location_id": "L1",
            "closed_at": closed_at,
            "line_items": [
                {"uid": "r", "catalog_object_id": "V1", "quantity": "-1", "total_money": {"amount": -1299}},
            ],
        }])

        await SyncService(db_session, client=client).run("full")

        sale = db_session.query(SaleRecord).filter(SaleRecord.external_id == "O2::r").one()
        assert sale.quantity == 0
        assert sale.unit_price is None


class TestPartialSync:
    @pytest.mark.asyncio
    async def test_locations_only(self, db_session):
        client = store_client()

        summary = await SyncService(db_session, client=client).run("locations")

        assert summary == {"type": "locations", "duration_seconds": summary["duration_seconds"], "locations": 1}
        assert db_session.query(Location).count() == 1
        assert client.calls == ["list_locations"]

    @pytest.mark.asyncio
    async def test_inventory_after_catalog(self, db_session):
        service = SyncService(db_session, client=store_client())
        await service.run("locations")
        await service.run("products")

        summary = await service.run("inventory")

        assert summary["inventory"] == 3

    @pytest.mark.asyncio
    async def test_unknown_type(self, db_session):
        with pytest.raises(UnknownSyncTypeError):
            await SyncService(db_session, client=store_client()).run("everything")


class TestHandleCatalogChange:
    @pytest.mark.asyncio
    async def test_deleted_object_loses_mapping(self, db_session):
        client = store_client(catalog_objects={"I2": {"id": "I2", "is_deleted": True}})
        service = SyncService(db_session, client=client)
        await service.run("full")
        assert db_session.get(CatalogMapping, "I2") is not None

        assert await service.handle_catalog_change("I2") is True
        assert db_session.get(CatalogMapping, "I2") is None

    @pytest.mark.asyncio
    async def test_changed_object_is_left_for_next_sync(self, db_session):
        client = store_client(catalog_objects={"I1": {"id": "I1", "is_deleted": False}})
        service = SyncService(db_session, client=client)
        service.resolver.resolve_product_ids(["I1"])

        assert await service.handle_catalog_change("I1") is False
        assert db_session.get(CatalogMapping, "I1") is not None
