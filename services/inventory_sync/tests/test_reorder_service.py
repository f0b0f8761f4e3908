from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.models.inventory import InventoryRecord
from app.models.location import Location
from app.models.product import Product
from app.models.product_variation import ProductVariation
from app.models.sale import SaleRecord
from app.services.reorder_service import UNKNOWN_LOCATION_NAME, ReorderService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def add_sale(db, external_id, location, product, quantity, days_ago, variation=None):
    db.add(SaleRecord(
        external_id=external_id,
        location_id=location.id,
        product_id=product.id,
        variation_id=variation.id if variation else None,
        quantity=quantity,
        sale_date=NOW - timedelta(days=days_ago),
    ))


class TestBuildReport:
    def test_ipa_six_pack_scenario(self, db_session):
        location = Location(external_id="L1", name="Main Street")
        product = Product(external_id="I1", name="IPA 6-pack", category="Beer")
        db_session.add_all([location, product])
        db_session.flush()
        db_session.add(InventoryRecord(location_id=location.id, product_id=product.id, quantity=0))
        add_sale(db_session, "O1::a", location, product, 10, days_ago=2)
        add_sale(db_session, "O2::a", location, product, 11, days_ago=9)
        db_session.commit()

        report = ReorderService(db_session).build_report(window_days=14, lead_time_days=3, now=NOW)

        assert [loc.name for loc in report.locations] == ["Main Street"]
        node = report.locations[0].products[0]
        assert node.name == "IPA 6-pack"
        assert node.category == "beer"
        rec = node.recommendation
        assert rec.sales == 21
        assert rec.sales_per_day == 1.5
        assert rec.units_per_case == 12
        assert rec.minimum_stock == 7
        assert rec.suggested_order_units == 12
        assert rec.low_stock is True

    def test_sales_outside_window_are_excluded(self, db_session):
        location = Location(external_id="L1", name="Main Street")
        product = Product(external_id="I1", name="IPA 6-pack", category="beer")
        db_session.add_all([location, product])
        db_session.flush()
        db_session.add(InventoryRecord(location_id=location.id, product_id=product.id, quantity=0))
        add_sale(db_session, "O1::a", location, product, 14, days_ago=3)
        add_sale(db_session, "O2::a", location, product, 100, days_ago=30)
        db_session.commit()

        report = ReorderService(db_session).build_report(window_days=14, lead_time_days=3, now=NOW)

        assert report.locations[0].products[0].recommendation.sales == 14

    def test_variation_rows_use_variation_sales(self, db_session):
        location = Location(external_id="L1", name="Main Street")
        product = Product(external_id="I1", name="Cabernet", category="Wine")
        db_session.add_all([location, product])
        db_session.flush()
        small = ProductVariation(product_id=product.id, external_variation_id="V1", name="375ml")
        large = ProductVariation(product_id=product.id, external_variation_id="V2", name="750ml")
        db_session.add_all([small, large])
        db_session.flush()
        db_session.add_all([
            InventoryRecord(location_id=location.id, product_id=product.id, variation_id=small.id, quantity=1),
            InventoryRecord(location_id=location.id, product_id=product.id, variation_id=large.id, quantity=30),
        ])
        add_sale(db_session, "O1::a", location, product, 28, days_ago=1, variation=small)
        db_session.commit()

        report = ReorderService(db_session).build_report(window_days=14, lead_time_days=3, now=NOW)

        product_node = report.locations[0].products[0]
        assert product_node.recommendation is None
        by_name = {v.name: v.recommendation for v in product_node.variations}
        assert by_name["375ml"].sales == 28
        assert by_name["375ml"].minimum_stock == 8
        assert by_name["375ml"].suggested_order_units == 12
        assert by_name["750ml"].sales == 0
        assert by_name["750ml"].low_stock is False

    def test_locations_without_inventory_are_listed(self, db_session):
        db_session.add_all([Location(external_id="L1", name="Airport"), Location(external_id="L2", name="Downtown")])
        db_session.commit()

        report = ReorderService(db_session).build_report(now=NOW)

        assert [(loc.name, loc.products) for loc in report.locations] == [("Airport", []), ("Downtown", [])]

    def test_filter_by_location(self, db_session):
        first = Location(external_id="L1", name="Airport")
        second = Location(external_id="L2", name="Downtown")
        product = Product(external_id="I1", name="Ice bag")
        db_session.add_all([first, second, product])
        db_session.flush()
        db_session.add_all([
            InventoryRecord(location_id=first.id, product_id=product.id, quantity=1),
            InventoryRecord(location_id=second.id, product_id=product.id, quantity=2),
        ])
        db_session.commit()

        report = ReorderService(db_session).build_report(location_id=second.id, now=NOW)

        assert [loc.name for loc in report.locations] == ["Downtown"]
        assert report.locations[0].products[0].recommendation.current_quantity == 2

    def test_rows_for_missing_location_are_grouped_under_placeholder(self, db_session):
        product = Product(external_id="I1", name="Ice bag")
        db_session.add(product)
        db_session.flush()
        db_session.add(InventoryRecord(location_id=uuid4(), product_id=product.id, quantity=4))
        db_session.commit()

        report = ReorderService(db_session).build_report(now=NOW)

        assert [loc.name for loc in report.locations] == [UNKNOWN_LOCATION_NAME]
        assert report.locations[0].id is None

    def test_deleted_products_are_left_out(self, db_session):
        location = Location(external_id="L1", name="Main Street")
        product = Product(external_id="I1", name="Old item", is_deleted=True)
        db_session.add_all([location, product])
        db_session.flush()
        db_session.add(InventoryRecord(location_id=location.id, product_id=product.id, quantity=0))
        db_session.commit()

        report = ReorderService(db_session).build_report(now=NOW)

        assert report.locations[0].products == []

    def test_defaults_come_from_settings(self, db_session):
        report = ReorderService(db_session).build_report(now=NOW)

        assert report.window_days == 14
        assert report.lead_time_days == 3
