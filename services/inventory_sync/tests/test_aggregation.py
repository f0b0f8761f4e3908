from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.services.aggregation import (
    CountRecord,
    InventoryKey,
    SaleEvent,
    SalesKey,
    aggregate_inventory,
    aggregate_sales,
    lookup_sales,
    sales_key,
)

T1 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)
T2 = T1 + timedelta(hours=6)


class TestAggregateInventory:
    def test_keeps_only_latest_count(self):
        loc, prod, var = uuid4(), uuid4(), uuid4()
        counts = [
            CountRecord(loc, prod, var, quantity=40, counted_at=T2),
            CountRecord(loc, prod, var, quantity=12, counted_at=T1),
        ]

        result = aggregate_inventory(counts)

        assert list(result) == [InventoryKey(loc, prod, var)]
        assert result[InventoryKey(loc, prod, var)].quantity == 40

    def test_latest_wins_regardless_of_input_order(self):
        loc, prod = uuid4(), uuid4()
        counts = [
            CountRecord(loc, prod, None, quantity=12, counted_at=T1),
            CountRecord(loc, prod, None, quantity=40, counted_at=T2),
        ]

        assert aggregate_inventory(counts)[InventoryKey(loc, prod, None)].quantity == 40

    def test_other_states_are_ignored(self):
        loc, prod = uuid4(), uuid4()
        counts = [
            CountRecord(loc, prod, None, quantity=5, state="IN_STOCK", counted_at=T1),
            CountRecord(loc, prod, None, quantity=99, state="IN_TRANSIT_TO", counted_at=T2),
            CountRecord(uuid4(), prod, None, quantity=7, state="WASTE", counted_at=T2),
        ]

        result = aggregate_inventory(counts)

        assert len(result) == 1
        assert result[InventoryKey(loc, prod, None)].quantity == 5

    def test_negative_quantity_is_clamped(self):
        loc, prod = uuid4(), uuid4()

        result = aggregate_inventory([CountRecord(loc, prod, None, quantity=-3, counted_at=T1)])

        assert result[InventoryKey(loc, prod, None)].quantity == 0

    def test_timestamped_count_beats_untimestamped(self):
        loc, prod = uuid4(), uuid4()
        counts = [
            CountRecord(loc, prod, None, quantity=8, counted_at=T1),
            CountRecord(loc, prod, None, quantity=1, counted_at=None),
        ]

        assert aggregate_inventory(counts)[InventoryKey(loc, prod, None)].quantity == 8

    def test_variation_and_product_level_rows_are_separate(self):
        loc, prod, var = uuid4(), uuid4(), uuid4()
        counts = [
            CountRecord(loc, prod, None, quantity=3, counted_at=T1),
            CountRecord(loc, prod, var, quantity=4, counted_at=T1),
        ]

        assert len(aggregate_inventory(counts)) == 2


class TestAggregateSales:
    def test_sums_per_item_and_location(self):
        loc, prod, var = uuid4(), uuid4(), uuid4()
        events = [
            SaleEvent(loc, prod, var, 10),
            SaleEvent(loc, prod, var, 11),
            SaleEvent(loc, prod, None, 4),
        ]

        result = aggregate_sales(events, window_days=14)

        assert result[SalesKey(var, loc)].total_quantity == 21
        assert result[SalesKey(var, loc)].per_day == 1.5
        assert result[SalesKey(prod, loc)].total_quantity == 4

    def test_events_without_item_are_skipped(self):
        result = aggregate_sales([SaleEvent(uuid4(), None, None, 3)], window_days=7)

        assert result == {}

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            aggregate_sales([], window_days=0)


class TestSalesKeySymmetry:
    def test_aggregate_then_lookup_reproduces_totals(self):
        loc, prod, var = uuid4(), uuid4(), uuid4()
        events = [SaleEvent(loc, prod, var, q) for q in (2, 3, 5)]

        aggregates = aggregate_sales(events, window_days=14)
        found = lookup_sales(aggregates, prod, var, loc, window_days=14)

        assert found.total_quantity == 10

    def test_product_level_lookup(self):
        loc, prod = uuid4(), uuid4()
        aggregates = aggregate_sales([SaleEvent(loc, prod, None, 6)], window_days=14)

        assert lookup_sales(aggregates, prod, None, loc, window_days=14).total_quantity == 6

    def test_key_prefers_variation(self):
        prod, var, loc = uuid4(), uuid4(), uuid4()

        assert sales_key(prod, var, loc) == SalesKey(var, loc)
        assert sales_key(prod, None, loc) == SalesKey(prod, loc)
        assert sales_key(None, None, loc) is None

    def test_falls_back_to_sales_without_location(self):
        loc, prod = uuid4(), uuid4()
        aggregates = aggregate_sales([SaleEvent(None, prod, None, 9)], window_days=14)

        assert lookup_sales(aggregates, prod, None, loc, window_days=14).total_quantity == 9

    def test_location_specific_sales_win(self):
        loc, prod = uuid4(), uuid4()
        aggregates = aggregate_sales(
            [SaleEvent(None, prod, None, 9), SaleEvent(loc, prod, None, 2)], window_days=14
        )

        assert lookup_sales(aggregates, prod, None, loc, window_days=14).total_quantity == 2

    def test_missing_sales_are_zero(self):
        found = lookup_sales({}, uuid4(), uuid4(), uuid4(), window_days=14)

        assert found.total_quantity == 0
        assert found.per_day == 0
