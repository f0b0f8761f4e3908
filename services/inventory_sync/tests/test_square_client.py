import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.services.errors import RemoteAPIError, SyncError
from app.services.square_client import SquareClient
from factories import catalog_category, catalog_item, catalog_variation


def make_client(handler, token="test-token"):
    return SquareClient(
        access_token=token,
        base_url="https://square.test/v2",
        transport=httpx.MockTransport(handler),
    )


class TestHeaders:
    @pytest.mark.asyncio
    async def test_sends_bearer_and_version_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"locations": []})

        await make_client(handler).list_locations()

        assert seen[0].headers["Authorization"] == "Bearer test-token"
        assert seen[0].headers["Square-Version"] == "2023-08-16"

    @pytest.mark.asyncio
    async def test_missing_token_fails_fast(self):
        client = SquareClient(access_token=None, base_url="https://square.test/v2")
        client.access_token = None

        with pytest.raises(SyncError):
            await client.list_locations()


class TestListLocations:
    @pytest.mark.asyncio
    async def test_flattens_address(self):
        def handler(request):
            return httpx.Response(200, json={"locations": [{
                "id": "L1",
                "name": "Main Street",
                "address": {"address_line_1": "1 Main St", "locality": "Springfield", "postal_code": "12345"},
            }]})

        locations = await make_client(handler).list_locations()

        assert locations[0].id == "L1"
        assert locations[0].address == "1 Main St, Springfield, 12345"

    @pytest.mark.asyncio
    async def test_client_error_raises_remote_api_error(self):
        def handler(request):
            return httpx.Response(401, json={"errors": [{"code": "UNAUTHORIZED"}]})

        with pytest.raises(RemoteAPIError) as exc_info:
            await make_client(handler).list_locations()

        assert exc_info.value.status_code == 401


class TestListCatalog:
    @pytest.mark.asyncio
    async def test_follows_cursor_and_splits_object_types(self):
        pages = {
            None: {
                "objects": [
                    catalog_category("C1", "Beer"),
                    catalog_item("I1", "IPA 6-pack", "C1", [catalog_variation("V1", "I1", sku="IPA6", amount=1299)]),
                ],
                "cursor": "page-2",
            },
            "page-2": {
                "objects": [catalog_variation("V2", "I2", amount=500), catalog_item("I2", "Cabernet")],
            },
        }
        cursors = []

        def handler(request):
            cursor = request.url.params.get("cursor")
            cursors.append(cursor)
            return httpx.Response(200, json=pages[cursor])

        snapshot = await make_client(handler).list_catalog()

        assert cursors == [None, "page-2"]
        assert [item.id for item in snapshot.items] == ["I1", "I2"]
        assert snapshot.variation_ids == ["V1", "V2"]
        assert snapshot.category_name_by_id == {"C1": "Beer"}
        assert snapshot.variations[0].price_amount == 1299


class TestRetrieveCatalogObject:
    @pytest.mark.asyncio
    async def test_not_found_returns_none(self):
        def handler(request):
            return httpx.Response(404, json={"errors": []})

        assert await make_client(handler).retrieve_catalog_object("X") is None

    @pytest.mark.asyncio
    async def test_returns_object(self):
        def handler(request):
            assert request.url.path.endswith("/catalog/object/I1")
            return httpx.Response(200, json={"object": {"id": "I1", "is_deleted": True}})

        obj = await make_client(handler).retrieve_catalog_object("I1")

        assert obj == {"id": "I1", "is_deleted": True}


class TestBatchRetrieveInventoryCounts:
    @pytest.mark.asyncio
    async def test_chunks_ids_and_collects_counts(self):
        bodies = []

        def handler(request):
            body = json.loads(request.content)
            bodies.append(body)
            counts = [
                {"catalog_object_id": i, "location_id": "L1", "state": "IN_STOCK", "quantity": "2"}
                for i in body["catalog_object_ids"]
            ]
            return httpx.Response(200, json={"counts": counts})

        ids = [f"V{i}" for i in range(250)]
        counts = await make_client(handler).batch_retrieve_inventory_counts(ids + ["V0"])

        assert sorted(len(b["catalog_object_ids"]) for b in bodies) == [50, 100, 100]
        assert len(counts) == 250
        assert all(c.quantity == 2 for c in counts)

    @pytest.mark.asyncio
    async def test_follows_cursor_within_chunk(self):
        def handler(request):
            body = json.loads(request.content)
            if "cursor" not in body:
                return httpx.Response(200, json={
                    "counts": [{"catalog_object_id": "V1", "location_id": "L1", "state": "IN_STOCK", "quantity": "1"}],
                    "cursor": "next",
                })
            return httpx.Response(200, json={
                "counts": [{"catalog_object_id": "V1", "location_id": "L2", "state": "IN_STOCK", "quantity": "3"}],
            })

        counts = await make_client(handler).batch_retrieve_inventory_counts(["V1"])

        assert [(c.location_id, c.quantity) for c in counts] == [("L1", 1), ("L2", 3)]

    @pytest.mark.asyncio
    async def test_failed_chunk_fails_whole_fetch(self):
        def handler(request):
            return httpx.Response(400, json={"errors": [{"code": "BAD_REQUEST"}]})

        with pytest.raises(RemoteAPIError):
            await make_client(handler).batch_retrieve_inventory_counts(["V1", "V2"])


class TestSearchOrders:
    @pytest.mark.asyncio
    async def test_groups_locations_and_flattens_line_items(self):
        bodies = []

        def handler(request):
            body = json.loads(request.content)
            bodies.append(body)
            if body["location_ids"][0] != "L0":
                return httpx.Response(200, json={})
            return httpx.Response(200, json={"orders": [{
                "id": "O1",
                "location_id": "L0",
                "closed_at": "2026-10-10T12:00:00Z",
                "line_items": [
                    {"uid": "a", "catalog_object_id": "V1", "quantity": "2", "total_money": {"amount": 2598}},
                    {"catalog_object_id": "V2", "quantity": "1"},
                ],
            }]})

        end_at = datetime(2026, 10, 19, tzinfo=timezone.utc)
        lines = await make_client(handler).search_orders(
            [f"L{i}" for i in range(12)], end_at - timedelta(days=14), end_at
        )

        assert [len(b["location_ids"]) for b in bodies] == [10, 2]
        assert bodies[0]["query"]["filter"]["state_filter"] == {"states": ["COMPLETED"]}
        assert bodies[0]["query"]["filter"]["date_time_filter"]["closed_at"]["end_at"] == "2026-10-19T00:00:00Z"
        assert [line.external_id for line in lines] == ["O1::a", "O1::noluid"]
        assert lines[0].quantity == 2
        assert lines[0].total_money_cents == 2598

    @pytest.mark.asyncio
    async def test_requires_locations(self):
        def handler(request):
            raise AssertionError("no request expected")

        now = datetime.now(timezone.utc)
        with pytest.raises(ValueError):
            await make_client(handler).search_orders([], now, now)
