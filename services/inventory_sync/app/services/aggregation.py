"""Reduce raw inventory counts and sale line items to per-item figures.

Sales are keyed by ``variation_id`` when present and ``product_id``
otherwise, combined with the location. The same ``sales_key`` function is
used when aggregating and when looking up, so the two sides cannot drift.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterable, NamedTuple, Optional, Tuple
from uuid import UUID

ON_HAND_STATE = "IN_STOCK"


class InventoryKey(NamedTuple):
    location_id: UUID
    product_id: UUID
    variation_id: Optional[UUID]


class SalesKey(NamedTuple):
    item_id: UUID
    location_id: Optional[UUID]  # None aggregates sales with no location


@dataclass(frozen=True)
class CountRecord:
    """A raw count already resolved to local ids"""
    location_id: UUID
    product_id: UUID
    variation_id: Optional[UUID]
    quantity: int
    state: Optional[str] = ON_HAND_STATE
    counted_at: Optional[datetime] = None

    @property
    def key(self) -> InventoryKey:
        return InventoryKey(self.location_id, self.product_id, self.variation_id)


@dataclass(frozen=True)
class SaleEvent:
    location_id: Optional[UUID]
    product_id: Optional[UUID]
    variation_id: Optional[UUID]
    quantity: float
    sale_date: Optional[datetime] = None


@dataclass
class SalesAggregate:
    total_quantity: float
    window_days: int

    @property
    def per_day(self) -> float:
        return self.total_quantity / self.window_days


def is_on_hand(state: Optional[str]) -> bool:
    return (state or "").upper() == ON_HAND_STATE


def _timestamp(record: CountRecord) -> float:
    return record.counted_at.timestamp() if record.counted_at else 0.0


def aggregate_inventory(counts: Iterable[CountRecord]) -> Dict[InventoryKey, CountRecord]:
    """Keep one current count per (location, product, variation).

    Among counts for the same key and state only the latest timestamp
    survives; older counts are dropped, never summed. Only on-hand counts
    are returned and quantities are clamped to zero.
    """
    latest: Dict[Tuple[InventoryKey, str], CountRecord] = {}
    for count in counts:
        state_key = (count.key, (count.state or "").upper())
        existing = latest.get(state_key)
        if existing is None or _timestamp(existing) < _timestamp(count):
            latest[state_key] = count

    result: Dict[InventoryKey, CountRecord] = {}
    for (key, state), count in latest.items():
        if not is_on_hand(state):
            continue
        if count.quantity < 0:
            count = CountRecord(
                count.location_id, count.product_id, count.variation_id,
                0, count.state, count.counted_at,
            )
        result[key] = count
    return result


def sales_key(product_id: Optional[UUID], variation_id: Optional[UUID], location_id: Optional[UUID]) -> Optional[SalesKey]:
    item_id = variation_id or product_id
    if item_id is None:
        return None
    return SalesKey(item_id, location_id)


def aggregate_sales(events: Iterable[SaleEvent], window_days: int) -> Dict[SalesKey, SalesAggregate]:
    """Sum sold quantities per (item, location).

    The caller supplies events already limited to the trailing window; no
    date filtering happens here.
    """
    if window_days <= 0:
        raise ValueError("window_days must be positive")

    totals: Dict[SalesKey, SalesAggregate] = {}
    for event in events:
        key = sales_key(event.product_id, event.variation_id, event.location_id)
        if key is None:
            continue
        aggregate = totals.setdefault(key, SalesAggregate(0, window_days))
        aggregate.total_quantity += event.quantity or 0
    return totals


# Each lookup strategy maps (item_id, location_id) to a key to try
LookupStrategy = Callable[[UUID, Optional[UUID]], SalesKey]

SALES_LOOKUP_STRATEGIES: Tuple[Tuple[str, LookupStrategy], ...] = (
    ("location", lambda item_id, location_id: SalesKey(item_id, location_id)),
    ("all-locations", lambda item_id, location_id: SalesKey(item_id, None)),
)


def lookup_sales(
    aggregates: Dict[SalesKey, SalesAggregate],
    product_id: UUID,
    variation_id: Optional[UUID],
    location_id: Optional[UUID],
    window_days: int,
) -> SalesAggregate:
    """Find the sales aggregate for an inventory row; zero sales when none"""
    key = sales_key(product_id, variation_id, location_id)
    if key is not None:
        for _, strategy in SALES_LOOKUP_STRATEGIES:
            aggregate = aggregates.get(strategy(key.item_id, key.location_id))
            if aggregate is not None:
                return aggregate
    return SalesAggregate(0, window_days)
