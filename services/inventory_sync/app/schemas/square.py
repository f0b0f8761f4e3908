"""Records parsed from Square API payloads.

Remote objects are loosely shaped JSON; they are normalized here, at the
fetch boundary, so the sync code downstream only sees declared fields.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, field_validator

from app.utils.numeric import to_int


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RemoteLocation(BaseModel):
    id: str
    name: str
    address: Optional[str] = None

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "RemoteLocation":
        address = obj.get("address") or {}
        parts = [
            address.get("address_line_1"),
            address.get("address_line_2"),
            address.get("locality"),
            address.get("administrative_district_level_1"),
            address.get("postal_code"),
            address.get("country"),
        ]
        full_address = ", ".join(p for p in parts if p) or None
        return cls(id=obj["id"], name=obj.get("name") or obj["id"], address=full_address)


class RemoteCategory(BaseModel):
    id: str
    name: Optional[str] = None

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "RemoteCategory":
        data = obj.get("category_data") or {}
        return cls(id=obj["id"], name=_blank_to_none(data.get("name")))


class RemoteCatalogVariation(BaseModel):
    id: str
    item_id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    upc: Optional[str] = None
    price_amount: Optional[int] = None  # minor currency units
    is_deleted: bool = False

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "RemoteCatalogVariation":
        data = obj.get("item_variation_data") or {}
        price = data.get("price_money") or {}
        amount = price.get("amount")
        return cls(
            id=obj["id"],
            item_id=data.get("item_id"),
            name=_blank_to_none(data.get("name")),
            sku=_blank_to_none(data.get("sku")),
            upc=_blank_to_none(data.get("upc")),
            price_amount=to_int(amount) if amount is not None else None,
            is_deleted=bool(obj.get("is_deleted", False)),
        )


class RemoteCatalogItem(BaseModel):
    id: str
    name: Optional[str] = None
    category_id: Optional[str] = None
    is_deleted: bool = False
    variations: List[RemoteCatalogVariation] = []

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "RemoteCatalogItem":
        data = obj.get("item_data") or {}
        category_id = data.get("category_id")
        if not category_id:
            categories = data.get("categories") or []
            if categories:
                category_id = categories[0].get("id")
        if not category_id:
            category_id = (data.get("reporting_category") or {}).get("id")
        return cls(
            id=obj["id"],
            name=_blank_to_none(data.get("name")),
            category_id=category_id or None,
            is_deleted=bool(obj.get("is_deleted", False)),
            variations=[RemoteCatalogVariation.from_api(v) for v in data.get("variations") or []],
        )


class RemoteInventoryCount(BaseModel):
    catalog_object_id: Optional[str] = None
    location_id: Optional[str] = None
    state: Optional[str] = None
    quantity: int = 0
    calculated_at: Optional[datetime] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> int:
        return to_int(value)

    @field_validator("calculated_at", mode="before")
    @classmethod
    def blank_timestamp(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @classmethod
    def from_api(cls, obj: Dict[str, Any]) -> "RemoteInventoryCount":
        return cls(
            catalog_object_id=obj.get("catalog_object_id"),
            location_id=obj.get("location_id"),
            state=obj.get("state"),
            quantity=obj.get("quantity"),
            calculated_at=obj.get("calculated_at"),
        )


class RemoteOrderLine(BaseModel):
    """One line item of a completed order, flattened with its order's fields"""
    order_id: Optional[str] = None
    line_uid: Optional[str] = None
    location_id: Optional[str] = None
    catalog_object_id: Optional[str] = None
    quantity: int = 0
    sale_date: Optional[datetime] = None
    total_money_cents: Optional[int] = None

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> int:
        return to_int(value)

    @field_validator("sale_date", mode="before")
    @classmethod
    def blank_timestamp(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @property
    def external_id(self) -> str:
        return f"{self.order_id}::{self.line_uid or 'noluid'}"

    @classmethod
    def lines_from_order(cls, order: Dict[str, Any]) -> List["RemoteOrderLine"]:
        sale_date = order.get("closed_at") or order.get("created_at")
        lines = []
        for line in order.get("line_items") or []:
            total = (line.get("total_money") or {}).get("amount")
            if total is None:
                total = (line.get("gross_sales_money") or {}).get("amount")
            lines.append(cls(
                order_id=order.get("id"),
                line_uid=line.get("uid"),
                location_id=order.get("location_id"),
                catalog_object_id=line.get("catalog_object_id"),
                quantity=line.get("quantity"),
                sale_date=sale_date,
                total_money_cents=total if isinstance(total, int) else None,
            ))
        return lines


@dataclass
class CatalogSnapshot:
    """Items, variations and categories from one catalog listing"""
    items: List[RemoteCatalogItem] = field(default_factory=list)
    variations: List[RemoteCatalogVariation] = field(default_factory=list)
    categories: List[RemoteCategory] = field(default_factory=list)

    @property
    def category_name_by_id(self) -> Dict[str, str]:
        return {c.id: c.name for c in self.categories if c.name}

    @property
    def variation_ids(self) -> List[str]:
        return [v.id for v in self.variations]

    @classmethod
    def from_objects(cls, objects: List[Dict[str, Any]]) -> "CatalogSnapshot":
        snapshot = cls()
        seen_variations = set()

        def add_variation(variation: RemoteCatalogVariation) -> None:
            if variation.id not in seen_variations:
                seen_variations.add(variation.id)
                snapshot.variations.append(variation)

        for obj in objects:
            if not obj or not obj.get("id"):
                continue
            obj_type = obj.get("type")
            if obj_type == "ITEM":
                item = RemoteCatalogItem.from_api(obj)
                snapshot.items.append(item)
                for variation in item.variations:
                    add_variation(variation)
            elif obj_type == "ITEM_VARIATION":
                add_variation(RemoteCatalogVariation.from_api(obj))
            elif obj_type == "CATEGORY":
                snapshot.categories.append(RemoteCategory.from_api(obj))
        return snapshot
