"""Replenishment rules: units per case, minimum stock and suggested order.

Rules resolve in three tiers and the first hit wins:

1. exact product-name overrides (fixed values that never scale with sales)
2. keyword tokens found in the name (brands first, then pack and bottle sizes)
3. a dynamic category formula driven by sales velocity and lead time
"""
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from app.utils.numeric import to_float

DEFAULT_DAYS_OF_SUPPLY = 7
UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True)
class ProductRule:
    units_per_case: int
    min_stock_units: Optional[int] = None
    days_of_supply: int = DEFAULT_DAYS_OF_SUPPLY


@dataclass(frozen=True)
class CategoryFormula:
    units_per_case: int
    safety_units: int
    floor: int = 0


@dataclass(frozen=True)
class InventoryRules:
    units_per_case: int
    minimum_stock: int
    days_of_supply: int
    is_dynamic: bool


@dataclass(frozen=True)
class ReorderRecommendation:
    item_id: Optional[str]
    units_per_case: int
    minimum_stock: int
    days_of_supply: int
    current_quantity: int
    sales: float
    sales_per_day: float
    suggested_order_units: int
    low_stock: bool


# Checked in this order; product names come before generic size tokens so
# "jose cuervo 200" is not shadowed by a size token, and "1750" is checked
# before "750".
PRODUCT_RULES: Tuple[Tuple[str, ProductRule], ...] = (
    ("american spirit blue", ProductRule(10, 15)),
    ("marlboro lights", ProductRule(10, 100, 14)),
    ("jameson 200ml", ProductRule(48, 15)),
    ("jameson 375ml", ProductRule(24, 15)),
    ("jose cuervo 200", ProductRule(48, 10)),
    ("juul menthol", ProductRule(8, 10)),
    ("juul virginia tobacco", ProductRule(8, 10)),
    ("juul device", ProductRule(8, 5)),
    ("bugler pouches", ProductRule(6, 12)),
    ("12 pack", ProductRule(12)),
    ("18 pack", ProductRule(18)),
    ("24 pack", ProductRule(24)),
    ("6 pack", ProductRule(6)),
    ("1750", ProductRule(6)),
    ("1.75", ProductRule(6)),
    ("750", ProductRule(12)),
)

_PRODUCT_RULES_BY_NAME = dict(PRODUCT_RULES)

CATEGORY_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("beer", ("ipa", "lager", "ale", "stout", "pilsner", "beer")),
    ("wine", ("cabernet", "pinot", "merlot", "zinfandel", "wine", "chardonnay", "sauvignon")),
    ("liquor", ("vodka", "whiskey", "tequila", "rum", "gin", "bourbon", "scotch", "brandy")),
    ("seltzer", ("seltzer", "white claw", "truly", "hard seltzer")),
    ("ready-to-drink", ("twisted tea", "high noon", "cutwater", "cocktail")),
    ("tobacco", ("cigar", "backwood", "grabba", "tobacco", "leaf")),
    ("nicotine", ("juul", "zyn", "lucy", "velo", "on!", "pouch")),
)

DEFAULT_FORMULA = CategoryFormula(units_per_case=12, safety_units=2)

CATEGORY_FORMULAS = {
    "beer": DEFAULT_FORMULA,
    "seltzer": DEFAULT_FORMULA,
    "liquor": DEFAULT_FORMULA,
    "ready-to-drink": DEFAULT_FORMULA,
    "tobacco": CategoryFormula(units_per_case=10, safety_units=5, floor=10),
    "nicotine": CategoryFormula(units_per_case=10, safety_units=5, floor=10),
}


def normalize(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def category_from_name(name: Optional[str]) -> str:
    """Guess a category from keywords in the product name"""
    normalized = normalize(name)
    if not normalized:
        return UNCATEGORIZED
    for category, keywords in CATEGORY_RULES:
        if any(keyword in normalized for keyword in keywords):
            return category
    return UNCATEGORIZED


def effective_category(name: Optional[str], category: Optional[str]) -> str:
    """The stored product category wins; the name is only a fallback"""
    return normalize(category) or category_from_name(name)


def _dynamic_minimum(category: str, avg_daily_sales: float, lead_time_days: float) -> Tuple[int, int]:
    formula = CATEGORY_FORMULAS.get(category, DEFAULT_FORMULA)
    minimum = math.ceil(avg_daily_sales * lead_time_days + formula.safety_units)
    return formula.units_per_case, max(formula.floor, minimum)


def match_product_rule(name: str) -> Optional[ProductRule]:
    rule = _PRODUCT_RULES_BY_NAME.get(name)
    if rule is not None:
        return rule
    for keyword, rule in PRODUCT_RULES:
        if keyword in name:
            return rule
    return None


def compute_rules(
    item_name: Optional[str],
    category: Optional[str],
    avg_daily_sales,
    lead_time_days,
) -> InventoryRules:
    """Resolve case size and minimum stock for one item.

    ``category`` is normalized before use. Malformed numbers count as 0.
    A keyword rule that only fixes the case size still takes its minimum
    stock from the category formula.
    """
    name = normalize(item_name)
    category = normalize(category) or UNCATEGORIZED
    avg_daily_sales = to_float(avg_daily_sales)
    lead_time_days = to_float(lead_time_days)

    rule = match_product_rule(name)
    if rule is not None and rule.min_stock_units is not None:
        return InventoryRules(rule.units_per_case, rule.min_stock_units, rule.days_of_supply, False)

    units_per_case, minimum = _dynamic_minimum(category, avg_daily_sales, lead_time_days)
    if rule is not None:
        return InventoryRules(rule.units_per_case, minimum, rule.days_of_supply, True)
    return InventoryRules(units_per_case, minimum, DEFAULT_DAYS_OF_SUPPLY, True)


def suggested_order_units(minimum_stock: int, current_quantity: int, units_per_case: int) -> int:
    """Units to order, rounded up to whole cases when sold by the case"""
    units = max(minimum_stock - current_quantity, 0)
    if units > 0 and units_per_case > 1:
        units = math.ceil(units / units_per_case) * units_per_case
    return units


def compute_recommendation(
    item_id: Optional[str],
    item_name: Optional[str],
    category: Optional[str],
    current_quantity,
    sales_total,
    window_days: int,
    lead_time_days,
) -> ReorderRecommendation:
    quantity = max(int(to_float(current_quantity)), 0)
    sales = to_float(sales_total)
    per_day = sales / window_days if window_days > 0 else 0.0

    rules = compute_rules(item_name, category, per_day, lead_time_days)
    return ReorderRecommendation(
        item_id=item_id,
        units_per_case=rules.units_per_case,
        minimum_stock=rules.minimum_stock,
        days_of_supply=rules.days_of_supply,
        current_quantity=quantity,
        sales=sales,
        sales_per_day=per_day,
        suggested_order_units=suggested_order_units(rules.minimum_stock, quantity, rules.units_per_case),
        low_stock=quantity < rules.minimum_stock,
    )
