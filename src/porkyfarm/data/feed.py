"""Feed stock arithmetic.

Pure helpers shared by the store's feed operations and the dashboard.
Quantities are kilograms.
"""

import math

# Rough daily ration per active animal (kg)
DAILY_RATION_KG: dict[str, float] = {
    "breeding_female": 2.5,
    "breeding_male": 2.5,
    "fattening": 2.5,
    "piglet": 0.5,
}

# Reported when no animal needs feeding
NO_NEED_DAYS = 999

# Stock row that receives the output of a production batch
COMPOUND_FEED_NAME = "Compound feed"
COMPOUND_FEED_MAX_KG = 500

LOW_STOCK_HIGH = 10  # percent of capacity
LOW_STOCK_MEDIUM = 20


def stock_percent(row: dict) -> float:
    """Fill level of a stock row as a percentage of its capacity."""
    max_qty = row.get("max_qty") or 0
    if max_qty <= 0:
        return 0.0
    return row.get("current_qty", 0) / max_qty * 100


def low_stock_priority(row: dict) -> str | None:
    """"high" at or below 10% of capacity, "medium" at or below 20%, else None."""
    percent = stock_percent(row)
    if percent <= LOW_STOCK_HIGH:
        return "high"
    if percent <= LOW_STOCK_MEDIUM:
        return "medium"
    return None


def total_stock(rows: list[dict]) -> float:
    return sum(row.get("current_qty", 0) for row in rows)


def estimated_daily_need(animals: list[dict]) -> float:
    """Estimated kg of feed per day for the active herd."""
    return sum(DAILY_RATION_KG.get(a.get("category"), 0) for a in animals if a.get("status") == "active")


def days_of_stock(stock_kg: float, daily_need_kg: float) -> int:
    if daily_need_kg <= 0:
        return NO_NEED_DAYS
    return math.floor(stock_kg / daily_need_kg)


def is_compound_feed(row: dict) -> bool:
    return "compound" in row.get("name", "").lower()


def batch_cost(stock: list[dict], ingredients: list[dict]) -> float:
    """Cost of a production batch at each ingredient's stock cost per unit.

    Ingredients reference stock rows by "stock_id"; unknown ids cost nothing.
    """
    by_id = {row["id"]: row for row in stock}
    total = 0.0
    for ingredient in ingredients:
        row = by_id.get(ingredient["stock_id"])
        if row is not None:
            total += row.get("cost_per_unit", 0) * ingredient["qty"]
    return total
