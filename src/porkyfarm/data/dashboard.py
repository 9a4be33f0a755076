"""Dashboard statistics and the prioritized alert list.

Both are computed from a store's collections for a given day. Dashboard
memoizes the result per store state and date, so repeated reads between
mutations do not rescan the collections.

Alert sources:
- Gestations due within 7 days or overdue (overdue critical, 3 days or less
  high, otherwise medium)
- Open high/critical health cases (at the case's priority)
- Feed stock at or below 10% (high) or 20% (medium) of capacity
- Vaccinations overdue (high), due within 7 days (medium) or 30 days (low)
- Piglets weighing under 8 kg (medium)

Alerts sort by priority rank, then by soonest date (undated last).
"""

import logging
from datetime import date
from typing import TypedDict

from porkyfarm.core.config import get_farm_today, settings
from porkyfarm.core.units import format_quantity, format_weight
from porkyfarm.data.derived import days_until
from porkyfarm.data.feed import (
    days_of_stock,
    estimated_daily_need,
    low_stock_priority,
    stock_percent,
    total_stock,
)
from porkyfarm.data.models import CATEGORIES, PRIORITY_RANK, TERMINAL_STATUSES

logger = logging.getLogger(__name__)

# Look-ahead windows (days)
BIRTHS_WINDOW = 14
GESTATION_ALERT_WINDOW = 7
VACCINATION_SOON = 7
VACCINATION_WINDOW = 30

# Piglets below this weight (kg) are flagged
PIGLET_MIN_WEIGHT = 8


class Alert(TypedDict):
    type: str  # gestation | health | feed | vaccination | piglet
    title: str
    description: str
    priority: str
    date: str | None  # date the alert is about, used to order ties
    entity_id: str | None


class DashboardStats(TypedDict):
    total_animals: int
    by_category: dict[str, int]
    by_status: dict[str, int]
    healthy: int
    sick: int
    active_health_cases: int
    active_gestations: int
    upcoming_births: int
    monthly_feeding_cost: float
    total_feed_stock: float
    daily_feed_need: float
    days_of_stock: int
    alert_count: int


def _plural_days(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


# =============================================================================
# Alerts
# =============================================================================


def gestation_alerts(gestations: list[dict], today: date) -> list[Alert]:
    alerts: list[Alert] = []
    for g in gestations:
        if g.get("status") != "active":
            continue
        days = days_until(g["expected_due_date"], today)
        if days > GESTATION_ALERT_WINDOW:
            continue
        if days < 0:
            priority = "critical"
            title = f"Farrowing overdue: {g['sow_name']}"
            description = f"{_plural_days(-days)} past the expected date"
        else:
            priority = "high" if days <= 3 else "medium"
            title = f"Farrowing due: {g['sow_name']}"
            description = "Expected today" if days == 0 else f"Expected in {_plural_days(days)}"
        alerts.append(
            {
                "type": "gestation",
                "title": title,
                "description": description,
                "priority": priority,
                "date": g["expected_due_date"],
                "entity_id": g["id"],
            }
        )
    return alerts


def health_alerts(cases: list[dict]) -> list[Alert]:
    return [
        {
            "type": "health",
            "title": f"Health case: {c['animal_name']}",
            "description": c["issue"],
            "priority": c["priority"],
            "date": c.get("start_date"),
            "entity_id": c["id"],
        }
        for c in cases
        if c.get("status") != "resolved" and c.get("priority") in ("high", "critical")
    ]


def feed_alerts(stock: list[dict]) -> list[Alert]:
    alerts: list[Alert] = []
    for row in stock:
        priority = low_stock_priority(row)
        if priority is None:
            continue
        alerts.append(
            {
                "type": "feed",
                "title": f"Low stock: {row['name']}",
                "description": f"{stock_percent(row):.0f}% left ({format_quantity(row['current_qty'])})",
                "priority": priority,
                "date": None,
                "entity_id": row["id"],
            }
        )
    return alerts


def _vaccination_due(v: dict) -> str | None:
    """Next date a vaccination needs attention (scheduled date, then booster)."""
    if v.get("status") != "completed":
        return v.get("scheduled_date")
    return v.get("next_due_date")


def vaccination_alerts(vaccinations: list[dict], today: date) -> list[Alert]:
    alerts: list[Alert] = []
    for v in vaccinations:
        due = _vaccination_due(v)
        if not due:
            continue
        days = days_until(due, today)
        if days > VACCINATION_WINDOW:
            continue
        if days < 0:
            priority = "high"
            title = f"Vaccination overdue: {v['vaccine_name']}"
            description = f"{v['target']}, {_plural_days(-days)} late"
        else:
            priority = "medium" if days <= VACCINATION_SOON else "low"
            title = f"Vaccination due: {v['vaccine_name']}"
            description = f"{v['target']}, in {_plural_days(days)}"
        alerts.append(
            {
                "type": "vaccination",
                "title": title,
                "description": description,
                "priority": priority,
                "date": due,
                "entity_id": v["id"],
            }
        )
    return alerts


def piglet_alerts(animals: list[dict]) -> list[Alert]:
    return [
        {
            "type": "piglet",
            "title": f"Underweight piglet: {a['name']}",
            "description": f"{a['identifier']} weighs {format_weight(a['weight'], 1)}",
            "priority": "medium",
            "date": None,
            "entity_id": a["id"],
        }
        for a in animals
        if a.get("category") == "piglet"
        and a.get("status") not in TERMINAL_STATUSES
        and a.get("weight")
        and a["weight"] < PIGLET_MIN_WEIGHT
    ]


def sort_alerts(alerts: list[Alert]) -> list[Alert]:
    """Order by priority rank, then soonest date; undated alerts go last in their tier."""
    return sorted(
        alerts,
        key=lambda a: (PRIORITY_RANK.get(a["priority"], len(PRIORITY_RANK)), a["date"] is None, a["date"] or ""),
    )


def collect_alerts(store, today: date | None = None) -> list[Alert]:
    """Every alert for the store, sorted but not truncated."""
    today = today or get_farm_today()
    alerts = (
        gestation_alerts(store.list("gestations"), today)
        + health_alerts(store.list("health_cases"))
        + feed_alerts(store.list("feed_stock"))
        + vaccination_alerts(store.list("vaccinations"), today)
        + piglet_alerts(store.list("animals"))
    )
    return sort_alerts(alerts)


# =============================================================================
# Stats
# =============================================================================


def compute_stats(store, today: date | None = None, alert_count: int | None = None) -> DashboardStats:
    """Headline numbers for the dashboard."""
    today = today or get_farm_today()
    animals = store.list("animals")
    herd = [a for a in animals if a.get("status") not in TERMINAL_STATUSES]

    by_category = dict.fromkeys(CATEGORIES, 0)
    for animal in herd:
        category = animal.get("category") or "unknown"
        by_category[category] = by_category.get(category, 0) + 1

    by_status: dict[str, int] = {}
    for animal in animals:
        status = animal.get("status") or "unknown"
        by_status[status] = by_status.get(status, 0) + 1

    gestations = store.active_gestations()
    upcoming = [g for g in gestations if days_until(g["expected_due_date"], today) <= BIRTHS_WINDOW]

    month = today.isoformat()[:7]
    monthly_cost = sum(r.get("total_cost", 0) for r in store.list("feeding_records") if r["date"].startswith(month))

    stock_kg = total_stock(store.list("feed_stock"))
    need = estimated_daily_need(animals)

    if alert_count is None:
        alert_count = len(collect_alerts(store, today))

    return {
        "total_animals": len(herd),
        "by_category": by_category,
        "by_status": by_status,
        "healthy": sum(1 for a in herd if a.get("health_status") == "good"),
        "sick": sum(1 for a in herd if a.get("status") == "sick"),
        "active_health_cases": len(store.active_health_cases()),
        "active_gestations": len(gestations),
        "upcoming_births": len(upcoming),
        "monthly_feeding_cost": monthly_cost,
        "total_feed_stock": stock_kg,
        "daily_feed_need": need,
        "days_of_stock": days_of_stock(stock_kg, need),
        "alert_count": alert_count,
    }


class Dashboard:
    """Memoized stats and alerts for one store.

    Results are cached against the store's state_key and the date, and
    recomputed on the first read after any mutation, reload or reset.
    """

    def __init__(self, store):
        self.store = store
        self._key: tuple | None = None
        self._stats: DashboardStats | None = None
        self._alerts: list[Alert] = []

    def _refresh(self, today: date | None) -> None:
        today = today or get_farm_today()
        key = (*self.store.state_key, today)
        if key == self._key:
            return
        logger.debug("Recomputing dashboard for revision %s", self.store.revision)
        alerts = collect_alerts(self.store, today)
        self._alerts = alerts
        self._stats = compute_stats(self.store, today, alert_count=len(alerts))
        self._key = key

    def stats(self, today: date | None = None) -> DashboardStats:
        self._refresh(today)
        return self._stats

    def alerts(self, today: date | None = None, limit: int | None = None) -> list[Alert]:
        """Sorted alerts, truncated to `limit` (settings.alert_limit by default)."""
        self._refresh(today)
        return self._alerts[: limit if limit is not None else settings.alert_limit]
