"""Record shapes and enumerations for the farm store.

Records are plain dicts persisted as JSON; the TypedDicts below document the
keys each collection carries. Dates are ISO "YYYY-MM-DD" strings, timestamps
are ISO 8601 UTC strings.
"""

from typing import Literal, NotRequired, TypedDict

AnimalCategory = Literal["breeding_female", "breeding_male", "piglet", "fattening"]
AnimalStatus = Literal["active", "sick", "pregnant", "nursing", "sold", "deceased"]
HealthStatus = Literal["good", "medium", "bad"]
Priority = Literal["low", "medium", "high", "critical"]
CaseStatus = Literal["open", "in_progress", "resolved"]
GestationStatus = Literal["active", "completed", "failed"]
VaccinationStatus = Literal["pending", "completed"]
ActivityType = Literal[
    "animal_added",
    "animal_updated",
    "animal_deleted",
    "animal_sold",
    "death",
    "health_case",
    "gestation",
    "vaccination",
    "feeding",
]

CATEGORIES: tuple[str, ...] = ("breeding_female", "breeding_male", "piglet", "fattening")
ANIMAL_STATUSES: tuple[str, ...] = ("active", "sick", "pregnant", "nursing", "sold", "deceased")
TERMINAL_STATUSES: frozenset[str] = frozenset({"sold", "deceased"})
URGENT_PRIORITIES: frozenset[str] = frozenset({"high", "critical"})

# Rank used when sorting alerts (lower sorts first)
PRIORITY_RANK: dict[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}

# Fixed biological constant for due-date projection
GESTATION_DAYS = 114


class Animal(TypedDict):
    id: str
    identifier: str  # ear tag, e.g. "TR-001"
    name: str
    category: AnimalCategory
    breed: str
    birth_date: str | None
    weight: float  # kg
    status: AnimalStatus
    health_status: HealthStatus
    photo: NotRequired[str | None]
    mother_id: NotRequired[str | None]
    father_id: NotRequired[str | None]
    notes: NotRequired[str]
    created_at: str
    updated_at: str


class HealthCase(TypedDict):
    id: str
    animal_id: str
    animal_name: str  # snapshot at creation, not kept in sync
    issue: str
    description: NotRequired[str]
    priority: Priority
    status: CaseStatus
    treatment: NotRequired[str | None]
    veterinarian: NotRequired[str | None]
    photo: NotRequired[str | None]
    cost: NotRequired[float | None]
    start_date: str
    resolved_date: NotRequired[str | None]
    created_at: str


class Gestation(TypedDict):
    id: str
    sow_id: str
    sow_name: str
    boar_id: NotRequired[str | None]
    boar_name: NotRequired[str | None]
    breeding_date: str
    expected_due_date: str  # breeding_date + 114 days, stored once
    actual_due_date: NotRequired[str | None]
    status: GestationStatus
    piglet_count: NotRequired[int | None]
    piglets_survived: NotRequired[int | None]
    notes: NotRequired[str]
    created_at: str


class Vaccination(TypedDict):
    id: str
    vaccine_name: str
    animal_id: NotRequired[str | None]
    target: str  # "Bella (TR-001)" or a group description like "All piglets"
    scheduled_date: str
    completed_date: NotRequired[str | None]
    status: VaccinationStatus  # "overdue" is derived at read time
    completed_count: NotRequired[int | None]
    next_due_date: NotRequired[str | None]
    veterinarian: NotRequired[str | None]
    notes: NotRequired[str]
    created_at: str


class Activity(TypedDict):
    id: str
    type: ActivityType
    title: str
    description: str
    entity_id: str | None
    entity_type: str | None
    created_at: str


class FeedingRecord(TypedDict):
    id: str
    date: str
    category: str
    animal_count: int
    total_kg: float
    cost_per_kg: float
    total_cost: float
    notes: NotRequired[str]
    created_at: str


class FeedStock(TypedDict):
    id: str
    name: str
    current_qty: float
    max_qty: float
    unit: str
    cost_per_unit: float
    last_restocked: NotRequired[str | None]
    created_at: str


class Ingredient(TypedDict):
    name: str
    qty: float


class FeedProduction(TypedDict):
    id: str
    date: str
    ingredients: list[Ingredient]
    total_produced: float
    cost_total: float
    notes: NotRequired[str]
    created_at: str


class DailyConsumption(TypedDict):
    id: str
    date: str
    stock_id: str
    stock_name: str
    quantity: float
    animal_category: str
    animal_count: int
    created_at: str


COLLECTIONS: tuple[str, ...] = (
    "animals",
    "health_cases",
    "gestations",
    "vaccinations",
    "activities",
    "feeding_records",
    "feed_stock",
    "feed_productions",
    "daily_consumption",
)
