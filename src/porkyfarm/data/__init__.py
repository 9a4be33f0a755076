"""Data modules - farm store, status rules, derived fields, dashboard."""

from porkyfarm.data import derived
from porkyfarm.data.dashboard import Dashboard, collect_alerts, compute_stats
from porkyfarm.data.derived import (
    age_label,
    describe_animal,
    expected_due_date,
    gestation_progress,
    health_score,
    vaccination_display_status,
)
from porkyfarm.data.schemas import field_errors
from porkyfarm.data.status import StatusTransitionError, reduce_animal_status
from porkyfarm.data.store import (
    DuplicateIdentifierError,
    FarmStore,
    SaveResult,
    StoreClosedError,
    UnknownCollectionError,
    UnknownStockError,
)

__all__ = [
    "derived",
    "FarmStore",
    "SaveResult",
    "StoreClosedError",
    "UnknownCollectionError",
    "DuplicateIdentifierError",
    "UnknownStockError",
    "StatusTransitionError",
    "reduce_animal_status",
    "field_errors",
    "Dashboard",
    "collect_alerts",
    "compute_stats",
    "age_label",
    "describe_animal",
    "expected_due_date",
    "gestation_progress",
    "health_score",
    "vaccination_display_status",
]
