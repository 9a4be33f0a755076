"""Animal status reducer.

Health cases and gestations never write to the animals collection directly.
Their mutations emit one of the domain events below, and the store applies
whatever field updates reduce_animal_status() returns for the related animal.

Transitions:
    active   -> sick      HealthCaseOpened with high/critical priority
    sick     -> active    HealthCaseResolved when no other case is still open
    any      -> pregnant  GestationStarted
    pregnant -> nursing   GestationCompleted
    any      -> sold      AnimalSold
    any      -> deceased  AnimalDied

Sold and deceased are terminal: no event moves an animal out of them.
Conflicting states (sick and pregnant) are not reconciled; the last event wins.
"""

from dataclasses import dataclass

from porkyfarm.data.models import TERMINAL_STATUSES, URGENT_PRIORITIES


class StatusTransitionError(ValueError):
    """Raised when an update tries to move an animal out of a terminal status."""


@dataclass(frozen=True)
class HealthCaseOpened:
    animal_id: str
    case_id: str
    priority: str


@dataclass(frozen=True)
class HealthCaseResolved:
    animal_id: str
    case_id: str


@dataclass(frozen=True)
class GestationStarted:
    sow_id: str
    gestation_id: str


@dataclass(frozen=True)
class GestationCompleted:
    sow_id: str
    gestation_id: str


@dataclass(frozen=True)
class AnimalSold:
    animal_id: str


@dataclass(frozen=True)
class AnimalDied:
    animal_id: str


AnimalEvent = (
    HealthCaseOpened | HealthCaseResolved | GestationStarted | GestationCompleted | AnimalSold | AnimalDied
)


def event_animal_id(event: AnimalEvent) -> str:
    """The id of the animal an event is about."""
    if isinstance(event, GestationStarted | GestationCompleted):
        return event.sow_id
    return event.animal_id


def reduce_animal_status(animal: dict, event: AnimalEvent, open_case_count: int = 0) -> dict:
    """Compute the field updates an event causes on an animal.

    Args:
        animal: Current animal record
        event: The domain event
        open_case_count: Non-resolved health cases still open for this animal,
            not counting the one the event is about

    Returns:
        Dict of fields to merge into the animal (empty when nothing changes)
    """
    status = animal.get("status")
    if status in TERMINAL_STATUSES:
        return {}

    match event:
        case HealthCaseOpened(priority=priority) if priority in URGENT_PRIORITIES:
            health = "bad" if priority == "critical" else "medium"
            return {"status": "sick", "health_status": health}
        case HealthCaseResolved():
            if open_case_count > 0:
                return {}
            updates = {"health_status": "good"}
            if status == "sick":
                updates["status"] = "active"
            return updates
        case GestationStarted():
            return {"status": "pregnant"}
        case GestationCompleted():
            return {"status": "nursing"}
        case AnimalSold():
            return {"status": "sold"}
        case AnimalDied():
            return {"status": "deceased"}
    return {}


def check_direct_update(animal: dict, updates: dict) -> None:
    """Reject a direct edit that would move an animal out of sold/deceased.

    Raises:
        StatusTransitionError: If the animal is terminal and the update
            changes its status
    """
    current = animal.get("status")
    new = updates.get("status")
    if current in TERMINAL_STATUSES and new is not None and new != current:
        raise StatusTransitionError(f"Animal {animal.get('id')} is {current}; status cannot change to {new}")
