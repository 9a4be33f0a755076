"""Per-user farm store persisted as one JSON document.

Each identity (or the anonymous demo bucket) owns a single document holding
every collection. Mutations update the in-memory document, append one entry
to the activity log and write the whole document back to disk.

Usage:
    store = FarmStore.open("user-42")
    bella = store.add_animal({"identifier": "TR-001", "name": "Bella", "category": "breeding_female"})
    store.add_health_case({"animal_id": bella["id"], "issue": "Lameness", "priority": "high"})
    store.get("animals", bella["id"])["status"]  # "sick"

Saves are checked against the revision on disk: if another handle wrote the
document since this one last loaded or saved it, the save is refused and
reported through SaveResult instead of overwriting the other writer.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
import tempfile
import uuid
from dataclasses import dataclass
from datetime import UTC, date, datetime
from pathlib import Path

from porkyfarm.core.config import get_data_dir, get_farm_today, settings
from porkyfarm.data import schemas
from porkyfarm.data.demo import build_demo_document
from porkyfarm.data.derived import expected_due_date, parse_date
from porkyfarm.data.feed import COMPOUND_FEED_MAX_KG, COMPOUND_FEED_NAME, batch_cost, is_compound_feed
from porkyfarm.data.models import COLLECTIONS, TERMINAL_STATUSES
from porkyfarm.data.status import (
    AnimalDied,
    AnimalEvent,
    AnimalSold,
    GestationCompleted,
    GestationStarted,
    HealthCaseOpened,
    HealthCaseResolved,
    StatusTransitionError,
    check_direct_update,
    event_animal_id,
    reduce_animal_status,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DEMO_USER = "demo"
KEY_PREFIX = "porkyfarm_db_"

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# Activity type logged by the generic add/update/remove for each collection
_ACTIVITY_TYPES = {
    "animals": ("animal_added", "animal_updated", "animal_deleted"),
    "health_cases": ("health_case", "health_case", "health_case"),
    "gestations": ("gestation", "gestation", "gestation"),
    "vaccinations": ("vaccination", "vaccination", "vaccination"),
    "feeding_records": ("feeding", "feeding", "feeding"),
    "feed_stock": ("feeding", "feeding", "feeding"),
    "feed_productions": ("feeding", "feeding", "feeding"),
    "daily_consumption": ("feeding", "feeding", "feeding"),
}

# Fields a caller can never overwrite through update()
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


class StoreClosedError(RuntimeError):
    """Raised when a handle is used after close() or switch_user()."""


class UnknownCollectionError(KeyError):
    """Raised for a collection name the document does not have."""


class DuplicateIdentifierError(ValueError):
    """Raised when an animal identifier (ear tag) is already in use."""


class UnknownStockError(ValueError):
    """Raised when a feed production names a stock row that does not exist."""


@dataclass(frozen=True)
class SaveResult:
    """Outcome of writing the document to disk.

    ok is False when the write failed (error holds the reason) or was refused
    because the document changed on disk (conflict is True).
    """

    ok: bool
    revision: int
    conflict: bool = False
    error: str | None = None


def generate_id() -> str:
    return uuid.uuid4().hex[:16]


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string with a Z suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def storage_key(user_id: str | None) -> str:
    """Storage key for an identity: porkyfarm_db_<user> or porkyfarm_db_demo.

    Identities that are not filename-safe are replaced by a sha256 prefix.
    """
    if not user_id:
        return f"{KEY_PREFIX}{DEMO_USER}"
    if not _SAFE_ID.match(user_id):
        user_id = hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:24]
    return f"{KEY_PREFIX}{user_id}"


def empty_document() -> dict:
    doc = {"schema_version": SCHEMA_VERSION, "revision": 0}
    for name in COLLECTIONS:
        doc[name] = []
    return doc


def seed_document(today: date | None = None) -> dict:
    """Demo document pre-populated with the sample herd."""
    doc = empty_document()
    doc.update(build_demo_document(today or get_farm_today()))
    return doc


def _normalize(doc: dict) -> dict:
    """Fill in anything an older or partial document is missing."""
    doc.setdefault("schema_version", SCHEMA_VERSION)
    doc.setdefault("revision", 0)
    for name in COLLECTIONS:
        if not isinstance(doc.get(name), list):
            doc[name] = []
    return doc


class FarmStore:
    """Handle on one identity's farm document.

    Create handles with FarmStore.open(); switch identity with switch_user(),
    which closes this handle and returns a fresh one.
    """

    def __init__(self, user_id: str | None, path: Path, document: dict):
        self.user_id = user_id
        self.path = path
        self._doc = document
        self._saved_revision: int | None = document["revision"] if path.exists() else None
        self._generation = 0
        self._closed = False
        self.last_save: SaveResult | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @classmethod
    def open(cls, user_id: str | None = None, data_dir: Path | None = None) -> FarmStore:
        """Open (creating on first use) the document for an identity.

        No identity opens the shared demo document, seeded with sample rows
        the first time it is created. A user's document starts empty.
        """
        directory = Path(data_dir) if data_dir is not None else get_data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{storage_key(user_id)}.json"

        document = _read_document(path)
        if document is None:
            document = seed_document() if not user_id else empty_document()
            store = cls(user_id, path, document)
            store.save()
            logger.info("Created store document %s", path.name)
            return store
        return cls(user_id, path, document)

    @property
    def is_demo(self) -> bool:
        return not self.user_id

    @property
    def revision(self) -> int:
        """Revision of the in-memory document (bumped by every mutation)."""
        return self._doc["revision"]

    @property
    def is_durable(self) -> bool:
        """True when the in-memory document matches what is on disk."""
        return self._saved_revision is not None and self._saved_revision == self.revision

    @property
    def state_key(self) -> tuple:
        """Changes whenever the in-memory document may have changed."""
        return (str(self.path), self._generation, self.revision)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def switch_user(self, user_id: str | None) -> FarmStore:
        """Close this handle and open the document for another identity."""
        self._check_open()
        self.close()
        return FarmStore.open(user_id, data_dir=self.path.parent)

    def reload(self) -> None:
        """Discard in-memory state and re-read the document from disk."""
        self._check_open()
        document = _read_document(self.path)
        if document is None:
            document = seed_document() if self.is_demo else empty_document()
            self._saved_revision = None
        else:
            self._saved_revision = document["revision"]
        self._doc = document
        self._generation += 1

    def reset(self) -> SaveResult:
        """Restore the seed (demo) or empty (user) document."""
        self._check_open()
        revision = self.revision
        self._doc = seed_document() if self.is_demo else empty_document()
        self._doc["revision"] = revision + 1
        self._generation += 1
        logger.info("Reset store document %s", self.path.name)
        return self.save()

    def save(self) -> SaveResult:
        """Write the whole document to disk atomically.

        Never raises: failures are reported in the returned SaveResult (also
        kept as last_save) and the in-memory document is left as it is.
        """
        self._check_open()
        revision = self.revision

        on_disk = _read_revision(self.path)
        if on_disk is not None and on_disk != self._saved_revision:
            logger.warning(
                "Refusing to save %s: revision on disk is %s, expected %s",
                self.path.name,
                on_disk,
                self._saved_revision,
            )
            self.last_save = SaveResult(ok=False, revision=revision, conflict=True)
            return self.last_save

        try:
            _write_atomic(self.path, self._doc)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save %s: %s", self.path.name, e)
            self.last_save = SaveResult(ok=False, revision=revision, error=str(e))
            return self.last_save

        self._saved_revision = revision
        self.last_save = SaveResult(ok=True, revision=revision)
        return self.last_save

    # =========================================================================
    # Generic collection operations
    # =========================================================================

    def list(self, collection: str) -> list[dict]:
        return [dict(row) for row in self._rows(collection)]

    def get(self, collection: str, id: str) -> dict | None:
        row = self._find(collection, id)
        return dict(row) if row is not None else None

    def add(self, collection: str, payload: dict, *, title: str | None = None, description: str = "") -> dict:
        """Append a record with a new id and creation timestamp.

        Adding to "activities" logs the entry itself; any other collection
        also gets one activity describing the addition.
        """
        rows = self._rows(collection)
        if collection == "activities":
            entry = self._log_activity(
                payload.get("type", "animal_updated"),
                payload.get("title", ""),
                payload.get("description", ""),
                payload.get("entity_id"),
                payload.get("entity_type"),
            )
            self._commit()
            return dict(entry)

        now = now_iso()
        record = {**payload, "id": generate_id(), "created_at": now}
        if collection == "animals":
            record["updated_at"] = now
        rows.append(record)
        self._log_activity(
            _ACTIVITY_TYPES[collection][0],
            title or "Record added",
            description,
            record["id"],
            collection,
        )
        self._commit()
        return dict(record)

    def update(
        self, collection: str, id: str, partial: dict, *, title: str | None = None, description: str = ""
    ) -> dict | None:
        """Merge fields into a record. Returns None when the id is unknown.

        Raises:
            StatusTransitionError: If an animal update would move a sold or
                deceased animal to another status
            DuplicateIdentifierError: If an animal update takes an identifier
                already used by another animal
        """
        row = self._find(collection, id)
        if row is None:
            return None
        if collection == "animals":
            check_direct_update(row, partial)
            identifier = partial.get("identifier")
            if identifier is not None and identifier != row.get("identifier"):
                self._check_identifier_free(identifier)
        row.update({k: v for k, v in partial.items() if k not in _PROTECTED_FIELDS})
        if "updated_at" in row:
            row["updated_at"] = now_iso()
        if collection != "activities":
            self._log_activity(
                _ACTIVITY_TYPES[collection][1],
                title or "Record updated",
                description,
                id,
                collection,
            )
        self._commit()
        return dict(row)

    def remove(self, collection: str, id: str, *, title: str | None = None, description: str = "") -> bool:
        """Delete a record. Returns whether a row was actually removed."""
        rows = self._rows(collection)
        kept = [row for row in rows if row.get("id") != id]
        if len(kept) == len(rows):
            return False
        self._doc[collection] = kept
        if collection != "activities":
            self._log_activity(
                _ACTIVITY_TYPES[collection][2],
                title or "Record deleted",
                description,
                id,
                collection,
            )
        self._commit()
        return True

    # =========================================================================
    # Animals
    # =========================================================================

    def add_animal(self, payload: dict) -> dict:
        """Validate and register an animal.

        Raises:
            pydantic.ValidationError: If the payload is invalid
            DuplicateIdentifierError: If the identifier is already used
        """
        data = schemas.AnimalCreate.model_validate(payload).model_dump(mode="json")
        self._check_identifier_free(data["identifier"])
        return self.add(
            "animals",
            data,
            title="Animal added",
            description=f"{data['name']} ({data['identifier']})",
        )

    def update_animal(self, id: str, updates: dict) -> dict | None:
        """Apply a direct edit to an animal.

        Raises:
            pydantic.ValidationError: If the updates are invalid
            StatusTransitionError: If the edit would move a sold or
                deceased animal to another status
        """
        data = schemas.AnimalUpdate.model_validate(updates).model_dump(mode="json", exclude_unset=True)
        animal = self._find("animals", id)
        if animal is None:
            return None
        return self.update("animals", id, data, title="Animal updated", description=animal["name"])

    def delete_animal(self, id: str) -> bool:
        animal = self._find("animals", id)
        name = animal["name"] if animal else ""
        return self.remove("animals", id, title="Animal deleted", description=name)

    def sell_animal(self, id: str) -> dict | None:
        """Mark an animal sold. Repeated calls leave it unchanged."""
        return self._terminal_event(AnimalSold(id), "animal_sold", "Animal sold")

    def mark_animal_deceased(self, id: str) -> dict | None:
        """Mark an animal deceased. Repeated calls leave it unchanged."""
        return self._terminal_event(AnimalDied(id), "death", "Death recorded")

    def animals_by_category(self, category: str) -> list[dict]:
        return [dict(a) for a in self._rows("animals") if a.get("category") == category]

    def _terminal_event(self, event: AnimalEvent, activity_type: str, title: str) -> dict | None:
        animal = self._find("animals", event_animal_id(event))
        if animal is None:
            return None
        if animal.get("status") in TERMINAL_STATUSES:
            return dict(animal)
        self._apply_event(event)
        self._log_activity(activity_type, title, animal["name"], animal["id"], "animals")
        self._commit()
        return dict(animal)

    def _check_identifier_free(self, identifier: str) -> None:
        if any(a.get("identifier") == identifier for a in self._rows("animals")):
            raise DuplicateIdentifierError(f"Identifier {identifier} is already in use")

    # =========================================================================
    # Health cases
    # =========================================================================

    def add_health_case(self, payload: dict) -> dict:
        """Open a health case against an animal.

        A high or critical case makes the animal sick.
        """
        data = schemas.HealthCaseCreate.model_validate(payload).model_dump(mode="json")
        animal = self._find("animals", data["animal_id"])
        name = animal["name"] if animal else "Unknown"
        data["animal_name"] = name
        data["start_date"] = data["start_date"] or get_farm_today().isoformat()
        data["resolved_date"] = None

        now = now_iso()
        record = {**data, "id": generate_id(), "created_at": now}
        self._rows("health_cases").append(record)
        self._apply_event(HealthCaseOpened(data["animal_id"], record["id"], data["priority"]))
        self._log_activity("health_case", "New health case", f"{name}: {data['issue']}", record["id"], "health_cases")
        self._commit()
        return dict(record)

    def update_health_case(self, id: str, updates: dict) -> dict | None:
        """Edit a health case. Setting status to "resolved" resolves it.

        Raises:
            pydantic.ValidationError: If the updates are invalid
            StatusTransitionError: If the case is resolved and the update
                tries to reopen it
        """
        data = schemas.HealthCaseUpdate.model_validate(updates).model_dump(mode="json", exclude_unset=True)
        case = self._find("health_cases", id)
        if case is None:
            return None
        new_status = data.get("status")
        if case["status"] == "resolved" and new_status not in (None, "resolved"):
            raise StatusTransitionError(f"Health case {id} is resolved and cannot be reopened")

        fields = {k: v for k, v in data.items() if k != "status"}
        case.update(fields)
        if new_status == "resolved" and case["status"] != "resolved":
            return self.resolve_health_case(id)
        if new_status is not None:
            case["status"] = new_status
        self._log_activity("health_case", "Health case updated", case["issue"], id, "health_cases")
        self._commit()
        return dict(case)

    def resolve_health_case(self, id: str) -> dict | None:
        """Resolve a case; the last open case resolved restores the animal."""
        case = self._find("health_cases", id)
        if case is None:
            return None
        if case["status"] == "resolved":
            return dict(case)
        case["status"] = "resolved"
        case["resolved_date"] = get_farm_today().isoformat()
        self._apply_event(HealthCaseResolved(case["animal_id"], id))
        self._log_activity(
            "health_case", "Health case resolved", f"{case['animal_name']}: {case['issue']}", id, "health_cases"
        )
        self._commit()
        return dict(case)

    def delete_health_case(self, id: str) -> bool:
        return self.remove("health_cases", id, title="Health case deleted")

    def active_health_cases(self) -> list[dict]:
        return [dict(c) for c in self._rows("health_cases") if c.get("status") != "resolved"]

    # =========================================================================
    # Gestations
    # =========================================================================

    def add_gestation(self, payload: dict) -> dict:
        """Record a service. The due date is fixed here and never recomputed."""
        data = schemas.GestationCreate.model_validate(payload).model_dump(mode="json")
        sow = self._find("animals", data["sow_id"])
        sow_name = sow["name"] if sow else "Unknown"
        if data["boar_id"] and not data["boar_name"]:
            boar = self._find("animals", data["boar_id"])
            data["boar_name"] = boar["name"] if boar else None

        record = {
            **data,
            "id": generate_id(),
            "sow_name": sow_name,
            "expected_due_date": expected_due_date(data["breeding_date"]).isoformat(),
            "actual_due_date": None,
            "status": "active",
            "piglet_count": None,
            "piglets_survived": None,
            "created_at": now_iso(),
        }
        self._rows("gestations").append(record)
        self._apply_event(GestationStarted(data["sow_id"], record["id"]))
        description = f"{sow_name} served by {data['boar_name']}" if data["boar_name"] else f"{sow_name} served"
        self._log_activity("gestation", "New gestation", description, record["id"], "gestations")
        self._commit()
        return dict(record)

    def update_gestation(self, id: str, updates: dict) -> dict | None:
        """Edit a gestation. expected_due_date and status are not editable here.

        Raises:
            pydantic.ValidationError: If the updates are invalid
        """
        partial = {k: v for k, v in updates.items() if k not in ("expected_due_date", "status")}
        data = schemas.GestationUpdate.model_validate(partial).model_dump(mode="json", exclude_unset=True)
        return self.update("gestations", id, data, title="Gestation updated")

    def complete_gestation(self, id: str, piglet_count: int, piglets_survived: int | None = None) -> dict | None:
        """Record a farrowing; the sow becomes nursing.

        Raises:
            pydantic.ValidationError: If piglets_survived exceeds piglet_count
        """
        result = schemas.GestationCompletion(piglet_count=piglet_count, piglets_survived=piglets_survived)
        gestation = self._find("gestations", id)
        if gestation is None:
            return None
        if gestation["status"] != "active":
            return dict(gestation)

        survived = result.piglets_survived if result.piglets_survived is not None else result.piglet_count
        gestation.update(
            {
                "status": "completed",
                "actual_due_date": get_farm_today().isoformat(),
                "piglet_count": result.piglet_count,
                "piglets_survived": survived,
            }
        )
        self._apply_event(GestationCompleted(gestation["sow_id"], id))
        self._log_activity(
            "gestation",
            "Farrowing recorded",
            f"{gestation['sow_name']}: {survived}/{result.piglet_count} piglets",
            id,
            "gestations",
        )
        self._commit()
        return dict(gestation)

    def fail_gestation(self, id: str, notes: str | None = None) -> dict | None:
        """Close an active gestation as failed (no farrowing)."""
        gestation = self._find("gestations", id)
        if gestation is None:
            return None
        if gestation["status"] != "active":
            return dict(gestation)
        gestation["status"] = "failed"
        if notes:
            gestation["notes"] = notes
        self._log_activity("gestation", "Gestation failed", gestation["sow_name"], id, "gestations")
        self._commit()
        return dict(gestation)

    def delete_gestation(self, id: str) -> bool:
        return self.remove("gestations", id, title="Gestation deleted")

    def active_gestations(self) -> list[dict]:
        return [dict(g) for g in self._rows("gestations") if g.get("status") == "active"]

    # =========================================================================
    # Vaccinations
    # =========================================================================

    def add_vaccination(self, payload: dict) -> dict:
        data = schemas.VaccinationCreate.model_validate(payload).model_dump(mode="json")
        if data["animal_id"] and not data["target"]:
            animal = self._find("animals", data["animal_id"])
            if animal is not None:
                data["target"] = f"{animal['name']} ({animal['identifier']})"
        data.update({"status": "pending", "completed_date": None, "completed_count": None})
        return self.add(
            "vaccinations",
            data,
            title="Vaccination scheduled",
            description=f"{data['vaccine_name']}: {data['target']}",
        )

    def complete_vaccination(
        self, id: str, completed_count: int | None = None, completed_date: date | None = None
    ) -> dict | None:
        vaccination = self._find("vaccinations", id)
        if vaccination is None:
            return None
        done = completed_date or get_farm_today()
        return self.update(
            "vaccinations",
            id,
            {"status": "completed", "completed_date": done.isoformat(), "completed_count": completed_count},
            title="Vaccination completed",
            description=f"{vaccination['vaccine_name']}: {vaccination['target']}",
        )

    def upcoming_vaccinations(self, days: int = 30, today: date | None = None) -> list[dict]:
        """Pending vaccinations scheduled within `days` (overdue ones included), soonest first."""
        today = today or get_farm_today()
        upcoming = [
            dict(v)
            for v in self._rows("vaccinations")
            if v.get("status") != "completed" and (parse_date(v["scheduled_date"]) - today).days <= days
        ]
        return sorted(upcoming, key=lambda v: v["scheduled_date"])

    # =========================================================================
    # Activities
    # =========================================================================

    def recent_activities(self, limit: int = 10) -> list[dict]:
        return [dict(a) for a in self._rows("activities")[:limit]]

    # =========================================================================
    # Feed
    # =========================================================================

    def add_feeding_record(self, payload: dict) -> dict:
        data = schemas.FeedingRecordCreate.model_validate(payload).model_dump(mode="json")
        if data["total_cost"] is None:
            data["total_cost"] = data["total_kg"] * data["cost_per_kg"]
        return self.add(
            "feeding_records",
            data,
            title="Feeding recorded",
            description=f"{data['total_kg']:g} kg for {data['animal_count']} {data['category']}",
        )

    def add_feed_stock(self, payload: dict) -> dict:
        data = schemas.FeedStockCreate.model_validate(payload).model_dump(mode="json")
        data["last_restocked"] = None
        return self.add("feed_stock", data, title="Feed stock added", description=data["name"])

    def restock(self, stock_id: str, quantity: float) -> dict | None:
        if quantity <= 0:
            raise ValueError("quantity must be positive")
        row = self._find("feed_stock", stock_id)
        if row is None:
            return None
        return self.update(
            "feed_stock",
            stock_id,
            {"current_qty": row["current_qty"] + quantity, "last_restocked": now_iso()},
            title="Feed restocked",
            description=f"{row['name']}: +{quantity:g} {row.get('unit', 'kg')}",
        )

    def record_feed_production(self, total_produced: float, ingredients: list[dict], notes: str = "") -> dict:
        """Mix a batch of compound feed from stocked ingredients.

        Each ingredient ({"stock_id", "qty"}) is deducted from its stock row
        (never below zero) and costed at that row's cost per unit. The output
        is added to the compound feed row, which is created if missing.

        Raises:
            pydantic.ValidationError: If the batch is invalid
            UnknownStockError: If an ingredient names a stock row that does
                not exist (nothing is deducted or recorded)
        """
        batch = schemas.FeedProductionCreate(total_produced=total_produced, ingredients=ingredients, notes=notes)
        stock = self._rows("feed_stock")
        used = [i.model_dump() for i in batch.ingredients]
        known = {row["id"] for row in stock}
        missing = [i["stock_id"] for i in used if i["stock_id"] not in known]
        if missing:
            raise UnknownStockError(f"Unknown feed stock id(s): {', '.join(missing)}")
        cost = batch_cost(stock, used)

        by_id = {row["id"]: row for row in stock}
        names = []
        for ingredient in used:
            row = by_id[ingredient["stock_id"]]
            row["current_qty"] = max(0, row["current_qty"] - ingredient["qty"])
            names.append({"name": row["name"], "qty": ingredient["qty"]})

        compound = next((row for row in stock if is_compound_feed(row)), None)
        if compound is not None:
            compound["current_qty"] += batch.total_produced
        else:
            stock.append(
                {
                    "id": generate_id(),
                    "name": COMPOUND_FEED_NAME,
                    "current_qty": batch.total_produced,
                    "max_qty": COMPOUND_FEED_MAX_KG,
                    "unit": "kg",
                    "cost_per_unit": round(cost / batch.total_produced),
                    "last_restocked": None,
                    "created_at": now_iso(),
                }
            )

        record = {
            "id": generate_id(),
            "date": get_farm_today().isoformat(),
            "ingredients": names,
            "total_produced": batch.total_produced,
            "cost_total": cost,
            "notes": batch.notes,
            "created_at": now_iso(),
        }
        self._rows("feed_productions").append(record)
        self._log_activity(
            "feeding", "Feed produced", f"{batch.total_produced:g} kg of compound feed", record["id"], "feed_productions"
        )
        self._commit()
        return dict(record)

    def record_consumption(
        self, stock_id: str, quantity: float, animal_category: str = "", animal_count: int = 0
    ) -> dict | None:
        """Deduct a day's use from a stock row. Returns None for an unknown row."""
        data = schemas.ConsumptionCreate(
            stock_id=stock_id, quantity=quantity, animal_category=animal_category, animal_count=animal_count
        )
        row = self._find("feed_stock", data.stock_id)
        if row is None:
            return None
        row["current_qty"] = max(0, row["current_qty"] - data.quantity)

        record = {
            "id": generate_id(),
            "date": get_farm_today().isoformat(),
            "stock_id": row["id"],
            "stock_name": row["name"],
            "quantity": data.quantity,
            "animal_category": data.animal_category,
            "animal_count": data.animal_count,
            "created_at": now_iso(),
        }
        self._rows("daily_consumption").append(record)
        self._log_activity(
            "feeding", "Feed consumed", f"{row['name']}: {data.quantity:g} kg", record["id"], "daily_consumption"
        )
        self._commit()
        return dict(record)

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"Store handle for {storage_key(self.user_id)} is closed")

    def _rows(self, collection: str) -> list[dict]:
        self._check_open()
        if collection not in COLLECTIONS:
            raise UnknownCollectionError(collection)
        return self._doc[collection]

    def _find(self, collection: str, id: str) -> dict | None:
        return next((row for row in self._rows(collection) if row.get("id") == id), None)

    def _apply_event(self, event: AnimalEvent) -> None:
        """Apply the reducer's updates for an event to the related animal."""
        animal = self._find("animals", event_animal_id(event))
        if animal is None:
            return
        open_cases = 0
        if isinstance(event, HealthCaseResolved):
            open_cases = sum(
                1
                for c in self._rows("health_cases")
                if c.get("animal_id") == event.animal_id and c.get("id") != event.case_id and c.get("status") != "resolved"
            )
        updates = reduce_animal_status(animal, event, open_cases)
        if updates:
            animal.update(updates)
            animal["updated_at"] = now_iso()

    def _log_activity(
        self, type: str, title: str, description: str, entity_id: str | None, entity_type: str | None
    ) -> dict:
        entry = {
            "id": generate_id(),
            "type": type,
            "title": title,
            "description": description,
            "entity_id": entity_id,
            "entity_type": entity_type,
            "created_at": now_iso(),
        }
        activities = self._rows("activities")
        activities.insert(0, entry)
        del activities[settings.activity_limit :]
        return entry

    def _commit(self) -> SaveResult:
        self._doc["revision"] += 1
        return self.save()


# =============================================================================
# Disk I/O
# =============================================================================


def _read_document(path: Path) -> dict | None:
    """Load a document, or None when there is no usable file."""
    if not path.exists():
        return None
    try:
        with open(path) as f:
            document = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not read %s, starting from a fresh document: %s", path.name, e)
        return None
    if not isinstance(document, dict):
        logger.warning("Ignoring %s: not a JSON object", path.name)
        return None
    return _normalize(document)


def _read_revision(path: Path) -> int | None:
    """Revision currently on disk, or None when the file is missing or unreadable."""
    try:
        with open(path) as f:
            return json.load(f).get("revision", 0)
    except (OSError, json.JSONDecodeError, AttributeError):
        return None


def _write_atomic(path: Path, document: dict) -> None:
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(document, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
