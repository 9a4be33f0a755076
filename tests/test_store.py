"""Tests for the farm store."""

import json
from datetime import date

import pytest
from pydantic import ValidationError

from porkyfarm.data import store as store_module
from porkyfarm.data.status import StatusTransitionError
from porkyfarm.data.store import (
    DuplicateIdentifierError,
    FarmStore,
    StoreClosedError,
    UnknownCollectionError,
    UnknownStockError,
    storage_key,
)


def make_stock(store, name="Maize", current=850, maximum=1000, cost=150):
    return store.add_feed_stock({"name": name, "current_qty": current, "max_qty": maximum, "cost_per_unit": cost})


class TestStorageKey:
    """Tests for the storage_key function."""

    def test_no_identity_is_demo(self):
        assert storage_key(None) == "porkyfarm_db_demo"
        assert storage_key("") == "porkyfarm_db_demo"

    def test_safe_identity_used_as_is(self):
        assert storage_key("user-42") == "porkyfarm_db_user-42"

    def test_unsafe_identity_is_hashed(self):
        """Identities that are not filename-safe become a 24-char hash."""
        key = storage_key("alice@example.com")
        suffix = key.removeprefix("porkyfarm_db_")
        assert len(suffix) == 24
        assert all(c in "0123456789abcdef" for c in suffix)

    def test_hash_is_stable(self):
        assert storage_key("../../etc/passwd") == storage_key("../../etc/passwd")


class TestOpen:
    """Tests for opening store documents."""

    def test_user_store_starts_empty(self, store):
        for name in ("animals", "health_cases", "gestations", "activities", "feed_stock"):
            assert store.list(name) == []

    def test_document_written_on_first_open(self, store, tmp_path):
        path = tmp_path / "porkyfarm_db_test-user.json"
        assert path.exists()
        doc = json.loads(path.read_text())
        assert doc["schema_version"] == 1
        assert doc["revision"] == 0
        assert doc["daily_consumption"] == []

    def test_demo_store_is_seeded(self, demo_store):
        assert demo_store.is_demo
        names = {a["name"] for a in demo_store.list("animals")}
        assert {"Bella", "Rosa", "Luna", "Thor", "Max"} <= names
        assert demo_store.list("feed_stock")
        assert demo_store.active_gestations()

    def test_missing_collections_filled_on_load(self, tmp_path):
        """Documents from older versions load with every collection present."""
        path = tmp_path / "porkyfarm_db_legacy.json"
        path.write_text(json.dumps({"animals": [{"id": "a1", "name": "Old", "status": "active"}]}))

        store = FarmStore.open("legacy", data_dir=tmp_path)

        assert store.get("animals", "a1")["name"] == "Old"
        assert store.list("gestations") == []
        assert store.revision == 0

    def test_corrupt_document_starts_fresh(self, tmp_path):
        (tmp_path / "porkyfarm_db_broken.json").write_text("{not json")
        store = FarmStore.open("broken", data_dir=tmp_path)
        assert store.list("animals") == []

    def test_is_durable_after_open(self, store):
        assert store.is_durable


class TestGenericOperations:
    """Tests for list/get/add/update/remove."""

    def test_add_assigns_id_and_timestamp(self, store):
        record = store.add("feeding_records", {"date": "2025-02-01", "total_kg": 5})
        assert record["id"]
        assert record["created_at"].endswith("Z")
        assert store.get("feeding_records", record["id"]) == record

    def test_ids_are_unique(self, store):
        ids = {store.add("feed_stock", {"name": f"Feed {i}"})["id"] for i in range(20)}
        assert len(ids) == 20

    def test_update_merges_fields(self, store):
        record = store.add("feed_stock", {"name": "Maize", "current_qty": 10})
        updated = store.update("feed_stock", record["id"], {"current_qty": 20})
        assert updated["current_qty"] == 20
        assert updated["name"] == "Maize"

    def test_update_refreshes_updated_at(self, store, sow):
        updated = store.update("animals", sow["id"], {"notes": "checked"})
        assert updated["updated_at"] >= sow["updated_at"]

    def test_update_cannot_change_id(self, store):
        record = store.add("feed_stock", {"name": "Maize"})
        updated = store.update("feed_stock", record["id"], {"id": "hijack", "created_at": "never"})
        assert updated["id"] == record["id"]
        assert updated["created_at"] == record["created_at"]

    def test_update_missing_returns_none(self, store):
        assert store.update("animals", "missing", {"name": "x"}) is None

    def test_remove(self, store):
        record = store.add("feed_stock", {"name": "Maize"})
        assert store.remove("feed_stock", record["id"]) is True
        assert store.get("feed_stock", record["id"]) is None

    def test_remove_missing_returns_false(self, store):
        assert store.remove("feed_stock", "missing") is False

    def test_unknown_collection_raises(self, store):
        with pytest.raises(UnknownCollectionError):
            store.list("tractors")

    def test_list_returns_copies(self, store, sow):
        store.list("animals")[0]["name"] = "Changed"
        assert store.get("animals", sow["id"])["name"] == "Bella"


class TestActivityLog:
    """Tests for the recent-activity ring buffer."""

    def test_each_mutation_logs_one_activity(self, store, sow):
        before = len(store.list("activities"))
        store.update_animal(sow["id"], {"weight": 185})
        store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        assert len(store.list("activities")) == before + 2

    def test_newest_first(self, store):
        first = store.add("feed_stock", {"name": "First"})
        second = store.add("feed_stock", {"name": "Second"})
        activities = store.recent_activities()
        assert activities[0]["entity_id"] == second["id"]
        assert activities[1]["entity_id"] == first["id"]

    def test_capped_at_fifty(self, store):
        last = None
        for i in range(60):
            last = store.add("feed_stock", {"name": f"Feed {i}"})
        activities = store.list("activities")
        assert len(activities) == 50
        assert activities[0]["entity_id"] == last["id"]

    def test_adding_activity_directly_logs_only_itself(self, store):
        store.add("activities", {"type": "feeding", "title": "Manual entry", "description": "note"})
        activities = store.list("activities")
        assert len(activities) == 1
        assert activities[0]["title"] == "Manual entry"

    def test_recent_activities_limit(self, store):
        for i in range(5):
            store.add("feed_stock", {"name": f"Feed {i}"})
        assert len(store.recent_activities(limit=3)) == 3

    def test_activity_types(self, store, sow):
        store.sell_animal(sow["id"])
        assert store.recent_activities()[0]["type"] == "animal_sold"
        assert store.recent_activities()[1]["type"] == "animal_added"


class TestPersistence:
    """Tests for saving, reloading and write conflicts."""

    def test_changes_survive_reopen(self, store, sow, tmp_path):
        reopened = FarmStore.open("test-user", data_dir=tmp_path)
        assert reopened.get("animals", sow["id"])["name"] == "Bella"

    def test_revision_increments_per_mutation(self, store):
        start = store.revision
        store.add("feed_stock", {"name": "Maize"})
        store.add("feed_stock", {"name": "Soy"})
        assert store.revision == start + 2
        assert store.last_save.ok
        assert store.last_save.revision == store.revision

    def test_no_temp_files_left_behind(self, store, sow, tmp_path):
        assert [p.name for p in tmp_path.iterdir() if p.suffix == ".tmp"] == []

    def test_concurrent_write_is_refused(self, tmp_path):
        """A stale handle cannot overwrite another handle's save."""
        first = FarmStore.open("farmer", data_dir=tmp_path)
        second = FarmStore.open("farmer", data_dir=tmp_path)

        first.add("feed_stock", {"name": "From first"})
        second.add("feed_stock", {"name": "From second"})

        assert second.last_save.conflict
        assert not second.last_save.ok
        assert not second.is_durable
        # In-memory copy is kept
        assert [r["name"] for r in second.list("feed_stock")] == ["From second"]
        # Disk still has the first writer's data
        on_disk = FarmStore.open("farmer", data_dir=tmp_path)
        assert [r["name"] for r in on_disk.list("feed_stock")] == ["From first"]

    def test_reload_discards_local_state(self, tmp_path):
        first = FarmStore.open("farmer", data_dir=tmp_path)
        second = FarmStore.open("farmer", data_dir=tmp_path)
        first.add("feed_stock", {"name": "From first"})
        second.add("feed_stock", {"name": "From second"})

        second.reload()

        assert second.is_durable
        assert [r["name"] for r in second.list("feed_stock")] == ["From first"]
        second.add("feed_stock", {"name": "After reload"})
        assert second.last_save.ok

    def test_write_failure_reported_not_raised(self, store, monkeypatch):
        def fail(path, document):
            raise OSError("No space left on device")

        monkeypatch.setattr(store_module, "_write_atomic", fail)
        record = store.add("feed_stock", {"name": "Maize"})

        assert store.get("feed_stock", record["id"]) is not None
        assert not store.last_save.ok
        assert not store.last_save.conflict
        assert "No space left" in store.last_save.error
        assert not store.is_durable

    def test_save_recovers_after_failure(self, store, monkeypatch):
        def fail(path, document):
            raise OSError("Read-only file system")

        monkeypatch.setattr(store_module, "_write_atomic", fail)
        store.add("feed_stock", {"name": "Maize"})
        monkeypatch.undo()

        result = store.save()

        assert result.ok
        assert store.is_durable


class TestIdentity:
    """Tests for switching identity and closing handles."""

    def test_switch_user_returns_new_handle(self, store, sow):
        other = store.switch_user("someone-else")
        assert other.user_id == "someone-else"
        assert other.list("animals") == []

    def test_old_handle_is_closed(self, store):
        store.switch_user("someone-else")
        assert store.closed
        with pytest.raises(StoreClosedError):
            store.list("animals")

    def test_switch_back_reloads(self, store, sow):
        other = store.switch_user("someone-else")
        back = other.switch_user("test-user")
        assert back.get("animals", sow["id"]) is not None

    def test_switch_to_demo(self, store):
        demo = store.switch_user(None)
        assert demo.is_demo
        assert demo.list("animals")


class TestReset:
    """Tests for the reset operation."""

    def test_user_reset_empties(self, store, sow):
        result = store.reset()
        assert result.ok
        assert store.list("animals") == []
        assert store.list("activities") == []

    def test_demo_reset_restores_seed(self, demo_store):
        for animal in demo_store.list("animals"):
            demo_store.delete_animal(animal["id"])
        demo_store.reset()
        assert len(demo_store.list("animals")) == 8


class TestAnimals:
    """Tests for animal operations."""

    def test_add_animal_defaults(self, sow):
        assert sow["status"] == "active"
        assert sow["health_status"] == "good"
        assert sow["birth_date"] == "2022-03-01"

    def test_add_animal_validates(self, store):
        with pytest.raises(ValidationError):
            store.add_animal({"identifier": "TR-009", "name": "B", "category": "breeding_female"})

    def test_add_animal_rejects_unknown_category(self, store):
        with pytest.raises(ValidationError):
            store.add_animal({"identifier": "TR-009", "name": "Bessie", "category": "cow"})

    def test_duplicate_identifier(self, store, sow):
        with pytest.raises(DuplicateIdentifierError):
            store.add_animal({"identifier": "TR-001", "name": "Other", "category": "breeding_female"})

    def test_update_animal(self, store, sow):
        updated = store.update_animal(sow["id"], {"weight": 190, "notes": "Good condition"})
        assert updated["weight"] == 190
        assert updated["notes"] == "Good condition"

    def test_update_missing_animal(self, store):
        assert store.update_animal("missing", {"weight": 10}) is None

    def test_delete_animal(self, store, sow):
        assert store.delete_animal(sow["id"]) is True
        assert store.recent_activities()[0]["type"] == "animal_deleted"
        assert store.delete_animal(sow["id"]) is False

    def test_animals_by_category(self, store, sow, boar):
        assert [a["id"] for a in store.animals_by_category("breeding_male")] == [boar["id"]]

    def test_sell_is_idempotent(self, store, sow):
        store.sell_animal(sow["id"])
        activity_count = len(store.list("activities"))

        again = store.sell_animal(sow["id"])

        assert again["status"] == "sold"
        assert len(store.list("activities")) == activity_count

    def test_sold_animal_cannot_die(self, store, sow):
        store.sell_animal(sow["id"])
        assert store.mark_animal_deceased(sow["id"])["status"] == "sold"

    def test_deceased_is_irreversible(self, store, sow):
        store.mark_animal_deceased(sow["id"])
        with pytest.raises(StatusTransitionError):
            store.update_animal(sow["id"], {"status": "active"})
        assert store.get("animals", sow["id"])["status"] == "deceased"

    def test_terminal_animal_other_fields_editable(self, store, sow):
        store.sell_animal(sow["id"])
        updated = store.update_animal(sow["id"], {"notes": "Sold at market"})
        assert updated["notes"] == "Sold at market"

    def test_sell_missing_returns_none(self, store):
        assert store.sell_animal("missing") is None

    def test_generic_update_cannot_revive_sold_animal(self, store, sow):
        """The terminal-status rule also holds for the generic update."""
        store.sell_animal(sow["id"])

        with pytest.raises(StatusTransitionError):
            store.update("animals", sow["id"], {"status": "active"})

        assert store.get("animals", sow["id"])["status"] == "sold"

    def test_generic_update_checks_identifier(self, store, sow, boar):
        with pytest.raises(DuplicateIdentifierError):
            store.update("animals", boar["id"], {"identifier": "TR-001"})
        assert store.get("animals", boar["id"])["identifier"] == "VR-001"


class TestHealthCases:
    """Tests for health cases and their effect on animal status."""

    def test_high_case_makes_animal_sick(self, store, sow):
        store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        animal = store.get("animals", sow["id"])
        assert animal["status"] == "sick"
        assert animal["health_status"] == "medium"

    def test_critical_case_sets_bad_health(self, store, sow):
        store.add_health_case({"animal_id": sow["id"], "issue": "Fever", "priority": "critical"})
        assert store.get("animals", sow["id"])["health_status"] == "bad"

    def test_low_case_leaves_animal_alone(self, store, sow):
        store.add_health_case({"animal_id": sow["id"], "issue": "Scratch", "priority": "low"})
        assert store.get("animals", sow["id"])["status"] == "active"

    def test_resolving_restores_animal(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})

        resolved = store.resolve_health_case(case["id"])

        assert resolved["status"] == "resolved"
        assert resolved["resolved_date"]
        animal = store.get("animals", sow["id"])
        assert animal["status"] == "active"
        assert animal["health_status"] == "good"

    def test_other_open_case_keeps_animal_sick(self, store, sow):
        first = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        store.add_health_case({"animal_id": sow["id"], "issue": "Cough", "priority": "medium"})

        store.resolve_health_case(first["id"])

        assert store.get("animals", sow["id"])["status"] == "sick"

    def test_resolve_is_idempotent(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        store.resolve_health_case(case["id"])
        count = len(store.list("activities"))
        store.resolve_health_case(case["id"])
        assert len(store.list("activities")) == count

    def test_update_to_resolved_resolves(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        updated = store.update_health_case(case["id"], {"status": "resolved", "treatment": "Rest"})
        assert updated["status"] == "resolved"
        assert updated["treatment"] == "Rest"
        assert store.get("animals", sow["id"])["status"] == "active"

    def test_cannot_reopen(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "high"})
        store.resolve_health_case(case["id"])
        with pytest.raises(StatusTransitionError):
            store.update_health_case(case["id"], {"status": "open"})

    def test_animal_name_is_a_snapshot(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness"})
        store.update_animal(sow["id"], {"name": "Bella II"})
        assert store.get("health_cases", case["id"])["animal_name"] == "Bella"

    def test_cannot_create_resolved(self, store, sow):
        with pytest.raises(ValidationError):
            store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "status": "resolved"})

    def test_sold_animal_stays_sold(self, store, sow):
        store.sell_animal(sow["id"])
        store.add_health_case({"animal_id": sow["id"], "issue": "Lameness", "priority": "critical"})
        assert store.get("animals", sow["id"])["status"] == "sold"

    def test_active_health_cases(self, store, sow):
        open_case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness"})
        closed = store.add_health_case({"animal_id": sow["id"], "issue": "Cough"})
        store.resolve_health_case(closed["id"])
        assert [c["id"] for c in store.active_health_cases()] == [open_case["id"]]

    def test_delete_health_case(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness"})
        assert store.delete_health_case(case["id"]) is True
        assert store.active_health_cases() == []

    def test_update_validates_status_and_priority(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness"})

        with pytest.raises(ValidationError):
            store.update_health_case(case["id"], {"status": "bogus", "priority": "urgentish"})

        stored = store.get("health_cases", case["id"])
        assert stored["status"] == "open"
        assert stored["priority"] == "medium"

    def test_update_health_case_fields(self, store, sow):
        case = store.add_health_case({"animal_id": sow["id"], "issue": "Lameness"})
        updated = store.update_health_case(case["id"], {"status": "in_progress", "priority": "low", "cost": 5000})
        assert updated["status"] == "in_progress"
        assert updated["priority"] == "low"
        assert updated["cost"] == 5000


class TestGestations:
    """Tests for gestations."""

    def test_due_date_is_breeding_plus_114(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        assert gestation["expected_due_date"] == "2025-04-25"

    def test_sow_becomes_pregnant(self, store, sow, boar):
        gestation = store.add_gestation({"sow_id": sow["id"], "boar_id": boar["id"], "breeding_date": "2025-01-01"})
        assert store.get("animals", sow["id"])["status"] == "pregnant"
        assert gestation["sow_name"] == "Bella"
        assert gestation["boar_name"] == "Thor"

    def test_due_date_never_recomputed(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})

        updated = store.update_gestation(
            gestation["id"],
            {"breeding_date": date(2025, 1, 10), "expected_due_date": "2030-01-01", "notes": "Re-checked"},
        )

        assert updated["breeding_date"] == "2025-01-10"
        assert updated["expected_due_date"] == "2025-04-25"
        assert updated["notes"] == "Re-checked"

    def test_complete_makes_sow_nursing(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})

        completed = store.complete_gestation(gestation["id"], 12, 11)

        assert completed["status"] == "completed"
        assert completed["piglet_count"] == 12
        assert completed["piglets_survived"] == 11
        assert completed["actual_due_date"]
        assert store.get("animals", sow["id"])["status"] == "nursing"

    def test_survivors_default_to_litter(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        assert store.complete_gestation(gestation["id"], 10)["piglets_survived"] == 10

    def test_survivors_cannot_exceed_litter(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        with pytest.raises(ValidationError):
            store.complete_gestation(gestation["id"], 8, 9)

    def test_complete_is_terminal(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        store.complete_gestation(gestation["id"], 10)
        again = store.complete_gestation(gestation["id"], 3)
        assert again["piglet_count"] == 10

    def test_fail_gestation(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        failed = store.fail_gestation(gestation["id"], notes="Returned to heat")
        assert failed["status"] == "failed"
        assert store.active_gestations() == []

    def test_complete_missing_returns_none(self, store):
        assert store.complete_gestation("missing", 10) is None

    def test_delete_gestation(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        assert store.delete_gestation(gestation["id"]) is True
        assert store.get("gestations", gestation["id"]) is None

    def test_update_validates_breeding_date(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        with pytest.raises(ValidationError):
            store.update_gestation(gestation["id"], {"breeding_date": "soon"})
        assert store.get("gestations", gestation["id"])["breeding_date"] == "2025-01-01"

    def test_update_cannot_clear_breeding_date(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        with pytest.raises(ValidationError):
            store.update_gestation(gestation["id"], {"breeding_date": None})

    def test_update_rejects_unknown_fields(self, store, sow):
        gestation = store.add_gestation({"sow_id": sow["id"], "breeding_date": "2025-01-01"})
        with pytest.raises(ValidationError):
            store.update_gestation(gestation["id"], {"piglet_count": 99})


class TestVaccinations:
    """Tests for vaccinations."""

    def test_target_from_animal(self, store, sow):
        vaccination = store.add_vaccination(
            {"vaccine_name": "Parvovirus", "animal_id": sow["id"], "scheduled_date": "2025-02-10"}
        )
        assert vaccination["target"] == "Bella (TR-001)"
        assert vaccination["status"] == "pending"

    def test_requires_target(self, store):
        with pytest.raises(ValidationError):
            store.add_vaccination({"vaccine_name": "Parvovirus", "scheduled_date": "2025-02-10"})

    def test_complete_vaccination(self, store):
        vaccination = store.add_vaccination(
            {"vaccine_name": "Erysipelas", "target": "All piglets", "scheduled_date": "2025-02-10"}
        )
        done = store.complete_vaccination(vaccination["id"], completed_count=14, completed_date=date(2025, 2, 10))
        assert done["status"] == "completed"
        assert done["completed_date"] == "2025-02-10"
        assert done["completed_count"] == 14

    def test_upcoming_vaccinations(self, store):
        today = date(2025, 2, 1)
        late = store.add_vaccination({"vaccine_name": "Late", "target": "Herd", "scheduled_date": "2025-01-20"})
        soon = store.add_vaccination({"vaccine_name": "Soon", "target": "Herd", "scheduled_date": "2025-02-10"})
        store.add_vaccination({"vaccine_name": "Later", "target": "Herd", "scheduled_date": "2025-06-01"})

        upcoming = store.upcoming_vaccinations(days=30, today=today)

        assert [v["id"] for v in upcoming] == [late["id"], soon["id"]]


class TestFeed:
    """Tests for the feed ledgers."""

    def test_feeding_record_total_cost(self, store):
        record = store.add_feeding_record(
            {"date": "2025-02-01", "category": "breeding_female", "animal_count": 3, "total_kg": 9, "cost_per_kg": 350}
        )
        assert record["total_cost"] == 3150

    def test_restock(self, store):
        row = make_stock(store, current=100)
        restocked = store.restock(row["id"], 50)
        assert restocked["current_qty"] == 150
        assert restocked["last_restocked"]

    def test_restock_unknown_and_invalid(self, store):
        row = make_stock(store)
        assert store.restock("missing", 10) is None
        with pytest.raises(ValueError):
            store.restock(row["id"], 0)

    def test_consumption_floors_at_zero(self, store):
        row = make_stock(store, current=30)
        record = store.record_consumption(row["id"], 50, "piglet", 12)
        assert record["stock_name"] == "Maize"
        assert store.get("feed_stock", row["id"])["current_qty"] == 0

    def test_consumption_unknown_stock(self, store):
        assert store.record_consumption("missing", 5) is None

    def test_production_creates_compound_feed(self, store):
        maize = make_stock(store, "Maize", 850, 1000, 150)
        soy = make_stock(store, "Soybean meal", 120, 400, 350)

        production = store.record_feed_production(
            100, [{"stock_id": maize["id"], "qty": 70}, {"stock_id": soy["id"], "qty": 30}]
        )

        assert production["cost_total"] == 21000
        assert production["ingredients"] == [{"name": "Maize", "qty": 70}, {"name": "Soybean meal", "qty": 30}]
        assert store.get("feed_stock", maize["id"])["current_qty"] == 780
        assert store.get("feed_stock", soy["id"])["current_qty"] == 90
        compound = [r for r in store.list("feed_stock") if r["name"] == "Compound feed"]
        assert len(compound) == 1
        assert compound[0]["current_qty"] == 100
        assert compound[0]["max_qty"] == 500
        assert compound[0]["cost_per_unit"] == 210

    def test_production_adds_to_existing_compound_feed(self, store):
        maize = make_stock(store, "Maize", 850, 1000, 150)
        store.record_feed_production(100, [{"stock_id": maize["id"], "qty": 100}])
        store.record_feed_production(50, [{"stock_id": maize["id"], "qty": 50}])
        compound = [r for r in store.list("feed_stock") if r["name"] == "Compound feed"]
        assert len(compound) == 1
        assert compound[0]["current_qty"] == 150

    def test_ingredient_never_goes_negative(self, store):
        soy = make_stock(store, "Soybean meal", 10, 400, 350)
        store.record_feed_production(40, [{"stock_id": soy["id"], "qty": 40}])
        assert store.get("feed_stock", soy["id"])["current_qty"] == 0

    def test_production_rejects_unknown_ingredient(self, store):
        """A mistyped stock id fails the batch without touching stock."""
        maize = make_stock(store, "Maize", 850, 1000, 150)
        revision = store.revision

        with pytest.raises(UnknownStockError, match="typo"):
            store.record_feed_production(
                100, [{"stock_id": maize["id"], "qty": 70}, {"stock_id": "typo", "qty": 30}]
            )

        assert store.get("feed_stock", maize["id"])["current_qty"] == 850
        assert store.list("feed_productions") == []
        assert [r["name"] for r in store.list("feed_stock")] == ["Maize"]
        assert store.revision == revision
