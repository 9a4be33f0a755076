"""Sample herd for the anonymous demo bucket.

Dates are laid out relative to the day the demo document is first created so
the dashboard always has something current to show: one sow close to
farrowing, one mid-gestation, an open lameness case, a vaccination booster
coming up and one feed that is running low.
"""

from datetime import UTC, date, datetime, timedelta

from porkyfarm.data.models import GESTATION_DAYS


def _d(today: date, days: int) -> str:
    return (today + timedelta(days=days)).isoformat()


def _ts(today: date, days: int) -> str:
    moment = datetime.combine(today + timedelta(days=days), datetime.min.time(), tzinfo=UTC)
    return moment.isoformat().replace("+00:00", "Z")


def _animal(today, id, identifier, name, category, breed, age_days, weight, created_days, **extra) -> dict:
    record = {
        "id": id,
        "identifier": identifier,
        "name": name,
        "category": category,
        "breed": breed,
        "birth_date": _d(today, -age_days),
        "weight": weight,
        "status": "active",
        "health_status": "good",
        "photo": None,
        "mother_id": None,
        "father_id": None,
        "notes": "",
        "created_at": _ts(today, created_days),
        "updated_at": _ts(today, created_days),
    }
    record.update(extra)
    return record


def build_demo_document(today: date) -> dict:
    """Build the seeded demo document (without schema_version/revision)."""
    bella_bred = -(GESTATION_DAYS - 5)  # due in 5 days
    rosa_bred = -60

    animals = [
        _animal(today, "1", "TR-001", "Bella", "breeding_female", "Large White", 1000, 180, -700,
                status="pregnant", notes="Excellent breeder"),
        _animal(today, "2", "TR-002", "Rosa", "breeding_female", "Landrace", 900, 165, -700, status="pregnant"),
        _animal(today, "3", "TR-003", "Luna", "breeding_female", "Duroc", 700, 150, -600,
                status="sick", health_status="medium"),
        _animal(today, "4", "VR-001", "Thor", "breeding_male", "Pietrain", 1200, 250, -700),
        _animal(today, "5", "VR-002", "Max", "breeding_male", "Large White", 1000, 230, -700),
        _animal(today, "6", "PC-001", "Little 1", "piglet", "Crossbred", 40, 9, -40, mother_id="1", father_id="4"),
        _animal(today, "7", "PC-002", "Little 2", "piglet", "Crossbred", 40, 7, -40, mother_id="1", father_id="4"),
        _animal(today, "8", "PO-001", "Chunk", "fattening", "Large White", 150, 95, -150),
    ]

    health_cases = [
        {
            "id": "1",
            "animal_id": "3",
            "animal_name": "Luna",
            "issue": "Lameness",
            "description": "Lame on the right hind leg, possible sprain",
            "priority": "high",
            "status": "in_progress",
            "treatment": "Anti-inflammatories and rest",
            "veterinarian": "Dr. Kouassi",
            "photo": None,
            "cost": 25000,
            "start_date": _d(today, -4),
            "resolved_date": None,
            "created_at": _ts(today, -4),
        },
        {
            "id": "2",
            "animal_id": "6",
            "animal_name": "Little 1",
            "issue": "Diarrhoea",
            "description": "Mild diarrhoea for two days",
            "priority": "low",
            "status": "resolved",
            "treatment": "Rehydration and probiotics",
            "veterinarian": None,
            "photo": None,
            "cost": None,
            "start_date": _d(today, -12),
            "resolved_date": _d(today, -9),
            "created_at": _ts(today, -12),
        },
    ]

    gestations = [
        {
            "id": "1",
            "sow_id": "1",
            "sow_name": "Bella",
            "boar_id": "4",
            "boar_name": "Thor",
            "breeding_date": _d(today, bella_bred),
            "expected_due_date": _d(today, bella_bred + GESTATION_DAYS),
            "actual_due_date": None,
            "status": "active",
            "piglet_count": None,
            "piglets_survived": None,
            "notes": "First service took",
            "created_at": _ts(today, bella_bred),
        },
        {
            "id": "2",
            "sow_id": "2",
            "sow_name": "Rosa",
            "boar_id": "5",
            "boar_name": "Max",
            "breeding_date": _d(today, rosa_bred),
            "expected_due_date": _d(today, rosa_bred + GESTATION_DAYS),
            "actual_due_date": None,
            "status": "active",
            "piglet_count": None,
            "piglets_survived": None,
            "notes": "",
            "created_at": _ts(today, rosa_bred),
        },
    ]

    vaccinations = [
        {
            "id": "1",
            "vaccine_name": "Parvovirus",
            "animal_id": "1",
            "target": "Bella (TR-001)",
            "scheduled_date": _d(today, -120),
            "completed_date": _d(today, -120),
            "status": "completed",
            "completed_count": 1,
            "next_due_date": _d(today, 245),
            "veterinarian": "Dr. Kouassi",
            "notes": "",
            "created_at": _ts(today, -120),
        },
        {
            "id": "2",
            "vaccine_name": "Erysipelas",
            "animal_id": None,
            "target": "All piglets",
            "scheduled_date": _d(today, 6),
            "completed_date": None,
            "status": "pending",
            "completed_count": None,
            "next_due_date": None,
            "veterinarian": "Dr. Kouassi",
            "notes": "",
            "created_at": _ts(today, -2),
        },
    ]

    activities = [
        {
            "id": "1",
            "type": "health_case",
            "title": "New health case",
            "description": "Luna: Lameness",
            "entity_id": "1",
            "entity_type": "health_case",
            "created_at": _ts(today, -4),
        },
        {
            "id": "2",
            "type": "gestation",
            "title": "New gestation",
            "description": "Rosa served by Max",
            "entity_id": "2",
            "entity_type": "gestation",
            "created_at": _ts(today, rosa_bred),
        },
    ]

    feeding_records = [
        {
            "id": "1",
            "date": _d(today, -1),
            "category": "breeding_female",
            "animal_count": 3,
            "total_kg": 9,
            "cost_per_kg": 350,
            "total_cost": 3150,
            "notes": "",
            "created_at": _ts(today, -1),
        },
        {
            "id": "2",
            "date": _d(today, -1),
            "category": "breeding_male",
            "animal_count": 2,
            "total_kg": 7,
            "cost_per_kg": 350,
            "total_cost": 2450,
            "notes": "",
            "created_at": _ts(today, -1),
        },
    ]

    feed_stock = [
        ("1", "Maize", 850, 1000, 150),
        ("2", "Soybean meal", 120, 400, 350),
        ("3", "Wheat bran", 200, 300, 100),
        ("4", "Mineral premix", 4, 50, 800),
        ("5", "Fish meal", 30, 100, 500),
    ]

    return {
        "animals": animals,
        "health_cases": health_cases,
        "gestations": gestations,
        "vaccinations": vaccinations,
        "activities": activities,
        "feeding_records": feeding_records,
        "feed_stock": [
            {
                "id": id,
                "name": name,
                "current_qty": current,
                "max_qty": maximum,
                "unit": "kg",
                "cost_per_unit": cost,
                "last_restocked": None,
                "created_at": _ts(today, -30),
            }
            for id, name, current, maximum, cost in feed_stock
        ],
        "feed_productions": [],
        "daily_consumption": [],
    }
