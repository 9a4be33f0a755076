"""Input validation for store mutations.

Every add/complete operation validates its payload here before touching a
collection. Invalid input raises pydantic.ValidationError; use field_errors()
to turn it into per-field messages for a form.
"""

import datetime
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from porkyfarm.data.models import AnimalCategory, AnimalStatus, CaseStatus, HealthStatus, Priority

# ==================== ANIMALS ====================


class AnimalCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    identifier: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=2, max_length=100)
    category: AnimalCategory
    breed: str = ""
    birth_date: date | None = None
    weight: float = Field(default=0, ge=0, le=500)
    status: AnimalStatus = "active"
    health_status: HealthStatus = "good"
    photo: str | None = None
    mother_id: str | None = None
    father_id: str | None = None
    notes: str = Field(default="", max_length=1000)


class AnimalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    identifier: str | None = Field(default=None, min_length=1, max_length=50)
    name: str | None = Field(default=None, min_length=2, max_length=100)
    category: AnimalCategory | None = None
    breed: str | None = None
    birth_date: date | None = None
    weight: float | None = Field(default=None, ge=0, le=500)
    status: AnimalStatus | None = None
    health_status: HealthStatus | None = None
    photo: str | None = None
    mother_id: str | None = None
    father_id: str | None = None
    notes: str | None = Field(default=None, max_length=1000)


# ==================== HEALTH ====================


class HealthCaseCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    animal_id: str = Field(min_length=1)
    issue: str = Field(min_length=3, max_length=500)
    description: str = Field(default="", max_length=2000)
    priority: Priority = "medium"
    status: CaseStatus = "open"
    treatment: str | None = Field(default=None, max_length=500)
    veterinarian: str | None = None
    photo: str | None = None
    cost: float | None = Field(default=None, ge=0)
    start_date: date | None = None

    @model_validator(mode="after")
    def _not_created_resolved(self):
        if self.status == "resolved":
            raise ValueError("a new health case cannot start resolved")
        return self


class HealthCaseUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    issue: str | None = Field(default=None, min_length=3, max_length=500)
    description: str | None = Field(default=None, max_length=2000)
    priority: Priority | None = None
    status: CaseStatus | None = None
    treatment: str | None = Field(default=None, max_length=500)
    veterinarian: str | None = None
    photo: str | None = None
    cost: float | None = Field(default=None, ge=0)
    start_date: date | None = None


# ==================== REPRODUCTION ====================


class GestationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    sow_id: str = Field(min_length=1)
    boar_id: str | None = None
    boar_name: str | None = None
    breeding_date: date
    notes: str = Field(default="", max_length=500)


class GestationUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    boar_id: str | None = None
    boar_name: str | None = None
    breeding_date: date | None = None
    notes: str | None = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _breeding_date_not_cleared(self):
        if "breeding_date" in self.model_fields_set and self.breeding_date is None:
            raise ValueError("breeding_date cannot be cleared")
        return self


class GestationCompletion(BaseModel):
    piglet_count: int = Field(ge=0, le=40)
    piglets_survived: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _survivors_within_litter(self):
        if self.piglets_survived is not None and self.piglets_survived > self.piglet_count:
            raise ValueError("piglets_survived cannot exceed piglet_count")
        return self


# ==================== VACCINATIONS ====================


class VaccinationCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    vaccine_name: str = Field(min_length=2, max_length=100)
    animal_id: str | None = None
    target: str = ""
    scheduled_date: date
    next_due_date: date | None = None
    veterinarian: str | None = None
    notes: str = Field(default="", max_length=500)

    @model_validator(mode="after")
    def _needs_a_target(self):
        if not self.animal_id and not self.target:
            raise ValueError("either animal_id or target is required")
        return self


# ==================== FEED ====================


class FeedingRecordCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: datetime.date
    category: str = Field(min_length=1)
    animal_count: int = Field(ge=1, le=1000)
    total_kg: float = Field(gt=0)
    cost_per_kg: float = Field(default=0, ge=0)
    total_cost: float | None = Field(default=None, ge=0)
    notes: str = ""


class FeedStockCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    current_qty: float = Field(ge=0)
    max_qty: float = Field(gt=0)
    unit: str = "kg"
    cost_per_unit: float = Field(default=0, ge=0)


class IngredientInput(BaseModel):
    stock_id: str
    qty: float = Field(gt=0)


class FeedProductionCreate(BaseModel):
    total_produced: float = Field(gt=0)
    ingredients: list[IngredientInput] = []
    notes: str = ""


class ConsumptionCreate(BaseModel):
    stock_id: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    animal_category: str = ""
    animal_count: int = Field(default=0, ge=0)


def field_errors(error: ValidationError) -> dict[str, str]:
    """Flatten a ValidationError into {field: message}.

    Model-level errors (cross-field checks) are keyed by "__all__". Only the
    first message per field is kept.
    """
    result: dict[str, str] = {}
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "__all__"
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, ") :]
        result.setdefault(loc, message)
    return result
