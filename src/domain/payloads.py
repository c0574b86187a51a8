from __future__ import annotations

from datetime import date
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from src.config import DEFAULT_STATS_MONTHS, MAX_STATS_MONTHS
from src.errors import ValidationFailure

M = TypeVar("M", bound=BaseModel)


def _require_text(value: str, field: str) -> str:
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{field} is required")
    return cleaned


class SetInput(BaseModel):
    weight: float
    reps: int

    model_config = {"extra": "forbid"}

    @field_validator("weight")
    @classmethod
    def weight_nonnegative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("weight must be non-negative")
        return v

    @field_validator("reps")
    @classmethod
    def reps_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("reps must be greater than 0")
        return v


class ExerciseInput(BaseModel):
    name: str
    sets: List[SetInput] = Field(default_factory=list)

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def name_present(cls, v: str) -> str:
        return _require_text(v, "exercise name")


class WorkoutCreatePayload(BaseModel):
    name: str
    workout_date: date = Field(alias="date")
    notes: Optional[str] = None
    exercises: List[ExerciseInput]

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("name")
    @classmethod
    def name_present(cls, v: str) -> str:
        return _require_text(v, "name")

    @field_validator("exercises")
    @classmethod
    def exercises_not_empty(cls, v: List[ExerciseInput]) -> List[ExerciseInput]:
        if len(v) == 0:
            raise ValueError("exercises required")
        return v


class WorkoutUpdatePayload(BaseModel):
    """Partial update; only fields present in the input are applied."""

    name: Optional[str] = None
    workout_date: Optional[date] = Field(default=None, alias="date")
    notes: Optional[str] = None

    model_config = {"extra": "forbid", "populate_by_name": True}

    @field_validator("name")
    @classmethod
    def name_present(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("name cannot be null")
        return _require_text(v, "name")

    @field_validator("workout_date")
    @classmethod
    def date_present(cls, v: Optional[date]) -> Optional[date]:
        if v is None:
            raise ValueError("date cannot be null")
        return v

    def changes(self) -> dict:
        return self.model_dump(include=self.model_fields_set)


class WorkoutStatsRequest(BaseModel):
    months: int = DEFAULT_STATS_MONTHS

    model_config = {"extra": "forbid"}

    @field_validator("months")
    @classmethod
    def months_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("months must be at least 1")
        if v > MAX_STATS_MONTHS:
            raise ValueError(f"months must be at most {MAX_STATS_MONTHS}")
        return v


class ExerciseHistoryRequest(BaseModel):
    name: str
    newest_first: bool = False

    model_config = {"extra": "forbid"}

    @field_validator("name")
    @classmethod
    def name_present(cls, v: str) -> str:
        # Exact-match lookup: only reject blanks, never rewrite the name.
        if not v.strip():
            raise ValueError("exercise name is required")
        return v


def validate_payload(payload, model: Type[M] = WorkoutCreatePayload) -> M:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailure(str(exc)) from exc
