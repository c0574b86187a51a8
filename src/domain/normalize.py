from __future__ import annotations

from typing import Iterable, Protocol


class SetLike(Protocol):
    weight: float
    reps: int


def exercise_catalog_key(name: str) -> str:
    """Grouping key for exercise names; display keeps the first-seen casing."""
    return name.casefold()


def set_volume(weight: float, reps: int) -> float:
    return weight * reps


def total_volume(sets: Iterable[SetLike]) -> float:
    return sum((set_volume(s.weight, s.reps) for s in sets), 0.0)
