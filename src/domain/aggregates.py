"""Pure reductions behind the catalog, history and statistics endpoints."""

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, Sequence, Tuple, TypedDict, TypeVar

from .normalize import SetLike, exercise_catalog_key

S = TypeVar("S", bound=SetLike)


class CatalogEntry(TypedDict):
    id: str
    name: str
    count: int


class ExerciseHistoryPoint(TypedDict):
    date: str
    weight: float
    reps: int
    sets: int
    workout_id: str


class WorkoutStats(TypedDict):
    total_volume: float
    workout_count: int
    exercise_count: int
    streak: int
    start_date: str
    months: int


def group_catalog(rows: Iterable[Tuple[str, str]]) -> list[CatalogEntry]:
    """Collapse ``(exercise_id, name)`` rows into catalog entries.

    Rows are grouped by their case-folded name. Each entry keeps the id and
    literal name of the first row seen for its group and counts every row
    in the group. The result is sorted by name, case-sensitively.
    """
    grouped: dict[str, CatalogEntry] = {}
    for exercise_id, name in rows:
        key = exercise_catalog_key(name)
        entry = grouped.get(key)
        if entry is None:
            grouped[key] = {"id": exercise_id, "name": name, "count": 1}
        else:
            entry["count"] += 1
    return sorted(grouped.values(), key=lambda entry: entry["name"])


def select_best_set(sets: Sequence[S]) -> S | None:
    """Heaviest set; equal weights prefer more reps, then the earlier set."""
    best: S | None = None
    for candidate in sets:
        if best is None or (candidate.weight, candidate.reps) > (best.weight, best.reps):
            best = candidate
    return best


def compute_streak(workout_dates: Iterable[date], today: date) -> int:
    """Count consecutive training days walking backwards from yesterday.

    A workout logged today never extends the streak; the walk stops at the
    first day without a workout.
    """
    active_days = set(workout_dates)
    streak = 0
    current = today - timedelta(days=1)
    while current in active_days:
        streak += 1
        current -= timedelta(days=1)
    return streak


def months_before(day: date, months: int) -> date:
    """Same calendar day ``months`` months earlier, clamped to the month's end."""
    total = day.year * 12 + (day.month - 1) - months
    year, month_index = divmod(total, 12)
    month = month_index + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))
