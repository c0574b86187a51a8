from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Dict, List

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, contains_eager, selectinload

from src.config import DEFAULT_STATS_MONTHS, MAX_STATS_MONTHS
from src.db.models import Exercise, Workout, WorkoutSet
from src.domain.aggregates import (
    ExerciseHistoryPoint,
    WorkoutStats,
    compute_streak,
    months_before,
    select_best_set,
)
from src.errors import ValidationFailure, store_stage

logger = logging.getLogger(__name__)


def get_exercise_history(
    session: Session, account_id: str, exercise_name: str, newest_first: bool = False
) -> List[ExerciseHistoryPoint]:
    """Best set per workout for one exercise name (exact, case-sensitive match).

    Points are ordered by workout date ascending unless ``newest_first`` is set.
    Sets of every same-named entry within a workout are pooled into one point.
    """
    with store_stage("history"):
        with session.begin():
            exercises = (
                session.execute(
                    select(Exercise)
                    .join(Exercise.workout)
                    .where(Workout.user_id == account_id, Exercise.name == exercise_name)
                    .options(contains_eager(Exercise.workout), selectinload(Exercise.sets))
                    .order_by(
                        Workout.workout_date,
                        Workout.created_at,
                        Workout.id,
                        Exercise.position,
                    )
                )
                .scalars()
                .all()
            )

            per_workout: Dict[uuid.UUID, Dict] = {}
            for exercise in exercises:
                bucket = per_workout.setdefault(
                    exercise.workout_id,
                    {"date": exercise.workout.workout_date, "sets": []},
                )
                bucket["sets"].extend(exercise.sets)

            history: List[ExerciseHistoryPoint] = []
            for workout_id, bucket in per_workout.items():
                best = select_best_set(bucket["sets"])
                history.append(
                    {
                        "date": bucket["date"].isoformat(),
                        "weight": best.weight if best else 0.0,
                        "reps": best.reps if best else 0,
                        "sets": len(bucket["sets"]),
                        "workout_id": str(workout_id),
                    }
                )

    if newest_first:
        history.reverse()
    return history


def get_workout_stats(
    session: Session,
    account_id: str,
    months: int = DEFAULT_STATS_MONTHS,
    today: date | None = None,
) -> WorkoutStats:
    """Volume, workout and exercise counts over the last ``months`` months, plus streak.

    The window runs from the same calendar day ``months`` months ago through
    ``today``, both inclusive. The streak ignores the window and counts the
    consecutive days with a workout ending yesterday.
    """
    if months < 1:
        raise ValidationFailure("months must be at least 1")
    if months > MAX_STATS_MONTHS:
        raise ValidationFailure(f"months must be at most {MAX_STATS_MONTHS}")

    today = today or date.today()
    start_date = months_before(today, months)

    with session.begin():
        with store_stage("statistics"):
            totals = session.execute(
                select(
                    func.coalesce(func.sum(WorkoutSet.weight * WorkoutSet.reps), 0).label(
                        "total_volume"
                    ),
                    func.count(distinct(Workout.id)).label("workout_count"),
                    func.count(distinct(func.lower(Exercise.name))).label("exercise_count"),
                )
                .select_from(Workout)
                .outerjoin(Exercise, Exercise.workout_id == Workout.id)
                .outerjoin(WorkoutSet, WorkoutSet.exercise_id == Exercise.id)
                .where(
                    Workout.user_id == account_id,
                    Workout.workout_date >= start_date,
                    Workout.workout_date <= today,
                )
            ).one()

        with store_stage("streak"):
            workout_dates = (
                session.execute(
                    select(distinct(Workout.workout_date)).where(Workout.user_id == account_id)
                )
                .scalars()
                .all()
            )

    streak = compute_streak(workout_dates, today)
    logger.debug(
        "Computed stats for account %s since %s: %s workouts, streak %s",
        account_id,
        start_date,
        totals.workout_count,
        streak,
    )
    return {
        "total_volume": float(totals.total_volume or 0),
        "workout_count": int(totals.workout_count or 0),
        "exercise_count": int(totals.exercise_count or 0),
        "streak": streak,
        "start_date": start_date.isoformat(),
        "months": months,
    }
