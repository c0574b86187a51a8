from __future__ import annotations

import logging
import uuid
from typing import Dict, List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from src.db.models import Account, Exercise, Workout, WorkoutSet
from src.domain.normalize import total_volume
from src.domain.payloads import (
    WorkoutCreatePayload,
    WorkoutUpdatePayload,
    validate_payload,
)
from src.errors import NotFoundError, store_stage

logger = logging.getLogger(__name__)


def parse_workout_id(workout_id: str | uuid.UUID) -> uuid.UUID:
    if isinstance(workout_id, uuid.UUID):
        return workout_id
    try:
        return uuid.UUID(str(workout_id))
    except ValueError as exc:
        raise NotFoundError(f"Workout {workout_id} not found") from exc


def _ensure_account(session: Session, account_id: str, email: str | None) -> Account:
    account = session.get(Account, account_id)
    if account:
        return account
    account = Account(id=account_id, email=email)
    session.add(account)
    session.flush()
    return account


def _load_owned_workout(
    session: Session, workout_id: uuid.UUID, account_id: str | None
) -> Workout:
    workout = session.get(Workout, workout_id)
    if workout is None or (account_id is not None and workout.user_id != account_id):
        raise NotFoundError(f"Workout {workout_id} not found")
    return workout


def _workout_summary(workout: Workout) -> Dict:
    return {
        "id": str(workout.id),
        "user_id": workout.user_id,
        "date": workout.workout_date.isoformat(),
        "name": workout.name,
        "notes": workout.notes,
        "created_at": workout.created_at.isoformat() if workout.created_at else None,
    }


def list_workouts(session: Session, account_id: str) -> List[Dict]:
    with store_stage("workouts"):
        with session.begin():
            workouts = (
                session.execute(
                    select(Workout)
                    .where(Workout.user_id == account_id)
                    .order_by(Workout.workout_date.desc(), Workout.created_at.desc())
                )
                .scalars()
                .all()
            )
            return [_workout_summary(workout) for workout in workouts]


def get_workout(
    session: Session, workout_id: str | uuid.UUID, account_id: str | None = None
) -> Dict:
    workout_uuid = parse_workout_id(workout_id)

    with store_stage("workout"):
        with session.begin():
            workout = (
                session.execute(
                    select(Workout)
                    .where(Workout.id == workout_uuid)
                    .options(selectinload(Workout.exercises).selectinload(Exercise.sets))
                )
                .scalars()
                .first()
            )
            if workout is None or (account_id is not None and workout.user_id != account_id):
                raise NotFoundError(f"Workout {workout_uuid} not found")

            exercises = []
            for ex in workout.exercises:
                exercises.append(
                    {
                        "id": str(ex.id),
                        "name": ex.name,
                        "position": ex.position,
                        "volume": total_volume(ex.sets),
                        "sets": [
                            {
                                "id": str(ws.id),
                                "set_index": ws.set_index,
                                "weight": ws.weight,
                                "reps": ws.reps,
                            }
                            for ws in ex.sets
                        ],
                    }
                )

            result = _workout_summary(workout)
            result["exercises"] = exercises
            result["volume"] = total_volume(s for ex in workout.exercises for s in ex.sets)
            return result


def create_workout(
    session: Session,
    account_id: str,
    payload: Dict | WorkoutCreatePayload,
    email: str | None = None,
) -> str:
    """Persist a workout with its exercises and sets as one unit.

    Input is validated before the store is touched. Rows are written in
    dependency order (workout, exercises, sets) inside one transaction; a
    failing step raises ``StoreError`` whose ``stage`` names that step and
    nothing from the attempt is kept.
    """
    data = validate_payload(payload, WorkoutCreatePayload)

    with store_stage("commit"):
        with session.begin():
            with store_stage("account"):
                _ensure_account(session, account_id, email)

            with store_stage("workout"):
                workout = Workout(
                    id=uuid.uuid4(),
                    user_id=account_id,
                    workout_date=data.workout_date,
                    name=data.name,
                    notes=data.notes,
                )
                session.add(workout)
                session.flush()

            with store_stage("exercises"):
                exercise_rows = [
                    Exercise(workout_id=workout.id, name=exercise.name, position=position)
                    for position, exercise in enumerate(data.exercises)
                ]
                session.add_all(exercise_rows)
                session.flush()

            # Sets follow their exercise by position, so repeated names stay distinct.
            with store_stage("sets"):
                set_rows = [
                    WorkoutSet(
                        exercise_id=exercise_row.id,
                        set_index=set_index,
                        weight=set_data.weight,
                        reps=set_data.reps,
                    )
                    for exercise_row, exercise in zip(exercise_rows, data.exercises)
                    for set_index, set_data in enumerate(exercise.sets)
                ]
                if set_rows:
                    session.add_all(set_rows)
                    session.flush()

            workout_id = str(workout.id)

    logger.info(
        "Created workout %s for account %s with %d exercises and %d sets",
        workout_id,
        account_id,
        len(exercise_rows),
        len(set_rows),
    )
    return workout_id


def update_workout(
    session: Session,
    workout_id: str | uuid.UUID,
    payload: Dict | WorkoutUpdatePayload,
    account_id: str | None = None,
) -> None:
    data = validate_payload(payload, WorkoutUpdatePayload)
    workout_uuid = parse_workout_id(workout_id)
    changes = data.changes()

    with store_stage("workout"):
        with session.begin():
            workout = _load_owned_workout(session, workout_uuid, account_id)
            for field, value in changes.items():
                setattr(workout, field, value)

    logger.info("Updated workout %s fields: %s", workout_uuid, sorted(changes))


def delete_workout(
    session: Session, workout_id: str | uuid.UUID, account_id: str | None = None
) -> None:
    """Remove a workout, deleting its sets and exercises before the workout row."""
    workout_uuid = parse_workout_id(workout_id)

    with store_stage("commit"):
        with session.begin():
            with store_stage("workout"):
                _load_owned_workout(session, workout_uuid, account_id)

            exercise_ids = select(Exercise.id).where(Exercise.workout_id == workout_uuid)

            with store_stage("sets"):
                session.execute(
                    delete(WorkoutSet).where(WorkoutSet.exercise_id.in_(exercise_ids))
                )

            with store_stage("exercises"):
                session.execute(delete(Exercise).where(Exercise.workout_id == workout_uuid))

            with store_stage("workout"):
                session.execute(delete(Workout).where(Workout.id == workout_uuid))

    logger.info("Deleted workout %s", workout_uuid)
