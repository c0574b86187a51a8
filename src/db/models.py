from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    Text,
    Uuid,
    desc,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    __tablename__ = "account"

    # Subject identifier issued by the identity provider.
    id: Mapped[str] = mapped_column(Text, primary_key=True)
    email: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class Workout(Base):
    __tablename__ = "workout"
    __table_args__ = (
        Index("ix_workout_user_date_desc", "user_id", desc("workout_date")),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(Text, ForeignKey("account.id"), nullable=False)
    workout_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    account: Mapped[Account] = relationship("Account")
    exercises: Mapped[list["Exercise"]] = relationship(
        "Exercise", back_populates="workout", order_by="Exercise.position"
    )


class Exercise(Base):
    __tablename__ = "exercise"
    __table_args__ = (
        Index("ix_exercise_workout_position", "workout_id", "position"),
        Index("ix_exercise_name", "name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workout_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workout.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    workout: Mapped[Workout] = relationship("Workout", back_populates="exercises")
    sets: Mapped[list["WorkoutSet"]] = relationship(
        "WorkoutSet", back_populates="exercise", order_by="WorkoutSet.set_index"
    )


class WorkoutSet(Base):
    __tablename__ = "workout_set"
    __table_args__ = (
        Index("ix_workout_set_exercise_index", "exercise_id", "set_index"),
        CheckConstraint("reps >= 0", name="ck_workout_set_reps_nonnegative"),
        CheckConstraint("weight >= 0", name="ck_workout_set_weight_nonnegative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    exercise_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("exercise.id"), nullable=False
    )
    set_index: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    reps: Mapped[int] = mapped_column(Integer, nullable=False)

    exercise: Mapped[Exercise] = relationship("Exercise", back_populates="sets")
