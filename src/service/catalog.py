from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.config import CATALOG_CACHE_TTL_SECONDS
from src.db.models import Exercise, Workout
from src.domain.aggregates import CatalogEntry, group_catalog
from src.errors import store_stage

logger = logging.getLogger(__name__)


def build_exercise_catalog(session: Session, account_id: str) -> List[CatalogEntry]:
    """Distinct exercise names an account has logged, with occurrence counts."""
    with session.begin():
        with store_stage("workouts"):
            workout_ids = (
                session.execute(select(Workout.id).where(Workout.user_id == account_id))
                .scalars()
                .all()
            )

        if not workout_ids:
            return []

        with store_stage("exercises"):
            rows = session.execute(
                select(Exercise.id, Exercise.name)
                .join(Workout, Exercise.workout_id == Workout.id)
                .where(Exercise.workout_id.in_(workout_ids))
                .order_by(Workout.created_at, Workout.id, Exercise.position)
            ).all()

    return group_catalog((str(exercise_id), name) for exercise_id, name in rows)


@dataclass
class CachedCatalog:
    entries: List[CatalogEntry]
    computed_at: float


class ExerciseCatalogCache:
    """Per-account catalog memo that is rebuilt once its entry is ``ttl_seconds`` old.

    Writes do not evict entries: an exercise logged after the catalog was
    computed shows up only once the cached entry expires.
    """

    def __init__(
        self,
        ttl_seconds: float = CATALOG_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedCatalog] = {}

    def get(self, session: Session, account_id: str) -> List[CatalogEntry]:
        now = self._clock()
        cached = self._entries.get(account_id)
        if cached and now - cached.computed_at < self.ttl_seconds:
            logger.debug("Exercise catalog cache hit for account %s", account_id)
            return cached.entries

        logger.debug("Exercise catalog cache miss for account %s", account_id)
        entries = build_exercise_catalog(session, account_id)
        if entries:
            self._entries[account_id] = CachedCatalog(entries=entries, computed_at=now)
        return entries

    def invalidate(self, account_id: str | None = None) -> None:
        if account_id is None:
            self._entries.clear()
        else:
            self._entries.pop(account_id, None)
