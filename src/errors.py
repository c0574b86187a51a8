"""Failure taxonomy shared by the service layer and both request surfaces."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class WorkoutTrackerError(Exception):
    """Base exception for workout tracker errors."""

    status_code = 500


class ValidationFailure(WorkoutTrackerError, ValueError):
    """Raised when input is malformed or incomplete, before any store call."""

    status_code = 400


class AuthenticationError(WorkoutTrackerError):
    """Raised when a request carries no usable credential."""

    status_code = 401


class NotFoundError(WorkoutTrackerError):
    """Raised when a requested workout does not exist for the caller."""

    status_code = 404


class StoreError(WorkoutTrackerError):
    """Raised when a database call fails; ``stage`` names the failing step."""

    status_code = 500

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.detail = message


@contextmanager
def store_stage(stage: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        detail = str(exc) or repr(exc)
        logger.error("Store failure during %s: %s", stage, detail)
        raise StoreError(stage, detail) from exc
