from __future__ import annotations

from typing import Callable, TypeVar

from pydantic import AnyHttpUrl
from sqlalchemy.orm import Session

from mcp.server.auth.middleware.auth_context import get_access_token
from mcp.server.auth.settings import AuthSettings
from mcp.server.fastmcp import FastMCP

from src.api import ApiContext, build_routes
from src.auth import AccountAccessToken, GoogleTokenVerifier
from src.config import (
    AUTH_SERVER_URL,
    DEFAULT_STATS_MONTHS,
    GOOGLE_CLIENT_ID,
    HOST,
    PORT,
    RESOURCE_SERVER_URL,
)
from src.db.session import SessionLocal
from src.domain.payloads import (
    ExerciseHistoryRequest,
    WorkoutCreatePayload,
    WorkoutStatsRequest,
    WorkoutUpdatePayload,
    validate_payload,
)
from src.errors import AuthenticationError, StoreError, WorkoutTrackerError
from src.service.catalog import ExerciseCatalogCache
from src.service.stats import get_exercise_history, get_workout_stats
from src.service.workouts import (
    create_workout,
    delete_workout,
    get_workout,
    list_workouts,
    update_workout,
)

T = TypeVar("T")

token_verifier = GoogleTokenVerifier(GOOGLE_CLIENT_ID)
exercise_catalog = ExerciseCatalogCache()

mcp = FastMCP(
    "workout-stats-mcp",
    instructions=(
        "Log workouts and read back exercise history, personal bests and "
        "training statistics for the authenticated account."
    ),
    host=HOST,
    port=PORT,
    auth=AuthSettings(
        issuer_url=AnyHttpUrl(AUTH_SERVER_URL),
        resource_server_url=RESOURCE_SERVER_URL,
    ),
    token_verifier=token_verifier,
)

api_context = ApiContext(
    session_factory=SessionLocal, verifier=token_verifier, catalog=exercise_catalog
)
for route in build_routes(api_context):
    mcp.custom_route(route.path, methods=sorted(route.methods or []))(route.endpoint)


def handle_list_workouts(account_id: str, session: Session) -> list[dict]:
    return list_workouts(session, account_id)


def handle_get_workout(account_id: str, workout_id: str, session: Session) -> dict:
    return get_workout(session, workout_id, account_id)


def handle_add_workout(
    account_id: str, payload: WorkoutCreatePayload | dict, session: Session, email: str | None = None
) -> dict:
    return {"id": create_workout(session, account_id, payload, email=email)}


def handle_update_workout(
    account_id: str, workout_id: str, payload: WorkoutUpdatePayload | dict, session: Session
) -> dict:
    update_workout(session, workout_id, payload, account_id)
    return {"success": True}


def handle_delete_workout(account_id: str, workout_id: str, session: Session) -> dict:
    delete_workout(session, workout_id, account_id)
    return {"success": True}


def handle_list_exercises(
    account_id: str, session: Session, catalog: ExerciseCatalogCache = exercise_catalog
) -> list[dict]:
    return catalog.get(session, account_id)


def handle_get_exercise_history(account_id: str, payload: dict, session: Session) -> list[dict]:
    request = validate_payload(payload, ExerciseHistoryRequest)
    return get_exercise_history(
        session, account_id, request.name, newest_first=request.newest_first
    )


def handle_get_workout_stats(account_id: str, payload: dict, session: Session) -> dict:
    request = validate_payload(payload, WorkoutStatsRequest)
    return get_workout_stats(session, account_id, request.months)


def _current_account() -> AccountAccessToken:
    token = get_access_token()
    if not isinstance(token, AccountAccessToken):
        raise AuthenticationError("An authenticated account is required")
    return token


def _call_tool(action: str, fn: Callable[[AccountAccessToken, Session], T]) -> T:
    try:
        account = _current_account()
        with SessionLocal() as session:
            return fn(account, session)
    except StoreError as exc:
        raise ValueError(f"Database error while trying to {action} ({exc.stage}): {exc.detail}") from exc
    except WorkoutTrackerError as exc:
        detail = str(exc) or repr(exc)
        raise ValueError(f"Could not {action}: {detail}") from exc


@mcp.tool(name="list_workouts")
def list_workouts_tool() -> list[dict]:
    """List the account's workouts, most recent date first."""
    return _call_tool(
        "list workouts",
        lambda account, session: handle_list_workouts(account.account_id, session),
    )


@mcp.tool(name="get_workout")
def get_workout_tool(workout_id: str) -> dict:
    """Fetch one workout with its exercises and sets."""
    return _call_tool(
        "fetch workout",
        lambda account, session: handle_get_workout(account.account_id, workout_id, session),
    )


@mcp.tool(name="add_workout")
def add_workout_tool(payload: WorkoutCreatePayload) -> dict:
    """Validate and persist a workout with its exercises and sets."""
    return _call_tool(
        "add workout",
        lambda account, session: handle_add_workout(
            account.account_id, payload, session, email=account.email
        ),
    )


@mcp.tool(name="update_workout")
def update_workout_tool(workout_id: str, payload: WorkoutUpdatePayload) -> dict:
    """Change the name, date or notes of a workout."""
    return _call_tool(
        "update workout",
        lambda account, session: handle_update_workout(
            account.account_id, workout_id, payload, session
        ),
    )


@mcp.tool(name="delete_workout")
def delete_workout_tool(workout_id: str) -> dict:
    """Delete a workout together with its exercises and sets."""
    return _call_tool(
        "delete workout",
        lambda account, session: handle_delete_workout(account.account_id, workout_id, session),
    )


@mcp.tool(name="list_exercises")
def list_exercises_tool() -> list[dict]:
    """List distinct exercise names with how often each was logged."""
    return _call_tool(
        "list exercises",
        lambda account, session: handle_list_exercises(account.account_id, session),
    )


@mcp.tool(name="get_exercise_history")
def get_exercise_history_tool(name: str, newest_first: bool = False) -> list[dict]:
    """Best set per workout for an exercise, matched by exact name."""
    return _call_tool(
        "fetch exercise history",
        lambda account, session: handle_get_exercise_history(
            account.account_id, {"name": name, "newest_first": newest_first}, session
        ),
    )


@mcp.tool(name="get_workout_stats")
def get_workout_stats_tool(months: int = DEFAULT_STATS_MONTHS) -> dict:
    """Total volume, workout count, exercise count and current streak."""
    return _call_tool(
        "compute workout statistics",
        lambda account, session: handle_get_workout_stats(
            account.account_id, {"months": months}, session
        ),
    )
