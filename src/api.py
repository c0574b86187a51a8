"""JSON request surface: workouts, exercise catalog, history and statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import anyio
from sqlalchemy.orm import Session, sessionmaker
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from mcp.server.auth.provider import TokenVerifier

from src.auth import AccountAccessToken, authenticate_request
from src.domain.payloads import (
    ExerciseHistoryRequest,
    WorkoutStatsRequest,
    validate_payload,
)
from src.errors import ValidationFailure, WorkoutTrackerError
from src.service.catalog import ExerciseCatalogCache
from src.service.stats import get_exercise_history, get_workout_stats
from src.service.workouts import (
    create_workout,
    delete_workout,
    get_workout,
    list_workouts,
    update_workout,
)

logger = logging.getLogger(__name__)


@dataclass
class ApiContext:
    session_factory: sessionmaker
    verifier: TokenVerifier
    catalog: ExerciseCatalogCache


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationFailure("Request body must be valid JSON") from exc


def _run_in_session(context: ApiContext, fn: Callable[[Session], Any]) -> Any:
    with context.session_factory() as session:
        return fn(session)


def _endpoint(
    context: ApiContext,
    handler: Callable[[Request, AccountAccessToken, ApiContext], Awaitable[Response]],
) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        try:
            account = await authenticate_request(request, context.verifier)
            return await handler(request, account, context)
        except WorkoutTrackerError as exc:
            if exc.status_code >= 500:
                logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse({"error": str(exc)}, status_code=exc.status_code)
        except Exception:
            logger.exception("Unexpected error in %s %s", request.method, request.url.path)
            return JSONResponse({"error": "Internal server error"}, status_code=500)

    return endpoint


async def _in_thread(context: ApiContext, fn: Callable[[Session], Any]) -> Any:
    return await anyio.to_thread.run_sync(_run_in_session, context, fn)


async def workouts_index(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    workouts = await _in_thread(
        context, lambda session: list_workouts(session, account.account_id)
    )
    return JSONResponse(workouts)


async def workouts_create(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    body = await _read_json(request)
    if not isinstance(body, dict):
        raise ValidationFailure("Invalid workout data")

    def run(session: Session) -> str:
        return create_workout(session, account.account_id, body, email=account.email)

    workout_id = await _in_thread(context, run)
    return JSONResponse({"id": workout_id}, status_code=201)


async def workout_detail(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    workout_id = request.path_params["workout_id"]

    if request.method == "GET":
        workout = await _in_thread(
            context, lambda session: get_workout(session, workout_id, account.account_id)
        )
        return JSONResponse(workout)

    if request.method == "PUT":
        body = await _read_json(request)
        if not isinstance(body, dict):
            raise ValidationFailure("Invalid workout data")
        await _in_thread(
            context,
            lambda session: update_workout(session, workout_id, body, account.account_id),
        )
        return JSONResponse({"success": True})

    await _in_thread(
        context, lambda session: delete_workout(session, workout_id, account.account_id)
    )
    return JSONResponse({"success": True})


async def exercises_index(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    exercises = await _in_thread(
        context, lambda session: context.catalog.get(session, account.account_id)
    )
    return JSONResponse(exercises)


async def exercise_history(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    params = request.query_params
    if not params.get("name"):
        raise ValidationFailure("Exercise name is required")
    order = params.get("order", "asc")
    if order not in ("asc", "desc"):
        raise ValidationFailure("order must be 'asc' or 'desc'")

    query = validate_payload(
        {"name": params["name"], "newest_first": order == "desc"}, ExerciseHistoryRequest
    )
    history = await _in_thread(
        context,
        lambda session: get_exercise_history(
            session, account.account_id, query.name, newest_first=query.newest_first
        ),
    )
    return JSONResponse(history)


async def workout_stats(request: Request, account: AccountAccessToken, context: ApiContext) -> Response:
    raw_months = request.query_params.get("months")
    payload = {} if raw_months is None else {"months": raw_months}
    query = validate_payload(payload, WorkoutStatsRequest)
    stats = await _in_thread(
        context,
        lambda session: get_workout_stats(session, account.account_id, query.months),
    )
    return JSONResponse(stats)


def build_routes(context: ApiContext) -> list[Route]:
    return [
        Route("/api/workouts", _endpoint(context, workouts_index), methods=["GET"]),
        Route("/api/workouts", _endpoint(context, workouts_create), methods=["POST"]),
        Route(
            "/api/workouts/{workout_id}",
            _endpoint(context, workout_detail),
            methods=["GET", "PUT", "DELETE"],
        ),
        Route("/api/exercises", _endpoint(context, exercises_index), methods=["GET"]),
        Route("/api/exercises/history", _endpoint(context, exercise_history), methods=["GET"]),
        Route("/api/stats", _endpoint(context, workout_stats), methods=["GET"]),
    ]
