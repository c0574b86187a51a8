from datetime import date, timedelta

import pytest

from src.errors import ValidationFailure
from src.service.stats import get_exercise_history, get_workout_stats
from src.service.workouts import create_workout, get_workout

TODAY = date(2024, 6, 15)


def log_workout(session, account_id, workout_date, exercises, name="Session"):
    return create_workout(
        session,
        account_id,
        {"name": name, "date": workout_date.isoformat(), "exercises": exercises},
    )


def bench(*sets):
    return {"name": "Bench Press", "sets": [{"weight": w, "reps": r} for w, r in sets]}


def test_push_day_round_trip(db_session, account_id):
    workout_id = create_workout(
        db_session,
        account_id,
        {
            "name": "Push Day",
            "date": "2024-03-01",
            "exercises": [
                {
                    "name": "Bench Press",
                    "sets": [{"weight": 80, "reps": 8}, {"weight": 85, "reps": 5}],
                }
            ],
        },
    )

    history = get_exercise_history(db_session, account_id, "Bench Press")

    assert history == [
        {"date": "2024-03-01", "weight": 85, "reps": 5, "sets": 2, "workout_id": workout_id}
    ]


def test_history_for_unknown_exercise_is_empty(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [bench((80, 8))])

    assert get_exercise_history(db_session, account_id, "Snatch") == []


def test_history_name_match_is_exact(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [bench((80, 8))])

    assert get_exercise_history(db_session, account_id, "bench press") == []


def test_history_is_ordered_by_date(db_session, account_id, other_account_id):
    later = log_workout(db_session, account_id, date(2024, 3, 8), [bench((90, 3))])
    earlier = log_workout(db_session, account_id, date(2024, 3, 1), [bench((80, 8), (85, 5))])
    log_workout(db_session, other_account_id, date(2024, 3, 4), [bench((140, 1))])

    history = get_exercise_history(db_session, account_id, "Bench Press")
    assert [point["workout_id"] for point in history] == [earlier, later]
    assert [point["weight"] for point in history] == [85, 90]

    newest_first = get_exercise_history(db_session, account_id, "Bench Press", newest_first=True)
    assert [point["workout_id"] for point in newest_first] == [later, earlier]


def test_history_tie_on_weight_prefers_more_reps(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [bench((100, 3), (100, 5), (95, 8))])

    (point,) = get_exercise_history(db_session, account_id, "Bench Press")
    assert (point["weight"], point["reps"], point["sets"]) == (100, 5, 3)


def test_history_pools_repeated_entries_in_one_workout(db_session, account_id):
    log_workout(
        db_session,
        account_id,
        TODAY,
        [bench((60, 10)), {"name": "Row", "sets": []}, bench((70, 6), (70, 6))],
    )

    (point,) = get_exercise_history(db_session, account_id, "Bench Press")
    assert (point["weight"], point["reps"], point["sets"]) == (70, 6, 3)


def test_history_exercise_without_sets(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [{"name": "Plank", "sets": []}])

    (point,) = get_exercise_history(db_session, account_id, "Plank")
    assert (point["weight"], point["reps"], point["sets"]) == (0, 0, 0)
    assert isinstance(point["weight"], float)


def test_stats_aggregate_window(db_session, account_id, other_account_id):
    inside_id = log_workout(
        db_session,
        account_id,
        date(2024, 5, 1),
        [bench((80, 8), (85, 5)), {"name": "squat", "sets": [{"weight": 100, "reps": 5}]}],
    )
    log_workout(
        db_session,
        account_id,
        date(2024, 3, 15),
        [{"name": "Squat", "sets": [{"weight": 90, "reps": 5}]}],
    )
    # Outside the three month window.
    log_workout(db_session, account_id, date(2024, 3, 14), [bench((200, 10))])
    log_workout(db_session, account_id, date(2024, 6, 16), [bench((200, 10))])
    log_workout(db_session, other_account_id, date(2024, 5, 1), [bench((200, 10))])

    stats = get_workout_stats(db_session, account_id, months=3, today=TODAY)

    assert stats["start_date"] == "2024-03-15"
    assert stats["months"] == 3
    assert stats["workout_count"] == 2
    assert stats["exercise_count"] == 2
    assert stats["total_volume"] == pytest.approx(80 * 8 + 85 * 5 + 100 * 5 + 90 * 5)
    assert get_workout(db_session, inside_id)["volume"] == pytest.approx(80 * 8 + 85 * 5 + 100 * 5)


def test_stats_count_workouts_without_sets(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [{"name": "Plank", "sets": []}])

    stats = get_workout_stats(db_session, account_id, today=TODAY)

    assert stats["workout_count"] == 1
    assert stats["exercise_count"] == 1
    assert stats["total_volume"] == 0


def test_stats_for_new_account(db_session, account_id):
    stats = get_workout_stats(db_session, account_id, today=TODAY)

    assert stats == {
        "total_volume": 0.0,
        "workout_count": 0,
        "exercise_count": 0,
        "streak": 0,
        "start_date": "2024-03-15",
        "months": 3,
    }


def test_streak_ignores_today_and_repeated_days(db_session, account_id):
    for days_ago in (0, 1, 2, 3, 5):
        log_workout(db_session, account_id, TODAY - timedelta(days=days_ago), [bench((60, 10))])
    log_workout(db_session, account_id, TODAY - timedelta(days=2), [bench((60, 10))], name="Second")

    assert get_workout_stats(db_session, account_id, months=1, today=TODAY)["streak"] == 3


def test_streak_broken_yesterday(db_session, account_id):
    log_workout(db_session, account_id, TODAY, [bench((60, 10))])
    log_workout(db_session, account_id, TODAY - timedelta(days=2), [bench((60, 10))])

    assert get_workout_stats(db_session, account_id, today=TODAY)["streak"] == 0


def test_stats_reject_non_positive_months(db_session, account_id):
    with pytest.raises(ValidationFailure):
        get_workout_stats(db_session, account_id, months=0, today=TODAY)


def test_stats_reject_window_beyond_calendar(db_session, account_id):
    with pytest.raises(ValidationFailure):
        get_workout_stats(db_session, account_id, months=30000, today=TODAY)
