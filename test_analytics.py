"""Analytics and record detection over hand-built workouts."""
from datetime import date, datetime, timedelta, timezone
from uuid import uuid4

from fitness_api import analytics
from fitness_api.schemas import Goal, PersonalRecord, Workout, exercise_id_for

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
USER = uuid4()
SQUAT = exercise_id_for("Squat")
BENCH = exercise_id_for("Bench Press")


def _workout(days_ago, exercises, status="completed", duration=45, plan_name=None,
             name="Session", completed=True):
    started = NOW - timedelta(days=days_ago)
    return Workout(
        id=uuid4(), created_at=started, updated_at=started, user_id=USER,
        name=name, plan_name=plan_name, status=status, started_at=started,
        completed_at=started + timedelta(minutes=duration) if status == "completed" else None,
        duration=duration if status == "completed" else None,
        exercises=[
            {
                "exercise_id": exercise_id_for(ex_name),
                "exercise_name": ex_name,
                "sets": [
                    {"set_number": i + 1, "reps": reps, "weight": weight, "completed": completed}
                    for i, (reps, weight) in enumerate(sets)
                ],
            }
            for ex_name, sets in exercises
        ],
    )


def _record(value, record_type="max_weight", improvement=None, days_ago=0, name="Squat"):
    at = NOW - timedelta(days=days_ago)
    return PersonalRecord(
        id=uuid4(), created_at=at, updated_at=at, user_id=USER,
        exercise_id=exercise_id_for(name), exercise_name=name, record_type=record_type,
        value=value, unit="kg", improvement=improvement, workout_id=uuid4(), workout_date=at,
    )


# ─── Streaks ─────────────────────────────────────────────────────────────────

def test_streaks_empty():
    assert analytics.streaks([], date(2026, 3, 15)) == (0, 0)


def test_streaks_current_and_longest():
    days = [date(2026, 3, d) for d in (1, 2, 3, 4, 10, 14, 15)]
    assert analytics.streaks(days, date(2026, 3, 15)) == (2, 4)


def test_streak_broken_when_last_day_is_old():
    days = [date(2026, 3, 1), date(2026, 3, 2)]
    assert analytics.streaks(days, date(2026, 3, 15)) == (0, 2)


def test_streak_counts_yesterday_and_duplicates():
    days = [date(2026, 3, 13), date(2026, 3, 14), date(2026, 3, 14)]
    assert analytics.streaks(days, date(2026, 3, 15)) == (2, 2)


# ─── Workout stats ───────────────────────────────────────────────────────────

def test_workout_stats():
    workouts = [
        _workout(0, [("Squat", [(5, 100), (5, 100)])], plan_name="Legs"),
        _workout(1, [("Squat", [(5, 90)]), ("Bench Press", [(8, 60)])], plan_name="Legs"),
        _workout(40, [("Bench Press", [(8, 50)])], duration=30),
        _workout(2, [("Squat", [(5, 80)])], status="in_progress"),
    ]
    stats = analytics.workout_stats(workouts, NOW)
    assert stats.total_workouts == 4
    assert stats.total_duration == 120
    assert stats.average_duration == 30
    assert stats.total_volume == 1000 + 450 + 480 + 400 + 400
    assert stats.workouts_this_week == 3
    assert stats.workouts_this_month == 3
    assert stats.workouts_this_year == 4
    assert stats.current_streak == 2
    assert stats.longest_streak == 2
    assert stats.most_frequent_exercise == "Squat"
    assert stats.favorite_workout_plan == "Legs"
    assert stats.first_workout_date == NOW - timedelta(days=40)
    assert stats.last_workout_date == NOW


def test_workout_stats_empty():
    stats = analytics.workout_stats([], NOW)
    assert stats.total_workouts == 0
    assert stats.average_duration == 0
    assert stats.most_frequent_exercise is None
    assert stats.last_workout_date is None


# ─── Volume & frequency ──────────────────────────────────────────────────────

def test_volume_progression_weekly():
    workouts = [
        _workout(1, [("Squat", [(5, 100)])]),
        _workout(3, [("Squat", [(5, 100)])]),
        _workout(10, [("Squat", [(10, 50)])]),
        _workout(2, [("Squat", [(5, 100)])], status="in_progress"),
    ]
    buckets = analytics.volume_progression(workouts, "week", NOW)
    assert len(buckets) == 12
    assert buckets[-1].workout_count == 2
    assert buckets[-1].total_volume == 1000
    assert buckets[-1].average_volume == 500
    assert buckets[-2].workout_count == 1
    assert buckets[0].date < buckets[-1].date


def test_volume_progression_monthly_span():
    buckets = analytics.volume_progression([_workout(45, [("Squat", [(5, 100)])])], "month", NOW)
    assert buckets[-2].workout_count == 1
    assert buckets[0].date == NOW - timedelta(days=360)


def test_frequency_daily():
    workouts = [_workout(0, [("Squat", [(5, 100)])]), _workout(13, [("Squat", [(5, 100)])])]
    stats = analytics.frequency_stats(workouts, "daily", NOW)
    assert stats.period == "daily"
    assert len(stats.data) == 14
    assert stats.data[-1].period == "2026-03-15"
    assert stats.data[-1].workout_count == 1
    assert stats.data[0].period == "2026-03-02"
    assert stats.data[0].workout_count == 1


def test_frequency_weekly_labels():
    stats = analytics.frequency_stats([_workout(1, [("Squat", [(5, 100)])])], "weekly", NOW)
    assert [b.period for b in stats.data][-2:] == ["Week 11", "Week 12"]
    assert stats.data[-1].total_duration == 45


def test_frequency_monthly_crosses_year():
    stats = analytics.frequency_stats([_workout(90, [("Squat", [(5, 100)])])], "monthly", NOW)
    labels = [b.period for b in stats.data]
    assert labels[0] == "Apr 2025"
    assert labels[-1] == "Mar 2026"
    assert stats.data[labels.index("Dec 2025")].workout_count == 1


# ─── Exercise analytics ──────────────────────────────────────────────────────

def test_exercise_analytics():
    workouts = [
        _workout(20, [("Squat", [(5, 100)]), ("Bench Press", [(8, 60)])]),
        _workout(60, [("Squat", [(5, 80)])]),
        _workout(2, [("Squat", [(5, 120), (3, 120)])]),
    ]
    records = [_record(120), _record(100, days_ago=20)]
    top = analytics.exercise_analytics(workouts, records, NOW)
    assert [a.exercise_name for a in top] == ["Squat", "Bench Press"]

    squat = top[0]
    assert squat.exercise_id == SQUAT
    assert squat.total_sets == 4
    assert squat.total_reps == 18
    assert squat.total_volume == 400 + 500 + 960
    assert squat.max_weight == 120
    assert squat.personal_records == 2
    assert squat.frequency == 0.5
    assert squat.improvement == 50.0
    assert squat.last_performed == NOW - timedelta(days=2)
    assert top[1].improvement is None


def test_exercise_analytics_single_exercise_and_limit():
    workouts = [_workout(1, [("Squat", [(5, 100)]), ("Bench Press", [(8, 60)])])]
    only = analytics.exercise_analytics(workouts, now=NOW, exercise_id=BENCH)
    assert [a.exercise_name for a in only] == ["Bench Press"]
    assert len(analytics.exercise_analytics(workouts, now=NOW, limit=1)) == 1


# ─── Dashboard & record stats ────────────────────────────────────────────────

def test_recent_activity_newest_first():
    goal = Goal(
        id=uuid4(), created_at=NOW, updated_at=NOW, user_id=USER, title="Squat 120",
        type="strength", target_value=120, current_value=120, unit="kg",
        target_date=NOW, status="completed", completed_at=NOW - timedelta(hours=1),
    )
    workouts = [_workout(d, [("Squat", [(5, 100)])], name=f"W{d}") for d in (1, 2, 3, 4)]
    records = [_record(100, days_ago=5), _record(90, days_ago=6), _record(80, days_ago=7)]
    items = analytics.recent_activity(workouts, records, [goal])
    assert len(items) == 5
    assert items[0].type == "goal"
    assert items[0].description == "Goal achieved: Squat 120"
    assert [i.description for i in items[1:4]] == ["Completed W1", "Completed W2", "Completed W3"]
    assert items[4].type == "record"


def test_dashboard_shape():
    dash = analytics.dashboard([_workout(1, [("Squat", [(5, 100)])])], [], [], NOW)
    assert dash.workout_stats.total_workouts == 1
    assert len(dash.volume_progression) == 12
    assert dash.frequency_stats.period == "weekly"
    assert dash.top_exercises[0].exercise_name == "Squat"


def test_record_stats():
    records = [
        _record(100, improvement=5.0, days_ago=1),
        _record(110, improvement=15.0, days_ago=2),
        _record(60, improvement=8.0, days_ago=3, name="Bench Press"),
        _record(50, days_ago=100, name="Bench Press"),
    ]
    stats = analytics.record_stats(records, NOW)
    assert stats.total_records == 4
    assert stats.records_this_month == 3
    assert stats.records_this_year == 3
    assert stats.most_improved_exercise == "Squat"
    assert stats.biggest_improvement == 15.0
    assert [r.value for r in stats.recent_records] == [100, 110, 60, 50]


def test_record_stats_empty():
    stats = analytics.record_stats([], NOW)
    assert stats.total_records == 0
    assert stats.most_improved_exercise is None
    assert stats.biggest_improvement is None


# ─── Record detection ────────────────────────────────────────────────────────

def test_detect_first_records():
    workout = _workout(0, [("Squat", [(5, 100), (8, 80)])])
    found = analytics.detect_records(workout, [])
    by_type = {r.record_type: r for r in found}
    assert by_type["max_weight"].value == 100
    assert by_type["max_reps"].value == 8
    assert by_type["max_reps"].unit == "reps"
    assert by_type["max_volume"].value == 640
    assert by_type["max_weight"].previous_record is None
    assert by_type["max_weight"].workout_id == workout.id
    assert by_type["max_weight"].workout_date == workout.completed_at


def test_detect_only_improvements():
    workout = _workout(0, [("Squat", [(5, 110)])])
    existing = [_record(100), _record(10, record_type="max_reps"), _record(600, "max_volume")]
    found = analytics.detect_records(workout, existing, weight_unit="lbs")
    assert [r.record_type for r in found] == ["max_weight"]
    assert found[0].previous_record == 100
    assert found[0].improvement == 10.0
    assert found[0].unit == "lbs"


def test_detect_ignores_uncompleted_sets_in_progress():
    workout = _workout(0, [("Squat", [(5, 100)])], status="in_progress", completed=False)
    assert analytics.detect_records(workout, []) == []


def test_detect_ignores_other_users_records():
    other = _record(500)
    other.user_id = uuid4()
    found = analytics.detect_records(_workout(0, [("Squat", [(5, 100)])]), [other])
    assert "max_weight" in {r.record_type for r in found}


def test_detect_skips_bodyweight_weight_records():
    found = analytics.detect_records(_workout(0, [("Pull-ups", [(8, None)])]), [])
    assert [r.record_type for r in found] == ["max_reps"]
