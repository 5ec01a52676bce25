"""Schema tests: camelCase aliases, derived variants, dates and the envelope."""
from datetime import datetime, timezone
from uuid import UUID

import pytest

from fitness_api.errors import ValidationFailed
from fitness_api.schemas import (
    CreateGoal,
    CreateWorkoutPlan,
    DateRange,
    Goal,
    UpdateWorkout,
    UpdateWorkoutPlan,
    Workout,
    WorkoutPlan,
    exercise_id_for,
    issues_from,
    validate,
)

USER_ID = "11111111-1111-4111-8111-111111111111"

LEG_DAY = {
    "name": "Leg Day",
    "exercises": [{"name": "Squat", "sets": 3, "reps": 10}],
    "duration": 40,
    "difficulty": "beginner",
    "category": "strength",
    "createdBy": USER_ID,
}


# ─── Derived variants ────────────────────────────────────────────────────────

def test_create_variant_drops_server_fields():
    fields = set(CreateWorkoutPlan.model_fields)
    assert not fields & {"id", "created_at", "updated_at"}
    assert fields == set(WorkoutPlan.model_fields) - {"id", "created_at", "updated_at"}


def test_create_variant_keeps_constraints():
    with pytest.raises(ValidationFailed) as exc:
        validate(CreateWorkoutPlan, {**LEG_DAY, "duration": 0})
    assert [i.path for i in exc.value.details] == ["duration"]


def test_create_variant_keeps_defaults():
    plan = validate(CreateWorkoutPlan, LEG_DAY)
    assert plan.is_public is False
    assert plan.created_by == UUID(USER_ID)


def test_create_goal_omits_completed_at():
    assert "completed_at" not in CreateGoal.model_fields
    assert "completed_at" in Goal.model_fields


def test_partial_variant_all_optional():
    update = validate(UpdateWorkoutPlan, {})
    assert update.model_dump(exclude_unset=True) == {}

    update = validate(UpdateWorkoutPlan, {"duration": 50})
    assert update.model_dump(exclude_unset=True) == {"duration": 50}


def test_partial_variant_still_validates_given_fields():
    with pytest.raises(ValidationFailed):
        validate(UpdateWorkoutPlan, {"difficulty": "expert"})
    with pytest.raises(ValidationFailed):
        validate(UpdateWorkoutPlan, {"duration": None})


def test_update_workout_cannot_move_owner():
    assert "user_id" not in UpdateWorkout.model_fields
    assert "user_id" in Workout.model_fields


# ─── Field types ─────────────────────────────────────────────────────────────

def test_names_are_trimmed_and_non_empty():
    plan = validate(CreateWorkoutPlan, {**LEG_DAY, "name": "  Leg Day  "})
    assert plan.name == "Leg Day"
    with pytest.raises(ValidationFailed):
        validate(CreateWorkoutPlan, {**LEG_DAY, "name": "   "})


def test_bare_dates():
    r = DateRange.model_validate({"dateFrom": "2026-01-15", "dateTo": "2026-01-15"})
    assert r.date_from == datetime(2026, 1, 15, tzinfo=timezone.utc)
    assert r.date_to == datetime(2026, 1, 15, 23, 59, 59, 999999, tzinfo=timezone.utc)


def test_timestamps_normalised_to_utc():
    r = DateRange.model_validate({"dateFrom": "2026-01-15T12:00:00+02:00"})
    assert r.date_from == datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)
    assert r.date_from.tzinfo == timezone.utc


def test_exercise_id_is_stable():
    assert exercise_id_for("Squat") == exercise_id_for("  squat ")
    assert exercise_id_for("Squat") != exercise_id_for("Bench Press")


def test_json_is_camel_case():
    plan = validate(CreateWorkoutPlan, LEG_DAY)
    dumped = plan.model_dump(by_alias=True, mode="json")
    assert dumped["createdBy"] == USER_ID
    assert "isPublic" in dumped
    # snake_case input is accepted too
    assert validate(CreateWorkoutPlan, plan.model_dump()).created_by == plan.created_by


# ─── Validation issues ───────────────────────────────────────────────────────

def test_issues_strip_location_prefix():
    issues = issues_from([
        {"loc": ("body", "exercises", 0, "sets"), "msg": "too small"},
        {"loc": ("query", "difficulty"), "msg": "bad"},
        {"loc": ("name",), "msg": "missing"},
    ])
    assert [i.path for i in issues] == ["exercises.0.sets", "difficulty", "name"]
    assert issues[0].message == "too small"


def test_validate_reports_every_issue():
    with pytest.raises(ValidationFailed) as exc:
        validate(CreateWorkoutPlan, {"name": "x"}, "Bad plan")
    assert exc.value.message == "Bad plan"
    assert exc.value.status_code == 400
    paths = {i.path for i in exc.value.details}
    assert {"exercises", "duration", "difficulty", "category", "createdBy"} <= paths
