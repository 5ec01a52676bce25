"""Filter evaluator tests."""
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fitness_api.filters import FILTER_SPECS, FilterSpec, apply_filters, matches_search
from fitness_api.schemas import (
    Goal,
    GoalFilters,
    WorkoutPlan,
    WorkoutPlanFilters,
)

USER = uuid4()
OTHER = uuid4()
T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _plan(name, difficulty="beginner", category="strength", is_public=False, created_by=USER,
          description=None):
    return WorkoutPlan(
        id=uuid4(), created_at=T0, updated_at=T0,
        name=name, description=description,
        exercises=[{"name": "Squat", "sets": 3, "reps": 10}],
        duration=40, difficulty=difficulty, category=category,
        is_public=is_public, created_by=created_by,
    )


def _goal(title, days, status="active", user=USER):
    at = T0 + timedelta(days=days)
    return Goal(
        id=uuid4(), created_at=at, updated_at=at, user_id=user,
        title=title, type="strength", target_value=100, unit="kg",
        target_date=T0 + timedelta(days=365), status=status,
    )


PLANS = [
    _plan("Leg Day"),
    _plan("Upper Body", difficulty="intermediate", is_public=True, created_by=OTHER),
    _plan("Cardio Blast", category="cardio", description="Legs and lungs"),
    _plan("Full Body", difficulty="advanced", category="mixed"),
]


def test_no_filters_returns_everything_in_order():
    assert apply_filters(PLANS, WorkoutPlanFilters()) == PLANS


def test_result_is_ordered_subset():
    for filters in (
        WorkoutPlanFilters(difficulty="beginner"),
        WorkoutPlanFilters(category="strength"),
        WorkoutPlanFilters(is_public=False),
        WorkoutPlanFilters(created_by=USER),
        WorkoutPlanFilters(search="body"),
    ):
        out = apply_filters(PLANS, filters)
        positions = [PLANS.index(p) for p in out]
        assert positions == sorted(positions)


def test_predicates_are_anded():
    out = apply_filters(PLANS, WorkoutPlanFilters(difficulty="beginner", category="strength"))
    assert [p.name for p in out] == ["Leg Day"]


def test_false_is_a_real_filter_value():
    out = apply_filters(PLANS, WorkoutPlanFilters(is_public=False))
    assert len(out) == 3


def test_search_is_case_insensitive_over_fields():
    out = apply_filters(PLANS, WorkoutPlanFilters(search="LEG"))
    assert [p.name for p in out] == ["Leg Day", "Cardio Blast"]


def test_matches_search_blank_term():
    assert matches_search(PLANS[0], ("name",), "   ")
    assert not matches_search(PLANS[0], ("description",), "leg")


def test_date_range_inclusive():
    goals = [_goal("a", 0), _goal("b", 10), _goal("c", 20)]
    filters = GoalFilters(date_from=T0 + timedelta(days=10), date_to=T0 + timedelta(days=20))
    assert [g.title for g in apply_filters(goals, filters)] == ["b", "c"]


def test_user_and_status():
    goals = [_goal("a", 0), _goal("b", 1, status="completed"), _goal("c", 2, user=OTHER)]
    out = apply_filters(goals, GoalFilters(user_id=USER, status="active"))
    assert [g.title for g in out] == ["a"]


def test_explicit_filter_spec():
    spec = FilterSpec(search_fields=("description",))
    out = apply_filters(PLANS, WorkoutPlanFilters(search="lungs"), spec)
    assert [p.name for p in out] == ["Cardio Blast"]


def test_every_equals_field_exists_on_filter_model():
    for model, spec in FILTER_SPECS.items():
        for name in spec.equals:
            assert name in model.model_fields
