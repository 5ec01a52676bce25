"""Stable in-memory filtering of entity collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from fitness_api.schemas import (
    GoalFilters,
    RecordFilters,
    WorkoutFilters,
    WorkoutPlanFilters,
)

E = TypeVar("E", bound=BaseModel)


@dataclass(frozen=True)
class FilterSpec:
    """Which entity attributes a filter model constrains.

    Every filter field listed in `equals` must be an attribute of the entity
    with the same name.
    """
    equals: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ()
    date_field: Optional[str] = None


FILTER_SPECS: Dict[Type[BaseModel], FilterSpec] = {
    WorkoutPlanFilters: FilterSpec(
        equals=("difficulty", "category", "is_public", "created_by"),
        search_fields=("name", "description"),
    ),
    WorkoutFilters: FilterSpec(
        equals=("status", "plan_id", "user_id"),
        search_fields=("name", "plan_name", "notes"),
        date_field="started_at",
    ),
    GoalFilters: FilterSpec(
        equals=("type", "status", "priority", "is_public", "user_id"),
        search_fields=("title", "description"),
        date_field="created_at",
    ),
    RecordFilters: FilterSpec(
        equals=("exercise_id", "record_type", "user_id"),
        search_fields=("exercise_name", "notes"),
        date_field="workout_date",
    ),
}


def matches_search(item: BaseModel, fields: Iterable[str], term: str) -> bool:
    """Case-insensitive substring match against any of `fields`."""
    needle = term.strip().lower()
    if not needle:
        return True
    for name in fields:
        value = getattr(item, name, None)
        if value and needle in str(value).lower():
            return True
    return False


def _matches(item: BaseModel, filters: BaseModel, spec: FilterSpec) -> bool:
    for name in spec.equals:
        wanted = getattr(filters, name)
        if wanted is not None and getattr(item, name) != wanted:
            return False

    search = getattr(filters, "search", None)
    if search and not matches_search(item, spec.search_fields, search):
        return False

    if spec.date_field:
        date_from = getattr(filters, "date_from", None)
        date_to = getattr(filters, "date_to", None)
        if date_from is not None or date_to is not None:
            when = getattr(item, spec.date_field)
            if when is None:
                return False
            if date_from is not None and when < date_from:
                return False
            if date_to is not None and when > date_to:
                return False
    return True


def apply_filters(
    items: Iterable[E], filters: BaseModel, spec: Optional[FilterSpec] = None
) -> List[E]:
    """Keep the items matching every given predicate, in their input order."""
    if spec is None:
        spec = FILTER_SPECS[type(filters)]
    return [item for item in items if _matches(item, filters, spec)]
