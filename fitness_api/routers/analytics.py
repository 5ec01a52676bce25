# =============================================================================
# /api/analytics: read-only aggregates over workouts, records and goals
# =============================================================================

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from fitness_api import analytics
from fitness_api.deps import get_repository, query_model
from fitness_api.filters import FilterSpec, apply_filters
from fitness_api.schemas import (
    AnalyticsFilters,
    DashboardMetrics,
    Envelope,
    ExerciseAnalytics,
    FrequencyQuery,
    FrequencyStats,
    PersonalRecord,
    VolumeProgression,
    VolumeProgressionQuery,
    Workout,
    WorkoutStats,
)
from fitness_api.store import Repository

router = APIRouter(prefix="/api/analytics", tags=["analytics"])

# userId + dateFrom/dateTo over startedAt
_WORKOUT_SCOPE = FilterSpec(equals=("user_id",), date_field="started_at")


async def _scoped_workouts(repo: Repository, filters: AnalyticsFilters) -> List[Workout]:
    return apply_filters(await repo.workouts.all(), filters, _WORKOUT_SCOPE)


async def _scoped_records(repo: Repository, filters: AnalyticsFilters) -> List[PersonalRecord]:
    records = await repo.records.all()
    if filters.user_id is not None:
        records = [r for r in records if r.user_id == filters.user_id]
    return records


@router.get("/stats", response_model=Envelope[WorkoutStats], response_model_exclude_none=True)
async def get_stats(
    filters: AnalyticsFilters = Depends(query_model(AnalyticsFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = await _scoped_workouts(repo, filters)
    return Envelope(success=True, data=analytics.workout_stats(workouts))


@router.get(
    "/volume-progression",
    response_model=Envelope[List[VolumeProgression]],
    response_model_exclude_none=True,
)
async def get_volume_progression(
    query: VolumeProgressionQuery = Depends(query_model(VolumeProgressionQuery)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = await _scoped_workouts(repo, query)
    return Envelope(success=True, data=analytics.volume_progression(workouts, query.period))


@router.get("/frequency", response_model=Envelope[FrequencyStats], response_model_exclude_none=True)
async def get_frequency(
    query: FrequencyQuery = Depends(query_model(FrequencyQuery)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = await _scoped_workouts(repo, query)
    return Envelope(success=True, data=analytics.frequency_stats(workouts, query.period))


@router.get(
    "/exercises", response_model=Envelope[List[ExerciseAnalytics]], response_model_exclude_none=True
)
async def get_exercises(
    filters: AnalyticsFilters = Depends(query_model(AnalyticsFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = await _scoped_workouts(repo, filters)
    records = await _scoped_records(repo, filters)
    top = analytics.exercise_analytics(workouts, records, exercise_id=filters.exercise_id)
    return Envelope(success=True, data=top, count=len(top))


@router.get("/dashboard", response_model=Envelope[DashboardMetrics], response_model_exclude_none=True)
async def get_dashboard(
    filters: AnalyticsFilters = Depends(query_model(AnalyticsFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = await _scoped_workouts(repo, filters)
    records = await _scoped_records(repo, filters)
    goals = await repo.goals.all()
    if filters.user_id is not None:
        goals = [g for g in goals if g.user_id == filters.user_id]
    metrics = analytics.dashboard(workouts, records, goals)
    return Envelope(success=True, data=metrics)
