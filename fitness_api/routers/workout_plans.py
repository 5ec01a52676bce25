# =============================================================================
# /api/workout-plans
# =============================================================================

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from fitness_api.deps import get_repository, query_model
from fitness_api.errors import NotFoundError
from fitness_api.filters import apply_filters
from fitness_api.schemas import (
    CreateWorkoutPlan,
    Envelope,
    UpdateWorkoutPlan,
    WorkoutPlan,
    WorkoutPlanFilters,
)
from fitness_api.store import Repository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workout-plans", tags=["workout-plans"])


@router.get("", response_model=Envelope[List[WorkoutPlan]], response_model_exclude_none=True)
async def list_plans(
    filters: WorkoutPlanFilters = Depends(query_model(WorkoutPlanFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    plans = apply_filters(await repo.plans.all(), filters)
    return Envelope(success=True, data=plans, count=len(plans))


@router.get("/{plan_id}", response_model=Envelope[WorkoutPlan], response_model_exclude_none=True)
async def get_plan(plan_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    plan = await repo.plans.get(plan_id)
    if not plan:
        raise NotFoundError("Workout plan not found")
    return Envelope(success=True, data=plan)


@router.post(
    "", status_code=201, response_model=Envelope[WorkoutPlan], response_model_exclude_none=True
)
async def create_plan(
    body: CreateWorkoutPlan, repo: Repository = Depends(get_repository)
) -> Envelope:
    plan = await repo.plans.create(body)
    log.info(f"Created workout plan {plan.id} ({plan.name})")
    return Envelope(success=True, data=plan)


@router.put("/{plan_id}", response_model=Envelope[WorkoutPlan], response_model_exclude_none=True)
async def update_plan(
    plan_id: str, body: UpdateWorkoutPlan, repo: Repository = Depends(get_repository)
) -> Envelope:
    plan = await repo.plans.update(plan_id, body.model_dump(exclude_unset=True))
    if not plan:
        raise NotFoundError("Workout plan not found")
    return Envelope(success=True, data=plan)


@router.delete("/{plan_id}", response_model=Envelope[WorkoutPlan], response_model_exclude_none=True)
async def delete_plan(plan_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    plan = await repo.plans.remove(plan_id)
    if not plan:
        raise NotFoundError("Workout plan not found")
    log.info(f"Deleted workout plan {plan_id}")
    return Envelope(success=True, data=plan, message="Workout plan deleted successfully")
