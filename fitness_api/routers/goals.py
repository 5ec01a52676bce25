# =============================================================================
# /api/goals
# =============================================================================

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from fitness_api.deps import get_repository, query_model
from fitness_api.errors import InvalidStateError, NotFoundError
from fitness_api.filters import apply_filters
from fitness_api.schemas import (
    CompleteGoal,
    CreateGoal,
    Envelope,
    Goal,
    GoalFilters,
    UpdateGoal,
    UpdateGoalProgress,
    utcnow,
)
from fitness_api.store import Repository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/goals", tags=["goals"])


async def _get_goal(repo: Repository, goal_id: str) -> Goal:
    goal = await repo.goals.get(goal_id)
    if not goal:
        raise NotFoundError("Goal not found")
    return goal


@router.get("", response_model=Envelope[List[Goal]], response_model_exclude_none=True)
async def list_goals(
    filters: GoalFilters = Depends(query_model(GoalFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    goals = apply_filters(await repo.goals.all(), filters)
    return Envelope(success=True, data=goals, count=len(goals))


@router.get("/{goal_id}", response_model=Envelope[Goal], response_model_exclude_none=True)
async def get_goal(goal_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    return Envelope(success=True, data=await _get_goal(repo, goal_id))


@router.post("", status_code=201, response_model=Envelope[Goal], response_model_exclude_none=True)
async def create_goal(body: CreateGoal, repo: Repository = Depends(get_repository)) -> Envelope:
    goal = await repo.goals.create(body)
    log.info(f"Created goal {goal.id} ({goal.title})")
    return Envelope(success=True, data=goal)


@router.put("/{goal_id}", response_model=Envelope[Goal], response_model_exclude_none=True)
async def update_goal(
    goal_id: str, body: UpdateGoal, repo: Repository = Depends(get_repository)
) -> Envelope:
    goal = await repo.goals.update(goal_id, body.model_dump(exclude_unset=True))
    if not goal:
        raise NotFoundError("Goal not found")
    return Envelope(success=True, data=goal)


@router.post("/{goal_id}/progress", response_model=Envelope[Goal], response_model_exclude_none=True)
async def update_progress(
    goal_id: str, body: UpdateGoalProgress, repo: Repository = Depends(get_repository)
) -> Envelope:
    goal = await _get_goal(repo, goal_id)
    if goal.status != "active":
        raise InvalidStateError("Cannot update progress for inactive goals")

    changes = {"current_value": body.current_value}
    if body.current_value >= goal.target_value:
        changes.update(status="completed", completed_at=utcnow())
        log.info(f"Goal {goal_id} reached its target")
    updated = await repo.goals.update(goal_id, changes)
    return Envelope(success=True, data=updated)


@router.post("/{goal_id}/complete", response_model=Envelope[Goal], response_model_exclude_none=True)
async def complete_goal(
    goal_id: str, body: CompleteGoal, repo: Repository = Depends(get_repository)
) -> Envelope:
    goal = await _get_goal(repo, goal_id)
    if goal.status == "completed":
        raise InvalidStateError("Goal is already completed")

    changes = {"status": "completed", "completed_at": utcnow()}
    if body.notes:
        note = f"Completion notes: {body.notes}"
        changes["description"] = f"{goal.description}\n\n{note}" if goal.description else note
    updated = await repo.goals.update(goal_id, changes)
    return Envelope(success=True, data=updated)


@router.delete("/{goal_id}", response_model=Envelope[Goal], response_model_exclude_none=True)
async def delete_goal(goal_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    goal = await repo.goals.remove(goal_id)
    if not goal:
        raise NotFoundError("Goal not found")
    log.info(f"Deleted goal {goal_id}")
    return Envelope(success=True, data=goal, message="Goal deleted successfully")
