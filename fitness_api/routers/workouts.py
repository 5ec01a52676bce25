# =============================================================================
# /api/workouts: CRUD plus the session lifecycle
# (start from a plan -> log sets -> complete).
# =============================================================================

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from fitness_api.deps import get_repository, query_model
from fitness_api.errors import InvalidStateError, NotFoundError
from fitness_api.filters import apply_filters
from fitness_api.schemas import (
    CompleteWorkout,
    CreateWorkout,
    Envelope,
    LogSet,
    StartWorkoutFromPlan,
    UpdateWorkout,
    Workout,
    WorkoutExercise,
    WorkoutFilters,
    WorkoutPlan,
    WorkoutSet,
    exercise_id_for,
    utcnow,
)
from fitness_api.store import Repository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workouts", tags=["workouts"])


def _exercises_from_plan(plan: WorkoutPlan) -> List[WorkoutExercise]:
    """One workout exercise per plan exercise, pre-filled with uncompleted planned sets."""
    return [
        WorkoutExercise(
            exercise_id=exercise_id_for(ex.name),
            exercise_name=ex.name,
            sets=[
                WorkoutSet(set_number=n, reps=ex.reps, weight=ex.weight, rest_time=ex.rest_time)
                for n in range(1, ex.sets + 1)
            ],
            notes=ex.notes,
        )
        for ex in plan.exercises
    ]


async def _in_progress(repo: Repository, workout_id: str, action: str) -> Workout:
    workout = await repo.workouts.get(workout_id)
    if not workout:
        raise NotFoundError("Workout not found")
    if workout.status != "in_progress":
        raise InvalidStateError(f"Cannot {action} a {workout.status} workout")
    return workout


@router.get("", response_model=Envelope[List[Workout]], response_model_exclude_none=True)
async def list_workouts(
    filters: WorkoutFilters = Depends(query_model(WorkoutFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    workouts = apply_filters(await repo.workouts.all(), filters)
    return Envelope(success=True, data=workouts, count=len(workouts))


@router.post(
    "", status_code=201, response_model=Envelope[Workout], response_model_exclude_none=True
)
async def create_workout(body: CreateWorkout, repo: Repository = Depends(get_repository)) -> Envelope:
    workout = await repo.workouts.create(body)
    log.info(f"Created workout {workout.id} ({workout.name})")
    return Envelope(success=True, data=workout)


# IMPORTANT: /start-from-plan must be defined BEFORE /{workout_id}
@router.post(
    "/start-from-plan",
    status_code=201,
    response_model=Envelope[Workout],
    response_model_exclude_none=True,
)
async def start_from_plan(
    body: StartWorkoutFromPlan, repo: Repository = Depends(get_repository)
) -> Envelope:
    plan = await repo.plans.get(body.plan_id)
    if not plan:
        raise NotFoundError("Workout plan not found")
    name = (body.name or "").strip() or plan.name
    workout = await repo.workouts.create({
        "user_id": body.user_id or plan.created_by,
        "plan_id": plan.id,
        "plan_name": plan.name,
        "name": name,
        "exercises": _exercises_from_plan(plan),
        "status": "in_progress",
        "started_at": utcnow(),
    })
    log.info(f"Started workout {workout.id} from plan {plan.id}")
    return Envelope(success=True, data=workout)


@router.get("/{workout_id}", response_model=Envelope[Workout], response_model_exclude_none=True)
async def get_workout(workout_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    workout = await repo.workouts.get(workout_id)
    if not workout:
        raise NotFoundError("Workout not found")
    return Envelope(success=True, data=workout)


@router.post(
    "/{workout_id}/log-set", response_model=Envelope[Workout], response_model_exclude_none=True
)
async def log_set(
    workout_id: str, body: LogSet, repo: Repository = Depends(get_repository)
) -> Envelope:
    workout = await _in_progress(repo, workout_id, "log sets for")

    exercises = [ex.model_copy(deep=True) for ex in workout.exercises]
    target = next(
        (ex for ex in exercises if body.exercise_id in (ex.id, ex.exercise_id)), None
    )
    if target is None:
        raise NotFoundError("Exercise not found in workout")

    logged = WorkoutSet(
        set_number=body.set_number,
        reps=body.reps,
        weight=body.weight,
        rest_time=body.rest_time,
        completed=True,
        notes=body.notes,
    )
    # A planned set with the same number is replaced, otherwise appended.
    for i, s in enumerate(target.sets):
        if s.set_number == body.set_number:
            logged.id = s.id
            target.sets[i] = logged
            break
    else:
        target.sets.append(logged)

    updated = await repo.workouts.update(
        workout_id, {"exercises": [ex.model_dump() for ex in exercises]}
    )
    return Envelope(success=True, data=updated)


@router.post(
    "/{workout_id}/complete", response_model=Envelope[Workout], response_model_exclude_none=True
)
async def complete_workout(
    workout_id: str, body: CompleteWorkout, repo: Repository = Depends(get_repository)
) -> Envelope:
    workout = await _in_progress(repo, workout_id, "complete")
    now = max(utcnow(), workout.started_at)
    changes = {
        "status": "completed",
        "completed_at": now,
        "duration": int((now - workout.started_at).total_seconds() // 60),
    }
    if body.notes:
        changes["notes"] = body.notes
    updated = await repo.workouts.update(workout_id, changes)
    log.info(f"Completed workout {workout_id} after {changes['duration']} min")
    return Envelope(success=True, data=updated)


@router.put("/{workout_id}", response_model=Envelope[Workout], response_model_exclude_none=True)
async def update_workout(
    workout_id: str, body: UpdateWorkout, repo: Repository = Depends(get_repository)
) -> Envelope:
    workout = await repo.workouts.update(workout_id, body.model_dump(exclude_unset=True))
    if not workout:
        raise NotFoundError("Workout not found")
    return Envelope(success=True, data=workout)


@router.delete("/{workout_id}", response_model=Envelope[Workout], response_model_exclude_none=True)
async def delete_workout(workout_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    workout = await repo.workouts.remove(workout_id)
    if not workout:
        raise NotFoundError("Workout not found")
    log.info(f"Deleted workout {workout_id}")
    return Envelope(success=True, data=workout, message="Workout deleted successfully")
