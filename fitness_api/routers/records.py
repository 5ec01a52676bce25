# =============================================================================
# /api/records: personal records
# =============================================================================

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends

from fitness_api import analytics
from fitness_api.config import Settings
from fitness_api.deps import get_repository, get_settings, query_model
from fitness_api.errors import NotFoundError
from fitness_api.filters import apply_filters
from fitness_api.schemas import (
    CreatePersonalRecord,
    DetectRecords,
    Envelope,
    PersonalRecord,
    RecordFilters,
    RecordStats,
    RecordStatsQuery,
    UpdatePersonalRecord,
)
from fitness_api.store import Repository

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/records", tags=["records"])


@router.get("", response_model=Envelope[List[PersonalRecord]], response_model_exclude_none=True)
async def list_records(
    filters: RecordFilters = Depends(query_model(RecordFilters)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    records = apply_filters(await repo.records.all(), filters)
    return Envelope(success=True, data=records, count=len(records))


# IMPORTANT: fixed paths (/stats, /exercise, /detect) before /{record_id}
@router.get("/stats", response_model=Envelope[RecordStats], response_model_exclude_none=True)
async def get_record_stats(
    query: RecordStatsQuery = Depends(query_model(RecordStatsQuery)),
    repo: Repository = Depends(get_repository),
) -> Envelope:
    records = await repo.records.all()
    if query.user_id is not None:
        records = [r for r in records if r.user_id == query.user_id]
    return Envelope(success=True, data=analytics.record_stats(records))


@router.get(
    "/exercise/{exercise_id}",
    response_model=Envelope[List[PersonalRecord]],
    response_model_exclude_none=True,
)
async def records_for_exercise(exercise_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    key = exercise_id.strip().lower()
    records = [r for r in await repo.records.all() if str(r.exercise_id) == key]
    records.sort(key=lambda r: r.workout_date, reverse=True)
    return Envelope(success=True, data=records, count=len(records))


@router.post(
    "/detect",
    status_code=201,
    response_model=Envelope[List[PersonalRecord]],
    response_model_exclude_none=True,
)
async def detect_records(
    body: DetectRecords,
    repo: Repository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
) -> Envelope:
    workout = await repo.workouts.get(body.workout_id)
    if not workout:
        raise NotFoundError("Workout not found")
    found = analytics.detect_records(workout, await repo.records.all(), settings.weight_unit)
    created = [await repo.records.create(payload) for payload in found]
    log.info(f"Detected {len(created)} personal records in workout {workout.id}")
    return Envelope(success=True, data=created, count=len(created))


@router.get("/{record_id}", response_model=Envelope[PersonalRecord], response_model_exclude_none=True)
async def get_record(record_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    record = await repo.records.get(record_id)
    if not record:
        raise NotFoundError("Personal record not found")
    return Envelope(success=True, data=record)


@router.post(
    "", status_code=201, response_model=Envelope[PersonalRecord], response_model_exclude_none=True
)
async def create_record(
    body: CreatePersonalRecord, repo: Repository = Depends(get_repository)
) -> Envelope:
    record = await repo.records.create(body)
    log.info(f"Created personal record {record.id} ({record.exercise_name} {record.record_type})")
    return Envelope(success=True, data=record)


@router.put("/{record_id}", response_model=Envelope[PersonalRecord], response_model_exclude_none=True)
async def update_record(
    record_id: str, body: UpdatePersonalRecord, repo: Repository = Depends(get_repository)
) -> Envelope:
    record = await repo.records.update(record_id, body.model_dump(exclude_unset=True))
    if not record:
        raise NotFoundError("Personal record not found")
    return Envelope(success=True, data=record)


@router.delete("/{record_id}", response_model=Envelope[PersonalRecord], response_model_exclude_none=True)
async def delete_record(record_id: str, repo: Repository = Depends(get_repository)) -> Envelope:
    record = await repo.records.remove(record_id)
    if not record:
        raise NotFoundError("Personal record not found")
    log.info(f"Deleted personal record {record_id}")
    return Envelope(success=True, data=record, message="Personal record deleted successfully")
