#!/usr/bin/env python3
"""Seed the durable store with a demo user's plan, workouts, goals and records.

Writes through the same repository the API uses, so FITNESS_STORE=sql (and
DATABASE_URL / FITNESS_DB / Cloud SQL settings) pick the target.

Usage: FITNESS_STORE=sql python -m fitness_api.seed
"""

from __future__ import annotations

import asyncio
import sys
from datetime import timedelta
from uuid import UUID

from fitness_api import analytics
from fitness_api.config import Settings, load_settings
from fitness_api.schemas import exercise_id_for, utcnow
from fitness_api.store import Repository, build_repository

DEMO_USER = UUID("00000000-0000-4000-8000-000000000001")

UPPER_BODY = [
    {"name": "Bench Press", "sets": 3, "reps": 10, "weight": 60.0, "rest_time": 120},
    {"name": "Pull-ups", "sets": 3, "reps": 8, "rest_time": 90},
    {"name": "Overhead Press", "sets": 3, "reps": 8, "weight": 40.0, "rest_time": 120},
]


def _sets(reps: int, weight: float | None, count: int = 3) -> list:
    return [
        {"set_number": n, "reps": reps, "weight": weight, "completed": True}
        for n in range(1, count + 1)
    ]


async def seed(repo: Repository, weight_unit: str = "kg") -> None:
    now = utcnow()

    plan = await repo.plans.create({
        "name": "Weekly Strength Routine",
        "description": "A balanced strength training program",
        "exercises": UPPER_BODY,
        "duration": 45,
        "difficulty": "intermediate",
        "category": "strength",
        "is_public": True,
        "created_by": DEMO_USER,
    })
    print(f"Created workout plan: {plan.name}")

    workouts = []
    for weeks_ago, bench in ((3, 55.0), (2, 57.5), (1, 60.0)):
        started = now - timedelta(weeks=weeks_ago)
        workouts.append(await repo.workouts.create({
            "user_id": DEMO_USER,
            "plan_id": plan.id,
            "plan_name": plan.name,
            "name": "Upper Body Strength",
            "exercises": [
                {
                    "exercise_id": exercise_id_for("Bench Press"),
                    "exercise_name": "Bench Press",
                    "sets": _sets(10, bench),
                },
                {
                    "exercise_id": exercise_id_for("Pull-ups"),
                    "exercise_name": "Pull-ups",
                    "sets": _sets(8, None),
                },
            ],
            "status": "completed",
            "started_at": started,
            "completed_at": started + timedelta(minutes=45),
            "duration": 45,
        }))
    workouts.append(await repo.workouts.create({
        "user_id": DEMO_USER,
        "name": "Morning Cardio",
        "exercises": [{
            "exercise_id": exercise_id_for("Running"),
            "exercise_name": "Running",
            "sets": [{"set_number": 1, "reps": 1, "completed": True, "notes": "5 km"}],
        }],
        "status": "completed",
        "started_at": now - timedelta(days=2),
        "completed_at": now - timedelta(days=2) + timedelta(minutes=30),
        "duration": 30,
    }))
    print(f"Created {len(workouts)} sample workouts")

    goals = [
        await repo.goals.create({
            "user_id": DEMO_USER,
            "title": "Run 5K in under 25 minutes",
            "type": "endurance",
            "target_value": 25,
            "current_value": 27.5,
            "unit": "minutes",
            "target_date": now + timedelta(days=90),
            "priority": "high",
        }),
        await repo.goals.create({
            "user_id": DEMO_USER,
            "title": "Bench press 90 kg",
            "type": "strength",
            "target_value": 90,
            "current_value": 60,
            "unit": "kg",
            "target_date": now + timedelta(days=180),
        }),
    ]
    print(f"Created {len(goals)} sample goals")

    created = 0
    for workout in workouts:
        for payload in analytics.detect_records(workout, await repo.records.all(), weight_unit):
            await repo.records.create(payload)
            created += 1
    print(f"Created {created} personal records")


async def run(settings: Settings) -> int:
    if settings.store != "sql":
        print("Refusing to seed the in-memory store; set FITNESS_STORE=sql")
        return 1

    repo = build_repository(settings)
    print(f"Target store: {repo.backend}")
    await repo.init()
    try:
        await seed(repo, settings.weight_unit)
        counts = await repo.counts()
    finally:
        await repo.close()

    print(f"\n{'=' * 60}")
    for name, n in counts.items():
        print(f"{name}: {n}")
    print(f"{'=' * 60}\n")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run(load_settings())))
