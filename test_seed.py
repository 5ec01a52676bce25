"""Seeder tests against a temporary SQLite file."""
import pytest
import pytest_asyncio

from fitness_api.config import Settings
from fitness_api.seed import DEMO_USER, run, seed
from fitness_api.store import SqlRepository


@pytest_asyncio.fixture
async def repo(tmp_path):
    r = SqlRepository(f"sqlite+aiosqlite:///{tmp_path / 'seed.db'}", backend="SQLite")
    await r.init()
    yield r
    await r.close()


# ─── Seeding ─────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_seed_counts(repo):
    await seed(repo)
    assert await repo.counts() == {"workoutPlans": 1, "workouts": 4, "goals": 2, "records": 9}
    assert all(w.user_id == DEMO_USER for w in await repo.workouts.all())


@pytest.mark.asyncio
async def test_seed_uses_weight_unit(repo):
    await seed(repo, weight_unit="lbs")
    records = await repo.records.all()
    units = {(r.record_type, r.unit) for r in records}
    assert ("max_weight", "lbs") in units
    assert ("max_volume", "lbs") in units
    assert ("max_reps", "reps") in units
    assert not any(r.unit == "kg" for r in records)


@pytest.mark.asyncio
async def test_run_writes_configured_store(tmp_path):
    path = tmp_path / "fitness.db"
    settings = Settings(store="sql", sqlite_path=str(path), weight_unit="lbs")
    assert await run(settings) == 0

    repo = SqlRepository(f"sqlite+aiosqlite:///{path}", backend="SQLite")
    try:
        assert await repo.plans.count() == 1
        assert {r.unit for r in await repo.records.all()} == {"lbs", "reps"}
    finally:
        await repo.close()


@pytest.mark.asyncio
async def test_run_refuses_memory_store(capsys):
    assert await run(Settings(store="memory")) == 1
    assert "Refusing" in capsys.readouterr().out
