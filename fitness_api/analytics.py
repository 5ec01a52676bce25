# =============================================================================
# Derived analytics: workout stats, volume progression, frequency,
# per-exercise analytics, dashboard, record stats and PR detection.
# Pure functions over entity lists; `now` is injectable for tests.
# =============================================================================

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from fitness_api.schemas import (
    CreatePersonalRecord,
    DashboardMetrics,
    ExerciseAnalytics,
    FrequencyBucket,
    FrequencyStats,
    Goal,
    PersonalRecord,
    RecentActivity,
    RecordStats,
    VolumeProgression,
    Workout,
    WorkoutStats,
    utcnow,
)

log = logging.getLogger(__name__)

PROGRESSION_PERIODS = 12
FREQUENCY_DAYS = 14
TOP_EXERCISES = 10
RECENT_ACTIVITY = 5


def _completed(workouts: Iterable[Workout]) -> List[Workout]:
    return [w for w in workouts if w.status == "completed"]


def _day(dt: datetime) -> date:
    return dt.astimezone(timezone.utc).date()


def _month_start(year: int, month: int) -> datetime:
    # month may be out of 1..12; normalise into the right year
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1, tzinfo=timezone.utc)


def _avg(total: float, n: int) -> float:
    return round(total / n, 2) if n else 0.0


def _pct_change(old: float, new: float) -> Optional[float]:
    if not old:
        return None
    return round((new - old) / old * 100, 1)


# -----------------------------------------------------------------------------
# Streaks
# -----------------------------------------------------------------------------
def streaks(days: Iterable[date], today: date) -> Tuple[int, int]:
    """Return (current, longest) runs of consecutive training days.

    The current streak only counts if its last day is today or yesterday.
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0, 0

    longest = run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        run = run + 1 if (cur - prev).days == 1 else 1
        longest = max(longest, run)

    current = 0
    if (today - ordered[-1]).days <= 1:
        current = 1
        i = len(ordered) - 1
        while i > 0 and (ordered[i] - ordered[i - 1]).days == 1:
            current += 1
            i -= 1
    return current, longest


# -----------------------------------------------------------------------------
# Workout stats
# -----------------------------------------------------------------------------
def workout_stats(workouts: Sequence[Workout], now: Optional[datetime] = None) -> WorkoutStats:
    now = now or utcnow()
    week_ago = now - timedelta(days=7)
    month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    year_start = datetime(now.year, 1, 1, tzinfo=timezone.utc)

    total = len(workouts)
    total_duration = float(sum(w.duration or 0 for w in workouts))
    total_volume = float(sum(w.total_volume for w in workouts))

    done = sorted(_completed(workouts), key=lambda w: w.started_at)
    current, longest = streaks((_day(w.started_at) for w in done), _day(now))

    exercise_counts = Counter(e.exercise_name for w in workouts for e in w.exercises)
    plan_counts = Counter(w.plan_name for w in workouts if w.plan_name)

    return WorkoutStats(
        total_workouts=total,
        total_duration=total_duration,
        average_duration=_avg(total_duration, total),
        total_volume=round(total_volume, 2),
        average_volume=_avg(total_volume, total),
        workouts_this_week=sum(1 for w in workouts if w.started_at >= week_ago),
        workouts_this_month=sum(1 for w in workouts if w.started_at >= month_start),
        workouts_this_year=sum(1 for w in workouts if w.started_at >= year_start),
        longest_streak=longest,
        current_streak=current,
        most_frequent_exercise=exercise_counts.most_common(1)[0][0] if exercise_counts else None,
        favorite_workout_plan=plan_counts.most_common(1)[0][0] if plan_counts else None,
        last_workout_date=done[-1].started_at if done else None,
        first_workout_date=done[0].started_at if done else None,
    )


# -----------------------------------------------------------------------------
# Volume progression
# -----------------------------------------------------------------------------
def volume_progression(
    workouts: Sequence[Workout], period: str = "week", now: Optional[datetime] = None
) -> List[VolumeProgression]:
    """Completed-workout volume in 12 rolling buckets of 7 (week) or 30 (month) days, oldest first."""
    now = now or utcnow()
    span = timedelta(days=7 if period == "week" else 30)
    done = _completed(workouts)

    out: List[VolumeProgression] = []
    for i in range(PROGRESSION_PERIODS - 1, -1, -1):
        start = now - (i + 1) * span
        end = now - i * span
        bucket = [w for w in done if start <= w.started_at < end]
        volume = float(sum(w.total_volume for w in bucket))
        out.append(VolumeProgression(
            date=start,
            total_volume=round(volume, 2),
            workout_count=len(bucket),
            average_volume=_avg(volume, len(bucket)),
        ))
    return out


# -----------------------------------------------------------------------------
# Frequency
# -----------------------------------------------------------------------------
def _bucket(label: str, workouts: List[Workout]) -> FrequencyBucket:
    duration = float(sum(w.duration or 0 for w in workouts))
    return FrequencyBucket(
        period=label,
        workout_count=len(workouts),
        total_duration=duration,
        average_duration=_avg(duration, len(workouts)),
    )


def frequency_stats(
    workouts: Sequence[Workout], period: str = "weekly", now: Optional[datetime] = None
) -> FrequencyStats:
    now = now or utcnow()
    done = _completed(workouts)
    data: List[FrequencyBucket] = []

    if period == "daily":
        today = datetime(now.year, now.month, now.day, tzinfo=timezone.utc)
        for i in range(FREQUENCY_DAYS - 1, -1, -1):
            start = today - timedelta(days=i)
            end = start + timedelta(days=1)
            data.append(_bucket(start.date().isoformat(),
                                [w for w in done if start <= w.started_at < end]))
    elif period == "weekly":
        for i in range(PROGRESSION_PERIODS - 1, -1, -1):
            start = now - timedelta(days=7 * (i + 1))
            end = now - timedelta(days=7 * i)
            data.append(_bucket(f"Week {PROGRESSION_PERIODS - i}",
                                [w for w in done if start <= w.started_at < end]))
    else:  # monthly
        for i in range(PROGRESSION_PERIODS - 1, -1, -1):
            start = _month_start(now.year, now.month - i)
            end = _month_start(now.year, now.month - i + 1)
            data.append(_bucket(start.strftime("%b %Y"),
                                [w for w in done if start <= w.started_at < end]))

    return FrequencyStats(period=period, data=data)


# -----------------------------------------------------------------------------
# Exercise analytics
# -----------------------------------------------------------------------------
def exercise_analytics(
    workouts: Sequence[Workout],
    records: Sequence[PersonalRecord] = (),
    now: Optional[datetime] = None,
    exercise_id: Optional[UUID] = None,
    limit: int = TOP_EXERCISES,
) -> List[ExerciseAnalytics]:
    """Per-exercise totals, top `limit` by volume."""
    now = now or utcnow()
    month_ago = now - timedelta(days=30)

    by_id: Dict[UUID, ExerciseAnalytics] = {}
    top_weights: Dict[UUID, List[float]] = {}
    recent_sessions: Counter = Counter()

    for w in sorted(workouts, key=lambda w: w.started_at):
        seen_here = set()
        for ex in w.exercises:
            if exercise_id is not None and ex.exercise_id != exercise_id:
                continue
            a = by_id.get(ex.exercise_id)
            if a is None:
                a = by_id[ex.exercise_id] = ExerciseAnalytics(
                    exercise_id=ex.exercise_id, exercise_name=ex.exercise_name
                )
            a.total_sets += len(ex.sets)
            a.total_reps += sum(s.reps for s in ex.sets)
            a.total_volume += ex.volume
            heaviest = max((s.weight or 0.0 for s in ex.sets), default=0.0)
            a.max_weight = max(a.max_weight, heaviest)
            a.last_performed = w.started_at
            top_weights.setdefault(ex.exercise_id, []).append(heaviest)
            seen_here.add(ex.exercise_id)
        if w.started_at >= month_ago:
            recent_sessions.update(seen_here)

    pr_counts = Counter(r.exercise_id for r in records)
    for key, a in by_id.items():
        a.total_volume = round(a.total_volume, 2)
        a.average_weight = _avg(a.total_volume, a.total_reps)
        a.frequency = recent_sessions[key] / 4      # ~4 weeks in 30 days
        a.personal_records = pr_counts[key]
        weights = top_weights[key]
        if len(weights) >= 2:
            a.improvement = _pct_change(weights[0], weights[-1])

    ranked = sorted(by_id.values(), key=lambda a: a.total_volume, reverse=True)
    return ranked[:limit]


# -----------------------------------------------------------------------------
# Dashboard
# -----------------------------------------------------------------------------
def recent_activity(
    workouts: Sequence[Workout], records: Sequence[PersonalRecord], goals: Sequence[Goal] = ()
) -> List[RecentActivity]:
    items: List[RecentActivity] = []
    for w in sorted(workouts, key=lambda w: w.started_at, reverse=True)[:3]:
        verb = "Completed" if w.status == "completed" else "Started"
        items.append(RecentActivity(
            type="workout", description=f"{verb} {w.name}", date=w.started_at,
            value=w.duration,
        ))
    for r in sorted(records, key=lambda r: r.workout_date, reverse=True)[:2]:
        items.append(RecentActivity(
            type="record", description=f"New PR: {r.exercise_name}", date=r.workout_date,
            value=r.value,
        ))
    achieved = [g for g in goals if g.status == "completed" and g.completed_at]
    for g in sorted(achieved, key=lambda g: g.completed_at, reverse=True)[:2]:
        items.append(RecentActivity(
            type="goal", description=f"Goal achieved: {g.title}", date=g.completed_at,
            value=g.target_value,
        ))
    items.sort(key=lambda a: a.date, reverse=True)
    return items[:RECENT_ACTIVITY]


def dashboard(
    workouts: Sequence[Workout],
    records: Sequence[PersonalRecord],
    goals: Sequence[Goal] = (),
    now: Optional[datetime] = None,
) -> DashboardMetrics:
    now = now or utcnow()
    return DashboardMetrics(
        workout_stats=workout_stats(workouts, now),
        volume_progression=volume_progression(workouts, "week", now),
        frequency_stats=frequency_stats(workouts, "weekly", now),
        top_exercises=exercise_analytics(workouts, records, now),
        recent_activity=recent_activity(workouts, records, goals),
    )


# -----------------------------------------------------------------------------
# Personal records
# -----------------------------------------------------------------------------
def record_stats(records: Sequence[PersonalRecord], now: Optional[datetime] = None) -> RecordStats:
    now = now or utcnow()
    month_start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    year_start = datetime(now.year, 1, 1, tzinfo=timezone.utc)

    gains: Dict[str, List[float]] = {}
    for r in records:
        if r.improvement is not None and r.improvement > 0:
            gains.setdefault(r.exercise_name, []).append(r.improvement)
    most_improved = max(
        gains, key=lambda name: sum(gains[name]) / len(gains[name]), default=None
    )
    biggest = max((r.improvement or 0.0 for r in records), default=0.0)

    return RecordStats(
        total_records=len(records),
        records_this_month=sum(1 for r in records if r.workout_date >= month_start),
        records_this_year=sum(1 for r in records if r.workout_date >= year_start),
        most_improved_exercise=most_improved,
        biggest_improvement=biggest if biggest > 0 else None,
        recent_records=sorted(records, key=lambda r: r.workout_date, reverse=True)[:10],
    )


def detect_records(
    workout: Workout, existing: Sequence[PersonalRecord], weight_unit: str = "kg"
) -> List[CreatePersonalRecord]:
    """New personal records set in `workout`, measured against the user's existing ones.

    A set counts when it is marked completed, or when the whole workout is completed.
    """
    best: Dict[Tuple[UUID, str], float] = {}
    for r in existing:
        if r.user_id != workout.user_id:
            continue
        key = (r.exercise_id, r.record_type)
        best[key] = max(best.get(key, 0.0), r.value)

    found: List[CreatePersonalRecord] = []
    when = workout.completed_at or workout.started_at
    for ex in workout.exercises:
        sets = [s for s in ex.sets if s.completed or workout.status == "completed"]
        if not sets:
            continue
        candidates = [
            ("max_weight", max(s.weight or 0.0 for s in sets), weight_unit),
            ("max_reps", float(max(s.reps for s in sets)), "reps"),
            ("max_volume", max(s.volume for s in sets), weight_unit),
        ]
        for record_type, value, unit in candidates:
            key = (ex.exercise_id, record_type)
            previous = best.get(key)
            if value <= 0 or (previous is not None and value <= previous):
                continue
            found.append(CreatePersonalRecord(
                user_id=workout.user_id,
                exercise_id=ex.exercise_id,
                exercise_name=ex.exercise_name,
                record_type=record_type,
                value=value,
                unit=unit,
                previous_record=previous,
                improvement=_pct_change(previous, value) if previous is not None else None,
                workout_id=workout.id,
                workout_date=when,
                notes=f"Detected from {workout.name}",
            ))
            best[key] = value
    log.debug(f"Detected {len(found)} records in workout {workout.id}")
    return found
