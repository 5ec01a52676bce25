# =============================================================================
# Pydantic schemas: entities, derived create/update variants, filters,
# action payloads, analytics aggregates and the response envelope.
# JSON is camelCase; attributes are snake_case.
# =============================================================================

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import (
    Annotated,
    Any,
    Generic,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Type,
    TypeVar,
)
from uuid import UUID, NAMESPACE_URL, uuid4, uuid5

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    create_model,
)
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo

from fitness_api.errors import ValidationFailed

# -----------------------------------------------------------------------------
# Field types
# -----------------------------------------------------------------------------
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _date_at_midnight(v: Any) -> Any:
    if isinstance(v, str) and _DATE_RE.match(v.strip()):
        return f"{v.strip()}T00:00:00"
    return v


def _date_at_end_of_day(v: Any) -> Any:
    if isinstance(v, str) and _DATE_RE.match(v.strip()):
        return f"{v.strip()}T23:59:59.999999"
    return v


def _as_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# Naive timestamps are UTC; a bare YYYY-MM-DD is that day at 00:00.
Timestamp = Annotated[datetime, BeforeValidator(_date_at_midnight), AfterValidator(_as_utc)]
# Upper bound of an inclusive range: a bare date covers the whole day.
EndOfDay = Annotated[datetime, BeforeValidator(_date_at_end_of_day), AfterValidator(_as_utc)]
NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

Difficulty = Literal["beginner", "intermediate", "advanced"]
PlanCategory = Literal["strength", "cardio", "flexibility", "mixed"]
WorkoutStatus = Literal["in_progress", "completed", "cancelled"]
GoalType = Literal[
    "weight_loss", "weight_gain", "muscle_gain", "endurance", "strength", "flexibility", "custom"
]
GoalStatus = Literal["active", "completed", "paused", "cancelled"]
Priority = Literal["low", "medium", "high"]
RecordType = Literal["max_weight", "max_reps", "max_volume", "max_duration", "best_time"]

SERVER_FIELDS = ("id", "created_at", "updated_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def exercise_id_for(name: str) -> UUID:
    """Stable exercise id for an exercise known only by name."""
    return uuid5(NAMESPACE_URL, f"exercise:{name.strip().lower()}")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Entity(ApiModel):
    id: UUID
    created_at: Timestamp
    updated_at: Timestamp


# -----------------------------------------------------------------------------
# Workout plans
# -----------------------------------------------------------------------------
class PlanExercise(ApiModel):
    name: NonEmptyStr
    sets: int = Field(ge=1)
    reps: int = Field(ge=1)
    weight: Optional[float] = Field(None, ge=0)
    rest_time: Optional[int] = Field(None, ge=0, description="seconds")
    notes: Optional[str] = None


class WorkoutPlan(Entity):
    name: NonEmptyStr
    description: Optional[str] = None
    exercises: List[PlanExercise] = Field(min_length=1)
    duration: int = Field(ge=1, description="minutes")
    difficulty: Difficulty
    category: PlanCategory
    is_public: bool = False
    created_by: UUID


# -----------------------------------------------------------------------------
# Workouts
# -----------------------------------------------------------------------------
class WorkoutSet(ApiModel):
    id: UUID = Field(default_factory=uuid4)
    set_number: int = Field(ge=1)
    reps: int = Field(ge=0)
    weight: Optional[float] = Field(None, ge=0)
    rest_time: Optional[int] = Field(None, ge=0, description="seconds")
    completed: bool = False
    notes: Optional[str] = None

    @property
    def volume(self) -> float:
        return (self.weight or 0.0) * self.reps


class WorkoutExercise(ApiModel):
    id: UUID = Field(default_factory=uuid4)
    exercise_id: UUID
    exercise_name: NonEmptyStr
    sets: List[WorkoutSet] = Field(min_length=1)
    notes: Optional[str] = None

    @property
    def volume(self) -> float:
        return sum(s.volume for s in self.sets)


class Workout(Entity):
    user_id: UUID
    plan_id: Optional[UUID] = None
    plan_name: Optional[str] = None
    name: NonEmptyStr
    exercises: List[WorkoutExercise] = Field(min_length=1)
    status: WorkoutStatus = "in_progress"
    started_at: Timestamp
    completed_at: Optional[Timestamp] = None
    duration: Optional[int] = Field(None, ge=0, description="minutes")
    notes: Optional[str] = None

    @property
    def total_volume(self) -> float:
        return sum(e.volume for e in self.exercises)


# -----------------------------------------------------------------------------
# Goals
# -----------------------------------------------------------------------------
class Goal(Entity):
    user_id: UUID
    title: NonEmptyStr
    description: Optional[str] = None
    type: GoalType
    target_value: float = Field(ge=0)
    current_value: float = Field(0, ge=0)
    unit: NonEmptyStr                          # kg, lbs, miles, minutes, reps ...
    target_date: Timestamp
    status: GoalStatus = "active"
    priority: Priority = "medium"
    is_public: bool = False
    completed_at: Optional[Timestamp] = None


# -----------------------------------------------------------------------------
# Personal records
# -----------------------------------------------------------------------------
class PersonalRecord(Entity):
    user_id: UUID
    exercise_id: UUID
    exercise_name: NonEmptyStr
    record_type: RecordType
    value: float = Field(ge=0)
    unit: NonEmptyStr
    previous_record: Optional[float] = Field(None, ge=0)
    improvement: Optional[float] = None        # percent over previous_record
    workout_id: UUID
    workout_date: Timestamp
    notes: Optional[str] = None


# -----------------------------------------------------------------------------
# Derived variants (field projection)
# -----------------------------------------------------------------------------
M = TypeVar("M", bound=BaseModel)


def _field_spec(info: FieldInfo, optional: bool = False):
    annotation: Any = info.annotation
    if info.metadata:
        annotation = Annotated[(annotation, *info.metadata)]
    if optional:
        # Omitted -> None and left out of exclude_unset dumps; explicit null
        # is still rejected unless the entity field itself is nullable.
        return annotation, Field(default=None, description=info.description)
    if info.default_factory is not None:
        return annotation, Field(default_factory=info.default_factory, description=info.description)
    return annotation, Field(default=info.default, description=info.description)


def omit(model: Type[BaseModel], *names: str, name: Optional[str] = None) -> Type[ApiModel]:
    """Copy of `model` without the given fields; constraints and defaults kept."""
    unknown = set(names) - set(model.model_fields)
    if unknown:
        raise KeyError(f"{model.__name__} has no fields {sorted(unknown)}")
    fields = {
        k: _field_spec(v) for k, v in model.model_fields.items() if k not in names
    }
    return create_model(
        name or f"{model.__name__}Omit", __base__=ApiModel, __module__=__name__, **fields
    )


def partial(model: Type[BaseModel], name: Optional[str] = None) -> Type[ApiModel]:
    """Copy of `model` with every field optional; constraints kept."""
    fields = {k: _field_spec(v, optional=True) for k, v in model.model_fields.items()}
    return create_model(
        name or f"{model.__name__}Partial", __base__=ApiModel, __module__=__name__, **fields
    )


CreateWorkoutPlan = omit(WorkoutPlan, *SERVER_FIELDS, name="CreateWorkoutPlan")
UpdateWorkoutPlan = partial(CreateWorkoutPlan, name="UpdateWorkoutPlan")

CreateWorkout = omit(Workout, *SERVER_FIELDS, name="CreateWorkout")
UpdateWorkout = partial(
    omit(Workout, *SERVER_FIELDS, "user_id"), name="UpdateWorkout"
)

CreateGoal = omit(Goal, *SERVER_FIELDS, "completed_at", name="CreateGoal")
UpdateGoal = partial(CreateGoal, name="UpdateGoal")

CreatePersonalRecord = omit(PersonalRecord, *SERVER_FIELDS, name="CreatePersonalRecord")
UpdatePersonalRecord = partial(
    omit(PersonalRecord, *SERVER_FIELDS, "user_id"), name="UpdatePersonalRecord"
)


# -----------------------------------------------------------------------------
# Action payloads
# -----------------------------------------------------------------------------
class StartWorkoutFromPlan(ApiModel):
    plan_id: UUID
    name: Optional[str] = None
    user_id: Optional[UUID] = None


class LogSet(ApiModel):
    exercise_id: UUID
    set_number: int = Field(ge=1)
    reps: int = Field(ge=0)
    weight: Optional[float] = Field(None, ge=0)
    rest_time: Optional[int] = Field(None, ge=0)
    notes: Optional[str] = None


class CompleteWorkout(ApiModel):
    notes: Optional[str] = None


class UpdateGoalProgress(ApiModel):
    current_value: float = Field(ge=0)
    notes: Optional[str] = None


class CompleteGoal(ApiModel):
    notes: Optional[str] = None


class DetectRecords(ApiModel):
    workout_id: UUID


# -----------------------------------------------------------------------------
# Filters
# -----------------------------------------------------------------------------
class DateRange(ApiModel):
    date_from: Optional[Timestamp] = None
    date_to: Optional[EndOfDay] = None


class WorkoutPlanFilters(ApiModel):
    difficulty: Optional[Difficulty] = None
    category: Optional[PlanCategory] = None
    is_public: Optional[bool] = None
    created_by: Optional[UUID] = None
    search: Optional[str] = None


class WorkoutFilters(DateRange):
    status: Optional[WorkoutStatus] = None
    plan_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    search: Optional[str] = None


class GoalFilters(DateRange):
    type: Optional[GoalType] = None
    status: Optional[GoalStatus] = None
    priority: Optional[Priority] = None
    is_public: Optional[bool] = None
    user_id: Optional[UUID] = None
    search: Optional[str] = None


class RecordFilters(DateRange):
    exercise_id: Optional[UUID] = None
    record_type: Optional[RecordType] = None
    user_id: Optional[UUID] = None
    search: Optional[str] = None


class AnalyticsFilters(DateRange):
    user_id: Optional[UUID] = None
    exercise_id: Optional[UUID] = None
    # Validated but not read by /stats, /exercises or /dashboard; the bucketed
    # endpoints narrow it below.
    period: Optional[Literal["week", "month", "quarter", "year"]] = None


class VolumeProgressionQuery(AnalyticsFilters):
    period: Literal["week", "month"] = "week"


class FrequencyQuery(AnalyticsFilters):
    period: Literal["daily", "weekly", "monthly"] = "weekly"


class RecordStatsQuery(ApiModel):
    user_id: Optional[UUID] = None


# -----------------------------------------------------------------------------
# Analytics aggregates (read-only)
# -----------------------------------------------------------------------------
class WorkoutStats(ApiModel):
    total_workouts: int = Field(ge=0)
    total_duration: float = Field(ge=0)        # minutes
    average_duration: float = Field(ge=0)
    total_volume: float = Field(ge=0)          # weight x reps
    average_volume: float = Field(ge=0)
    workouts_this_week: int = Field(ge=0)
    workouts_this_month: int = Field(ge=0)
    workouts_this_year: int = Field(ge=0)
    longest_streak: int = Field(ge=0)          # days
    current_streak: int = Field(ge=0)
    most_frequent_exercise: Optional[str] = None
    favorite_workout_plan: Optional[str] = None
    last_workout_date: Optional[datetime] = None
    first_workout_date: Optional[datetime] = None


class VolumeProgression(ApiModel):
    date: datetime
    total_volume: float = Field(ge=0)
    workout_count: int = Field(ge=0)
    average_volume: float = Field(ge=0)


class FrequencyBucket(ApiModel):
    period: str
    workout_count: int = Field(ge=0)
    total_duration: float = Field(ge=0)
    average_duration: float = Field(ge=0)


class FrequencyStats(ApiModel):
    period: Literal["daily", "weekly", "monthly"]
    data: List[FrequencyBucket] = Field(default_factory=list)


class ExerciseAnalytics(ApiModel):
    exercise_id: UUID
    exercise_name: str
    total_sets: int = Field(0, ge=0)
    total_reps: int = Field(0, ge=0)
    total_volume: float = Field(0.0, ge=0)
    average_weight: float = Field(0.0, ge=0)
    max_weight: float = Field(0.0, ge=0)
    personal_records: int = Field(0, ge=0)
    last_performed: Optional[datetime] = None
    frequency: float = Field(0.0, ge=0)        # workouts per week
    improvement: Optional[float] = None        # percent


class RecentActivity(ApiModel):
    type: Literal["workout", "record", "goal"]
    description: str
    date: datetime
    value: Optional[float] = None


class DashboardMetrics(ApiModel):
    workout_stats: WorkoutStats
    volume_progression: List[VolumeProgression]
    frequency_stats: FrequencyStats
    top_exercises: List[ExerciseAnalytics] = Field(max_length=10)
    recent_activity: List[RecentActivity] = Field(max_length=5)


class RecordStats(ApiModel):
    total_records: int = Field(ge=0)
    records_this_month: int = Field(ge=0)
    records_this_year: int = Field(ge=0)
    most_improved_exercise: Optional[str] = None
    biggest_improvement: Optional[float] = None
    recent_records: List[PersonalRecord] = Field(default_factory=list, max_length=10)


# -----------------------------------------------------------------------------
# Envelope
# -----------------------------------------------------------------------------
T = TypeVar("T")


class ValidationIssue(BaseModel):
    path: str
    message: str


class Envelope(BaseModel, Generic[T]):
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    details: Optional[List[ValidationIssue]] = None
    count: Optional[int] = None
    message: Optional[str] = None


# -----------------------------------------------------------------------------
# Validation entry point
# -----------------------------------------------------------------------------
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def issues_from(errors: Iterable[Mapping[str, Any]]) -> List[ValidationIssue]:
    """Flatten pydantic/FastAPI error dicts into path + message pairs."""
    issues: List[ValidationIssue] = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        issues.append(ValidationIssue(path=".".join(loc), message=err.get("msg", "Invalid value")))
    return issues


def validate(model: Type[M], payload: Any, message: str = "Validation error") -> M:
    """Validate a raw payload into `model` or raise ValidationFailed with field issues."""
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailed(message, issues_from(exc.errors())) from exc
