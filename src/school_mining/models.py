"""Pydantic models for archived timetable data and the run status record.

All data structures use Pydantic v2 for validation, serialization, and type
safety. Timestamps are normalized to UTC on validation.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    model_validator,
)

NO_TOPIC = "None"
FRESH_WINDOW = timedelta(hours=1)

# Validation context key set when reading archive partitions
STORED = "stored"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class StoredModel(BaseModel):
    """Model whose defaults only apply to objects created in this process.

    Validated with context={STORED: True}, every field must be present in
    the input: a partition never gets values made up at load time.
    """

    @model_validator(mode="before")
    @classmethod
    def _require_stored_fields(cls, data: object, info: ValidationInfo) -> object:
        if info.context and info.context.get(STORED) and isinstance(data, dict):
            missing = [
                name
                for name, field in cls.model_fields.items()
                if (field.alias or name) not in data
            ]
            if missing:
                raise ValueError(f"stored fields missing: {', '.join(missing)}")
        return data


class LessonCode(str, Enum):
    """Status of a lesson on the timetable."""

    REGULAR = "Regular"
    IRREGULAR = "Irregular"  # e.g. substitution or room change
    CANCELLED = "Cancelled"


class Lesson(StoredModel):
    """One lesson as it appeared on the timetable at capture time.

    Teacher entries are pseudonym tokens, never names.
    """

    classes: list[str] = Field(default_factory=list)
    teachers: list[str] = Field(default_factory=list)
    rooms: list[str] = Field(default_factory=list)
    code: LessonCode = LessonCode.REGULAR
    description: str = ""  # lesson text
    topic: str = NO_TOPIC  # first subject only
    substitution_note: str | None = None


class Snapshot(StoredModel):
    """All lessons of all classes captured in one run."""

    captured_at: UtcDatetime = Field(default_factory=utc_now, frozen=True)
    lessons: list[Lesson] = Field(default_factory=list)

    def add_lesson(self, lesson: Lesson) -> None:
        self.lessons.append(lesson)


class ExportFile(StoredModel):
    """Contents of one archive partition (one local calendar day).

    `date` is set when the partition is first created and kept on every
    later append.
    """

    date: UtcDatetime = Field(default_factory=utc_now, frozen=True)
    snapshots: list[Snapshot] = Field(default_factory=list)

    @classmethod
    def new(cls) -> "ExportFile":
        return cls()

    def add(self, snapshot: Snapshot) -> None:
        """Append a snapshot. Existing snapshots are never touched."""
        self.snapshots.append(snapshot)


class RunStatus(str, Enum):
    """Payload-free run states of the status record."""

    STARTED = "STARTED"
    SUCCESS = "SUCCESS"


class ErrorState(BaseModel):
    """Failed run, serialized as {"ERROR": "<message>"}."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str = Field(alias="ERROR")

    @classmethod
    def of(cls, message: str) -> "ErrorState":
        return cls.model_validate({"ERROR": message})


RunState = Union[RunStatus, ErrorState]


class ReportedState(BaseModel):
    """Status record shared between collector hosts.

    JSON shape:
        {"state": "SUCCESS" | {"ERROR": "<message>"} | "STARTED",
         "timestamp": "<ISO-8601 UTC>"}
    """

    state: RunState
    timestamp: UtcDatetime

    @classmethod
    def now(cls, state: RunState, now: datetime | None = None) -> "ReportedState":
        return cls(state=state, timestamp=now or utc_now())

    def is_fresh(self, now: datetime, window: timedelta = FRESH_WINDOW) -> bool:
        """True while the record is younger than `window`."""
        return self.timestamp + window > now

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str | bytes) -> "ReportedState":
        return cls.model_validate_json(data)
