"""Shared fixtures: an in-memory timetable provider and fixed clocks."""

from datetime import date, datetime, timezone
from typing import Any, Sequence

import pytest

from src.school_mining.config import CollectorConfig
from src.school_mining.errors import ProviderFetchError
from src.school_mining.untis import ClassRef, Period

UTC_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)
LOCAL_NOW = datetime(2026, 10, 7, 9, 30)


def make_period(
    classes: Sequence[str],
    teachers: Sequence[str] = (),
    rooms: Sequence[str] = (),
    subjects: Sequence[str] = (),
    code: str | None = None,
    lstext: str = "",
    subst_text: str | None = None,
) -> Period:
    """Build a Period the way getTimetable returns it."""

    def refs(names: Any) -> list[dict[str, Any]]:
        return [{"id": i, "name": name} for i, name in enumerate(names, start=1)]

    raw: dict[str, Any] = {
        "id": 1,
        "date": 20261007,
        "startTime": 800,
        "endTime": 845,
        "kl": refs(classes),
        "te": refs(teachers),
        "ro": refs(rooms),
        "su": refs(subjects),
        "lstext": lstext,
    }
    if code is not None:
        raw["code"] = code
    if subst_text is not None:
        raw["substText"] = subst_text
    return Period.model_validate(raw)


class FakeProvider:
    """TimetableProvider backed by a dict of class name -> periods."""

    def __init__(
        self,
        timetable: dict[str, list[Period]],
        failing: tuple[str, ...] = (),
        classes_error: Exception | None = None,
    ) -> None:
        self.timetable = timetable
        self.failing = failing
        self.classes_error = classes_error
        self.refs = [
            ClassRef(id=i, name=name) for i, name in enumerate(timetable, start=1)
        ]
        self.requests: list[tuple[int, date, date]] = []
        self.closed = False

    def classes(self) -> list[ClassRef]:
        if self.classes_error is not None:
            raise self.classes_error
        return list(self.refs)

    def lessons(self, class_id: int, start: date, end: date) -> list[Period]:
        self.requests.append((class_id, start, end))
        name = next(ref.name for ref in self.refs if ref.id == class_id)
        if name in self.failing:
            raise ProviderFetchError(f"getTimetable failed for {name}")
        return self.timetable[name]

    def __enter__(self) -> "FakeProvider":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.closed = True


@pytest.fixture
def timetable() -> dict[str, list[Period]]:
    return {
        "5a": [
            make_period(["5a"], ["Miller"], ["R101"], ["MA"]),
            make_period(["5a"], ["Smith"], ["R102"], ["EN"], code="cancelled"),
        ],
        "6b": [
            make_period(
                ["6b"], ["Jones"], ["R201"], ["DE"], code="irregular", subst_text="Vertretung"
            ),
        ],
        "7c": [
            make_period(["7c", "7d"], ["Miller", "Jones"], ["Gym"], ["SP"]),
        ],
    }


@pytest.fixture
def config(tmp_path) -> CollectorConfig:
    return CollectorConfig(
        _env_file=None,
        server="example.webuntis.com",
        school="demo-school",
        username="collector",
        password="hunter2",
        secret="pepper",
        storage_path=str(tmp_path / "archive"),
        state_path=str(tmp_path / "state.json"),
        log_path=None,
    )
