"""Snapshot Builder - turns the current timetable into an archivable Snapshot.

Walks every class of the school, fetches today's periods class by class,
projects them into Lesson models and replaces teacher names by pseudonyms.

Error policy:
  - listing classes fails -> ProviderFetchError propagates, no snapshot
  - one class's timetable fails -> logged, class skipped, build continues
"""

from datetime import date
from typing import Protocol, Sequence

from src.school_mining.errors import ProviderFetchError
from src.school_mining.logging import get_logger
from src.school_mining.models import NO_TOPIC, Lesson, LessonCode, Snapshot
from src.school_mining.pseudonym import Pseudonymizer
from src.school_mining.untis import ClassRef, Period

log = get_logger(__name__)

_LESSON_CODES: dict[str, LessonCode] = {
    "irregular": LessonCode.IRREGULAR,
    "cancelled": LessonCode.CANCELLED,
}


class TimetableProvider(Protocol):
    """What the builder needs from a timetable source."""

    def classes(self) -> Sequence[ClassRef]: ...

    def lessons(self, class_id: int, start: date, end: date) -> Sequence[Period]: ...


def project_lesson(period: Period) -> Lesson:
    """Map a provider period onto the Lesson shape.

    Teacher names are copied as they are; callers must pseudonymize them
    before the lesson leaves the builder.
    """
    return Lesson(
        classes=[element.name for element in period.classes],
        teachers=[element.name for element in period.teachers],
        rooms=[element.name for element in period.rooms],
        code=_LESSON_CODES.get((period.code or "").lower(), LessonCode.REGULAR),
        description=period.lesson_text or "",
        # Only the first subject is kept
        topic=period.subjects[0].name if period.subjects else NO_TOPIC,
        substitution_note=period.substitution_text,
    )


class SnapshotBuilder:
    """Builds one Snapshot from a TimetableProvider.

    Classes whose timetable could not be fetched during the last build are
    listed in `failed_classes`.
    """

    def __init__(self, provider: TimetableProvider, secret: bytes | str) -> None:
        self.provider = provider
        self.pseudonymize = Pseudonymizer(secret)
        self.failed_classes: list[str] = []

    def build(self, day: date | None = None) -> Snapshot:
        """Capture all lessons of `day` (default: today, local time).

        Raises:
            ProviderFetchError: If the class list cannot be fetched.
        """
        day = day or date.today()
        self.failed_classes = []
        snapshot = Snapshot()

        classes = self.provider.classes()
        log.info("snapshot_classes_listed", count=len(classes), day=day.isoformat())

        for school_class in classes:
            log.debug("snapshot_class_fetch", class_name=school_class.name)
            try:
                periods = self.provider.lessons(school_class.id, day, day)
            except ProviderFetchError as e:
                self.failed_classes.append(school_class.name)
                log.error(
                    "snapshot_class_failed",
                    class_name=school_class.name,
                    class_id=school_class.id,
                    error=str(e),
                )
                continue

            for period in periods:
                lesson = project_lesson(period)
                lesson.teachers = self.pseudonymize.many(lesson.teachers)
                snapshot.add_lesson(lesson)

        log.info(
            "snapshot_built",
            lessons=len(snapshot.lessons),
            failed_classes=len(self.failed_classes),
        )
        return snapshot


def build_snapshot(
    provider: TimetableProvider, secret: bytes | str, *, day: date | None = None
) -> Snapshot:
    """Shortcut for SnapshotBuilder(provider, secret).build(day)."""
    return SnapshotBuilder(provider, secret).build(day)
