"""WebUntis timetable archiver for the school-mining project.

Captures today's timetable of every class, pseudonymizes teacher names and
appends the snapshot to a per-day archive partition.
"""

from src.school_mining.archive import ArchiveStore
from src.school_mining.collector import RunOutcome, RunResult, run_collection
from src.school_mining.coordinator import PreflightDecision, RunCoordinator
from src.school_mining.models import (
    ErrorState,
    ExportFile,
    Lesson,
    LessonCode,
    ReportedState,
    RunStatus,
    Snapshot,
)
from src.school_mining.pseudonym import Pseudonymizer, transform
from src.school_mining.snapshot import SnapshotBuilder, build_snapshot

__all__ = [
    "ArchiveStore",
    "ErrorState",
    "ExportFile",
    "Lesson",
    "LessonCode",
    "PreflightDecision",
    "Pseudonymizer",
    "ReportedState",
    "RunCoordinator",
    "RunOutcome",
    "RunResult",
    "RunStatus",
    "Snapshot",
    "SnapshotBuilder",
    "build_snapshot",
    "run_collection",
    "transform",
]
