"""Tests for the archive models and the status record format."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from src.school_mining.models import (
    ErrorState,
    ExportFile,
    Lesson,
    LessonCode,
    ReportedState,
    RunStatus,
    Snapshot,
)

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class TestReportedStateJson:
    """The status record must stay readable by the other collector hosts."""

    def test_success_is_plain_string(self) -> None:
        record = ReportedState.now(RunStatus.SUCCESS, NOW)

        data = json.loads(record.to_json())

        assert data["state"] == "SUCCESS"
        assert datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00")) == NOW

    def test_started_is_plain_string(self) -> None:
        data = json.loads(ReportedState.now(RunStatus.STARTED, NOW).to_json())

        assert data["state"] == "STARTED"

    def test_error_carries_message(self) -> None:
        record = ReportedState.now(ErrorState.of("Login failed. 401"), NOW)

        data = json.loads(record.to_json())

        assert data["state"] == {"ERROR": "Login failed. 401"}

    @pytest.mark.parametrize(
        "state",
        [RunStatus.STARTED, RunStatus.SUCCESS, ErrorState.of("boom")],
    )
    def test_parse_written_record(self, state) -> None:
        record = ReportedState.now(state, NOW)

        assert ReportedState.from_json(record.to_json()) == record

    def test_parse_record_with_zulu_timestamp(self) -> None:
        raw = '{"state": {"ERROR": "x"}, "timestamp": "2026-10-17T11:30:00.123456Z"}'

        record = ReportedState.from_json(raw)

        assert record.state == ErrorState.of("x")
        assert record.timestamp == datetime(
            2026, 10, 17, 11, 30, 0, 123456, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize(
        "raw",
        [
            '{"state": "RUNNING", "timestamp": "2026-10-17T11:30:00Z"}',
            '{"state": {"FAILED": "x"}, "timestamp": "2026-10-17T11:30:00Z"}',
            '{"state": {"message": "x"}, "timestamp": "2026-10-17T11:30:00Z"}',
            '{"state": "SUCCESS"}',
            "not json",
        ],
    )
    def test_reject_unknown_records(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            ReportedState.from_json(raw)


class TestFreshness:
    def test_recent_record_is_fresh(self) -> None:
        record = ReportedState.now(RunStatus.STARTED, NOW - timedelta(minutes=30))

        assert record.is_fresh(NOW)

    def test_old_record_is_stale(self) -> None:
        record = ReportedState.now(RunStatus.STARTED, NOW - timedelta(minutes=90))

        assert not record.is_fresh(NOW)

    def test_exactly_one_hour_is_stale(self) -> None:
        record = ReportedState.now(RunStatus.STARTED, NOW - timedelta(hours=1))

        assert not record.is_fresh(NOW)


class TestArchiveModels:
    def test_lesson_defaults(self) -> None:
        lesson = Lesson()

        assert lesson.code is LessonCode.REGULAR
        assert lesson.topic == "None"
        assert lesson.substitution_note is None

    def test_snapshot_timestamp_is_frozen(self) -> None:
        snapshot = Snapshot()

        with pytest.raises(ValidationError):
            snapshot.captured_at = NOW

    def test_naive_timestamps_are_read_as_utc(self) -> None:
        snapshot = Snapshot(captured_at=datetime(2026, 10, 17, 12, 0))

        assert snapshot.captured_at == NOW

    def test_add_appends_in_order(self) -> None:
        export_file = ExportFile.new()
        first, second = Snapshot(), Snapshot()

        export_file.add(first)
        export_file.add(second)

        assert export_file.snapshots == [first, second]
        assert export_file.snapshots[0] is first
