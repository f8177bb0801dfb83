"""Tests for the collect_snapshot command line entry point."""

import pytest
import structlog

from scripts import collect_snapshot
from src.school_mining.collector import RunOutcome, RunResult

REQUIRED = ["SERVER", "SCHOOL", "USERNAME", "PASSWORD", "SECRET", "STORAGE_PATH"]


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def env_file(tmp_path, monkeypatch):
    # load_dotenv writes to os.environ; setenv first so the values are restored
    for name in [*REQUIRED, "LOG_PATH"]:
        monkeypatch.setenv(name, "unset")
    path = tmp_path / ".env"
    path.write_text(
        "\n".join(
            [
                "SERVER=mese.webuntis.com",
                "SCHOOL=demo",
                "USERNAME=collector",
                "PASSWORD=pw",
                "SECRET=pepper",
                f"STORAGE_PATH={tmp_path / 'archive'}",
                "LOG_PATH=",
            ]
        )
    )
    return path


def test_missing_configuration_exits_2(tmp_path, monkeypatch) -> None:
    for name in REQUIRED:
        monkeypatch.delenv(name, raising=False)

    assert collect_snapshot.main(["--env-file", str(tmp_path / "absent.env")]) == 2


@pytest.mark.parametrize(
    ("outcome", "code"),
    [(RunOutcome.SUCCESS, 0), (RunOutcome.SKIPPED, 0), (RunOutcome.FAILED, 1)],
)
def test_exit_code_follows_outcome(env_file, monkeypatch, outcome, code) -> None:
    calls = []

    def fake_run(config):
        calls.append(config)
        return RunResult(outcome, "done")

    monkeypatch.setattr(collect_snapshot, "run_collection", fake_run)

    assert collect_snapshot.main(["--env-file", str(env_file)]) == code
    assert calls[0].school == "demo"
    assert calls[0].log_path is None
