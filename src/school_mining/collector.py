"""One collection run: check, log in, capture, archive, report.

Stage order:
  preflight -> STARTED -> login -> load archive -> build snapshot
  -> append -> save -> SUCCESS

Every fatal stage publishes ERROR with a message naming the stage and ends
the run right there. Nothing is retried; the next scheduled run is the
retry, gated by the preflight check.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from src.school_mining.archive import ArchiveStore
from src.school_mining.config import CollectorConfig
from src.school_mining.coordinator import RunCoordinator
from src.school_mining.errors import ArchiveError, AuthError, ProviderFetchError
from src.school_mining.logging import get_logger
from src.school_mining.snapshot import SnapshotBuilder
from src.school_mining.untis import UntisClient

log = get_logger(__name__)


class RunOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class RunResult:
    """What a run did, for the caller and the exit code."""

    outcome: RunOutcome
    message: str
    lessons: int = 0
    partition: Path | None = None
    failed_classes: tuple[str, ...] = field(default_factory=tuple)


def login_provider(config: CollectorConfig) -> UntisClient:
    """Log in to WebUntis with the configured account."""
    return UntisClient.login(
        config.server,
        config.school,
        config.username,
        config.password,
        timeout=config.request_timeout,
    )


def run_collection(
    config: CollectorConfig,
    *,
    provider_factory: Callable[[CollectorConfig], UntisClient] = login_provider,
    coordinator: RunCoordinator | None = None,
    store: ArchiveStore | None = None,
) -> RunResult:
    """Run one collection cycle.

    Args:
        config: Collector configuration.
        provider_factory: Returns a logged-in timetable client, used as a
            context manager.
        coordinator: Defaults to one built from `config`.
        store: Defaults to an ArchiveStore on `config.storage_path`.

    Returns:
        RunResult: Never raises for failures of the run itself.
    """
    coordinator = coordinator or RunCoordinator.from_config(config)
    store = store or ArchiveStore(config.storage_path)

    decision = coordinator.preflight()
    if not decision.proceed:
        log.info("run_skipped", reason=decision.reason)
        return RunResult(RunOutcome.SKIPPED, decision.reason)

    coordinator.started()
    try:
        return _collect(config, provider_factory, coordinator, store)
    except Exception as e:
        log.exception("run_crashed")
        return _fail(coordinator, "Unexpected error", e)


def _collect(
    config: CollectorConfig,
    provider_factory: Callable[[CollectorConfig], UntisClient],
    coordinator: RunCoordinator,
    store: ArchiveStore,
) -> RunResult:
    try:
        provider = provider_factory(config)
    except AuthError as e:
        return _fail(coordinator, "Login failed", e)

    with provider:
        try:
            export_file = store.load()
        except ArchiveError as e:
            return _fail(coordinator, "Loading the archive failed", e)

        builder = SnapshotBuilder(provider, config.secret_bytes)
        try:
            snapshot = builder.build()
        except ProviderFetchError as e:
            return _fail(coordinator, "Creating the snapshot failed", e)

        store.add(export_file, snapshot)

        try:
            partition = store.save(export_file)
        except ArchiveError as e:
            return _fail(coordinator, "Saving the archive failed", e)

    coordinator.succeeded()
    log.info(
        "run_succeeded",
        lessons=len(snapshot.lessons),
        snapshots=len(export_file.snapshots),
        partition=str(partition),
    )
    return RunResult(
        RunOutcome.SUCCESS,
        "Snapshot archived",
        lessons=len(snapshot.lessons),
        partition=partition,
        failed_classes=tuple(builder.failed_classes),
    )


def _fail(coordinator: RunCoordinator, stage: str, error: Exception) -> RunResult:
    message = f"{stage}. {error}"
    log.error("run_failed", stage=stage, error=str(error))
    coordinator.failed(message)
    return RunResult(RunOutcome.FAILED, message)
