"""Run Coordinator - advisory de-duplication between collector hosts.

Before doing any work a run may read another host's status record
(STATE_CHECK_URL). A record younger than one hour that says STARTED or
SUCCESS means the work is being done or is done, and this run stops without
publishing anything. A recent ERROR, a stale record or an unreachable
endpoint lets the run go ahead.

While running, the collector reports its own lifecycle to a local status
file (STATE_PATH) which may be served to the other hosts.

This is check-then-act without a lock: two runs starting within the same
window can both proceed. That is accepted; it only costs a duplicate
snapshot.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

import requests
from pydantic import ValidationError

from src.school_mining.config import CollectorConfig
from src.school_mining.errors import StatusPublishError
from src.school_mining.logging import get_logger
from src.school_mining.models import (
    FRESH_WINDOW,
    ErrorState,
    ReportedState,
    RunState,
    RunStatus,
    utc_now,
)
from src.school_mining.utils import write_atomic

log = get_logger(__name__)


@dataclass(frozen=True)
class PreflightDecision:
    """Outcome of the preflight check."""

    proceed: bool
    reason: str
    remote: ReportedState | None = None


class RunCoordinator:
    """Reads the shared status record and publishes this run's state."""

    def __init__(
        self,
        state_path: str | Path | None = None,
        check_url: str | None = None,
        *,
        timeout: float = 10.0,
        fresh_window: timedelta = FRESH_WINDOW,
        clock: Callable[[], datetime] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize RunCoordinator.

        Args:
            state_path: Local status file. None disables publishing.
            check_url: Remote status record. None disables the preflight check.
            timeout: Timeout in seconds for the status request.
            fresh_window: Age up to which a remote record is honoured.
            clock: Returns the current UTC time.
            session: HTTP session used for the status request.
        """
        self.state_path = Path(state_path) if state_path else None
        self.check_url = check_url
        self.timeout = timeout
        self.fresh_window = fresh_window
        self._clock = clock or utc_now
        self._http = session or requests.Session()

    @classmethod
    def from_config(cls, config: CollectorConfig) -> "RunCoordinator":
        return cls(
            state_path=config.state_path,
            check_url=config.state_check_url,
            timeout=config.state_check_timeout,
        )

    def fetch_remote(self) -> ReportedState | None:
        """Fetch the remote status record, None if it is not available."""
        try:
            response = self._http.get(self.check_url, timeout=self.timeout)
        except requests.RequestException as e:
            log.error("status_check_failed", url=self.check_url, error=str(e))
            return None

        if not response.ok:
            log.warning(
                "status_check_failed",
                url=self.check_url,
                status_code=response.status_code,
            )
            return None

        try:
            return ReportedState.from_json(response.content)
        except ValidationError as e:
            log.warning(
                "status_check_invalid", url=self.check_url, errors=e.error_count()
            )
            return None

    def preflight(self) -> PreflightDecision:
        """Decide whether this run should collect."""
        if not self.check_url:
            return PreflightDecision(True, "no status check configured")

        remote = self.fetch_remote()
        if remote is None:
            log.info("collecting_locally", reason="status_unavailable")
            return PreflightDecision(True, "remote status unavailable")

        now = self._clock()
        if not remote.is_fresh(now, self.fresh_window):
            log.info(
                "status_check_stale",
                timestamp=remote.timestamp.isoformat(),
                state=_describe(remote.state),
            )
            return PreflightDecision(True, "remote status is stale", remote)

        if remote.state == RunStatus.STARTED:
            log.info("remote_run_in_progress", timestamp=remote.timestamp.isoformat())
            return PreflightDecision(False, "another run is in progress", remote)

        if remote.state == RunStatus.SUCCESS:
            log.info("remote_run_succeeded", timestamp=remote.timestamp.isoformat())
            return PreflightDecision(False, "another run already succeeded", remote)

        log.error("remote_run_failed", error=remote.state.message)
        log.info("collecting_locally", reason="remote_error")
        return PreflightDecision(True, f"remote run failed: {remote.state.message}", remote)

    def publish(self, state: RunState) -> bool:
        """Write `state` to the local status file.

        Best effort: failures are logged and reported as False.
        """
        if self.state_path is None:
            return False

        record = ReportedState.now(state, self._clock())
        try:
            self._write(record)
        except StatusPublishError as e:
            log.error("status_publish_failed", state=_describe(state), error=str(e))
            return False

        log.debug("status_published", state=_describe(state), path=str(self.state_path))
        return True

    def started(self) -> bool:
        return self.publish(RunStatus.STARTED)

    def succeeded(self) -> bool:
        return self.publish(RunStatus.SUCCESS)

    def failed(self, message: str) -> bool:
        return self.publish(ErrorState.of(message))

    def _write(self, record: ReportedState) -> None:
        try:
            write_atomic(self.state_path, record.to_json().encode("utf-8"))
        except OSError as e:
            raise StatusPublishError(
                f"Status file {self.state_path} could not be written: {e}"
            ) from e


def _describe(state: RunState) -> str:
    if isinstance(state, ErrorState):
        return "ERROR"
    return state.value
