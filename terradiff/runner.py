"""
Periodically run the Terraform diff and keep the latest result.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .config import Config
from .diff import Diff, ProcessError, diff
from .terraform import ProcessResult, TerraformLaunchError

logger = logging.getLogger(__name__)


class RunStatus:
    NO_DIFF = "no_diff"
    DIFF = "diff"
    ERROR = "error"


@dataclass(frozen=True)
class RunReport:
    """Outcome of one diff run."""
    status: str
    started_at: datetime
    finished_at: datetime
    diff: Optional[Diff] = None
    error: Optional[ProcessResult] = None
    message: Optional[str] = None  # Set when terraform could not be started


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DiffRunner:
    """Runs `diff` on an interval in a background thread."""

    def __init__(self, config: Config, interval_seconds: float = 60.0):
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {interval_seconds}")
        self.config = config
        self.interval_seconds = interval_seconds
        self._latest: Optional[RunReport] = None
        self._lock = threading.Lock()
        # Serialises runs so they never overlap
        self._run_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> RunReport:
        """
        Run the diff once and store the report.

        Returns:
            Report for this run
        """
        with self._run_lock:
            started_at = _now()
            try:
                result = diff(self.config)
            except ProcessError as e:
                report = RunReport(RunStatus.ERROR, started_at, _now(), error=e.result)
            except TerraformLaunchError as e:
                logger.error(f"{e}: {e.__cause__}")
                report = RunReport(RunStatus.ERROR, started_at, _now(), message=str(e))
            else:
                status = RunStatus.NO_DIFF if result is None else RunStatus.DIFF
                report = RunReport(status, started_at, _now(), diff=result)

            logger.info(f"Diff run finished with status {report.status}")
            with self._lock:
                self._latest = report
            return report

    def latest(self) -> Optional[RunReport]:
        with self._lock:
            return self._latest

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="terradiff-runner", daemon=True)
        self._thread.start()
        logger.info(f"Diff runner started (every {self.interval_seconds}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.exception(f"Unexpected error running diff: {e}")
            self._stop.wait(self.interval_seconds)
