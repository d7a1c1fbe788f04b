"""Progress reporting for long-running enumeration and fetch stages."""
import time
from typing import Optional

from tqdm import tqdm

from .constants import PROGRESS_REFRESH_INTERVAL


class ProgressReporter:
    """Port for progress updates; the default implementation discards them."""

    def inc(self, amount: int = 1) -> None:
        pass

    def finish(self, message: str = "Done") -> None:
        pass


NullProgress = ProgressReporter


class TqdmProgress(ProgressReporter):
    """
    tqdm-backed reporter that coalesces increments.

    Counts accumulate locally and are pushed to the bar at most once per
    refresh interval, so per-key updates stay cheap.
    """

    def __init__(
        self,
        description: str,
        total: Optional[int] = None,
        refresh_interval: float = PROGRESS_REFRESH_INTERVAL,
        disable: bool = False,
        file=None,
    ):
        self.refresh_interval = refresh_interval
        self.pending = 0
        self.last_update = time.monotonic()
        self.bar = tqdm(
            total=total,
            desc=description,
            unit="keys",
            unit_scale=True,
            dynamic_ncols=True,
            disable=disable,
            file=file,
        )

    def inc(self, amount: int = 1) -> None:
        self.pending += amount
        now = time.monotonic()
        if now - self.last_update >= self.refresh_interval:
            self.bar.update(self.pending)
            self.pending = 0
            self.last_update = now

    def finish(self, message: str = "Done") -> None:
        if self.pending:
            self.bar.update(self.pending)
            self.pending = 0
        self.bar.set_postfix_str(message)
        self.bar.close()


class ProgressFactory:
    """Creates spinners (unknown total) and bars (known total)."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def spinner(self, description: str) -> ProgressReporter:
        if not self.enabled:
            return NullProgress()
        return TqdmProgress(description)

    def bar(self, total: int, description: str) -> ProgressReporter:
        if not self.enabled:
            return NullProgress()
        return TqdmProgress(description, total=total)
