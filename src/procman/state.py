"""Control state shared by the monitor loops and the control surface."""

import logging
import threading
from dataclasses import dataclass, field

from procman.models import FilterCriterion, SortCriterion
from procman.provider import SnapshotProvider
from procman.table import ProcessTable

DEFAULT_UPDATE_INTERVAL = 5
DEFAULT_PAUSE_QUANTUM = 0.1


class ControlState:
    """
    Flags and settings observed by every loop.

    Each field is read and written as a whole, so no table lock is needed.
    A single condition variable is broadcast on stop, pause and resume; loops
    wait on it for both the interval sleep and the pause poll, which keeps
    stop and resume latency bounded by the pause quantum.
    """

    def __init__(
        self,
        update_interval: int = DEFAULT_UPDATE_INTERVAL,
        pause_quantum: float = DEFAULT_PAUSE_QUANTUM,
        sort_criterion: SortCriterion = SortCriterion.CPU,
        filter_criterion: FilterCriterion | None = None,
    ) -> None:
        self._cond = threading.Condition()
        self._active = False
        self._paused = False
        self._pause_quantum = max(0.01, pause_quantum)
        self._update_interval = DEFAULT_UPDATE_INTERVAL
        self.update_interval = update_interval
        self._sort_criterion = sort_criterion
        self._filter_criterion = filter_criterion or FilterCriterion.none()

    @property
    def active(self) -> bool:
        return self._active

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def pause_quantum(self) -> float:
        return self._pause_quantum

    @property
    def update_interval(self) -> int:
        """Seconds between cycles; read by each loop at the start of a cycle."""
        return self._update_interval

    @update_interval.setter
    def update_interval(self, seconds: int) -> None:
        if isinstance(seconds, bool) or not isinstance(seconds, int) or seconds <= 0:
            raise ValueError(f"Update interval must be a positive integer, got {seconds!r}")
        self._update_interval = seconds

    @property
    def sort_criterion(self) -> SortCriterion:
        return self._sort_criterion

    @sort_criterion.setter
    def sort_criterion(self, criterion: SortCriterion) -> None:
        self._sort_criterion = criterion

    @property
    def filter_criterion(self) -> FilterCriterion:
        return self._filter_criterion

    @filter_criterion.setter
    def filter_criterion(self, criterion: FilterCriterion) -> None:
        self._filter_criterion = criterion

    def activate(self) -> bool:
        """Mark monitoring active and unpaused. Returns False if already active."""
        with self._cond:
            if self._active:
                return False
            self._active = True
            self._paused = False
            self._cond.notify_all()
            return True

    def deactivate(self) -> bool:
        """Mark monitoring inactive and wake every waiting loop."""
        with self._cond:
            was_active = self._active
            self._active = False
            self._cond.notify_all()
            return was_active

    def set_paused(self, paused: bool) -> bool:
        """Set the paused flag. Returns False if it already had that value."""
        with self._cond:
            if self._paused == paused:
                return False
            self._paused = paused
            self._cond.notify_all()
            return True

    def wait_interval(self, seconds: float) -> bool:
        """
        Sleep for up to seconds, waking early if monitoring is stopped.

        Returns:
            True if monitoring is still active afterwards.
        """
        with self._cond:
            self._cond.wait_for(lambda: not self._active, timeout=seconds)
            return self._active

    def wait_while_paused(self) -> bool:
        """
        Wait at most one pause quantum while paused.

        Returns:
            True if monitoring is still active afterwards.
        """
        with self._cond:
            if self._active and self._paused:
                self._cond.wait_for(
                    lambda: not (self._active and self._paused),
                    timeout=self._pause_quantum,
                )
            return self._active


@dataclass
class MonitorContext:
    """Everything the loops and the control surface share, passed by reference."""

    provider: SnapshotProvider
    table: ProcessTable = field(default_factory=ProcessTable)
    control: ControlState = field(default_factory=ControlState)
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("procman"))
