"""Concurrent sampling and display engine for procman."""

import logging
import threading
import time
from collections.abc import Callable

from procman.config import MonitorConfig
from procman.models import FilterCriterion, FilterKind, LoopState, ProcessRecord, SortCriterion
from procman.provider import PsutilSnapshotProvider, SnapshotProvider
from procman.state import ControlState, MonitorContext
from procman.table import ProcessTable
from procman.view import DEFAULT_DISPLAY_LIMIT, build_view, parse_threshold

Renderer = Callable[[list[ProcessRecord]], None]


def calculate_cpu_usage(process_ticks_delta: int, total_ticks_delta: int, num_cores: int) -> float:
    """
    Convert tick deltas into a CPU percentage.

    Returns exactly 0.0 when the system clock has not advanced, so a zero
    interval never produces NaN or infinity. Negative process deltas (pid
    reuse) also yield 0.0.
    """
    if total_ticks_delta <= 0 or process_ticks_delta <= 0:
        return 0.0
    return process_ticks_delta / total_ticks_delta * num_cores * 100.0


class MonitorLoop:
    """
    A long-lived loop running on its own daemon thread.

    Each cycle waits for the update interval and then calls sample(). The
    loop idles while paused and exits once monitoring becomes inactive.
    Subclasses implement sample() and optionally prime().
    """

    name = "MonitorLoop"

    def __init__(self, context: MonitorContext) -> None:
        self._context = context
        self._thread: threading.Thread | None = None
        self._state = LoopState.WAITING_TO_RUN
        self._cycles = 0

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def cycles(self) -> int:
        """Number of completed sampling cycles."""
        return self._cycles

    @property
    def is_running(self) -> bool:
        """Check if the loop thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread."""
        if self.is_running:
            return

        self._thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the loop thread to exit."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout)
        if not thread.is_alive():
            self._thread = None

    def prime(self) -> None:
        """Read any baseline needed before the first cycle."""

    def sample(self) -> None:
        """Perform one cycle of work."""
        raise NotImplementedError

    def _run(self) -> None:
        """Main loop running in the background thread."""
        control = self._context.control
        log = self._context.logger
        log.info("%s thread started.", self.name)

        self._state = LoopState.WAITING_TO_RUN
        try:
            self.prime()
        except Exception:
            log.exception("%s failed to read its baseline.", self.name)

        while control.active:
            if control.paused:
                control.wait_while_paused()
                continue

            # The interval is read once per cycle; changes apply on the next tick
            if not control.wait_interval(control.update_interval):
                break
            if control.paused:
                continue

            self._state = LoopState.SAMPLING
            try:
                self.sample()
                self._cycles += 1
            except Exception:
                log.exception("%s cycle failed.", self.name)
            finally:
                self._state = LoopState.WAITING_TO_RUN

        self._state = LoopState.STOPPED
        log.info("%s thread stopped.", self.name)


class CpuSampler(MonitorLoop):
    """Derives per-process CPU usage from tick counter deltas."""

    name = "CpuSampler"

    def __init__(self, context: MonitorContext) -> None:
        super().__init__(context)
        self._total_prev = 0
        self._num_cores = 1

    @property
    def num_cores(self) -> int:
        return self._num_cores

    def prime(self) -> None:
        provider = self._context.provider
        self._total_prev = provider.total_system_cpu_ticks()
        self._num_cores = max(1, provider.core_count() or 1)

    def sample(self) -> None:
        provider = self._context.provider
        table = self._context.table
        log = self._context.logger

        total_now = provider.total_system_cpu_ticks()
        if total_now <= 0:
            log.warning("Total CPU ticks unreadable, reporting 0%% CPU for this cycle.")
            total_delta = 0
        else:
            total_delta = total_now - self._total_prev
            if total_delta <= 0:
                log.warning("Total CPU time delta is zero, cannot calculate CPU usage.")

        processes = provider.list_processes()
        for proc in processes:
            ticks = provider.process_cpu_ticks(proc.pid)
            prev_ticks = table.prev_cpu_ticks(proc.pid)
            if ticks <= 0 and prev_ticks > 0:
                # Process exited or became unreadable mid-cycle
                continue

            table.upsert(
                proc.pid,
                owner=proc.owner,
                command=proc.command,
                memory_mb=proc.memory_mb,
                cpu_percent=calculate_cpu_usage(ticks - prev_ticks, total_delta, self._num_cores),
                prev_cpu_ticks=ticks,
            )

        removed = table.reconcile(proc.pid for proc in processes)
        if removed:
            log.debug("Removed %d exited processes.", removed)

        if total_now > 0:
            self._total_prev = total_now


class MemorySampler(MonitorLoop):
    """
    Refreshes memory usage, owner and command of tracked processes.

    Never touches CPU fields and never adds or removes records: its listing may
    be older than the CPU sampler's, so only the CPU sampler reconciles.
    """

    name = "MemorySampler"

    def sample(self) -> None:
        table = self._context.table
        for proc in self._context.provider.list_processes():
            table.update_existing(proc.pid, memory_mb=proc.memory_mb, owner=proc.owner, command=proc.command)


class DisplayLoop(MonitorLoop):
    """Renders a filtered, sorted and capped copy of the process table."""

    name = "DisplayLoop"

    def __init__(
        self,
        context: MonitorContext,
        renderer: Renderer | None = None,
        limit: int = DEFAULT_DISPLAY_LIMIT,
    ) -> None:
        super().__init__(context)
        self._renderer = renderer
        self._limit = limit
        self._last_view: list[ProcessRecord] = []

    @property
    def last_view(self) -> list[ProcessRecord]:
        return list(self._last_view)

    def sample(self) -> None:
        control = self._context.control
        view = build_view(
            self._context.table.snapshot_all(),
            control.filter_criterion,
            control.sort_criterion,
            limit=self._limit,
        )
        self._last_view = view

        if self._renderer is None:
            return
        try:
            self._renderer(view)
        except Exception:
            self._context.logger.exception("Renderer failed, skipping this frame.")


class ProcessMonitor:
    """
    Control surface of the monitoring engine.

    Owns the shared MonitorContext and spawns the CPU sampler, the memory
    sampler and the display loop on start(). Invalid settings are rejected
    with ValueError and leave the state unchanged.
    """

    def __init__(
        self,
        provider: SnapshotProvider | None = None,
        renderer: Renderer | None = None,
        config: MonitorConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the ProcessMonitor.

        Args:
            provider: Source of process state. Defaults to psutil.
            renderer: Called by the display loop with each ordered view.
            config: Initial settings.
            logger: Receives event messages. Defaults to this module's logger.
        """
        self._config = (config or MonitorConfig()).validated()
        control = ControlState(
            update_interval=self._config.update_interval,
            pause_quantum=self._config.pause_quantum,
            sort_criterion=self._config.sort(),
            filter_criterion=self._config.filter(),
        )
        self._context = MonitorContext(
            provider=provider or PsutilSnapshotProvider(),
            table=ProcessTable(),
            control=control,
            logger=logger or logging.getLogger(__name__),
        )
        self._renderer = renderer
        self._loops: list[MonitorLoop] = []
        self._lifecycle_lock = threading.Lock()

    @property
    def context(self) -> MonitorContext:
        return self._context

    @property
    def table(self) -> ProcessTable:
        return self._context.table

    @property
    def loops(self) -> list[MonitorLoop]:
        return list(self._loops)

    @property
    def is_running(self) -> bool:
        return self._context.control.active

    @property
    def is_paused(self) -> bool:
        return self._context.control.paused

    @property
    def sort_criterion(self) -> SortCriterion:
        return self._context.control.sort_criterion

    @property
    def filter_criterion(self) -> FilterCriterion:
        return self._context.control.filter_criterion

    @property
    def update_interval(self) -> int:
        return self._context.control.update_interval

    @property
    def display_limit(self) -> int:
        return self._config.display_limit

    @property
    def renderer(self) -> Renderer | None:
        return self._renderer

    @renderer.setter
    def renderer(self, renderer: Renderer | None) -> None:
        """Set the renderer used by the next start()."""
        self._renderer = renderer

    def start(self) -> bool:
        """
        Start monitoring.

        Returns:
            False if monitoring was already active.
        """
        log = self._context.logger
        with self._lifecycle_lock:
            if not self._context.control.activate():
                log.warning("Start requested while monitoring is already active.")
                return False

            self._loops = [
                CpuSampler(self._context),
                MemorySampler(self._context),
                DisplayLoop(self._context, self._renderer, self._config.display_limit),
            ]
            for loop in self._loops:
                loop.start()

        log.info("Monitoring started with sorting by %s.", self.sort_criterion.value)
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """
        Stop monitoring and wait for every loop to exit.

        Args:
            timeout: Per-thread join timeout (seconds). None waits indefinitely.

        Returns:
            False if monitoring was not active.
        """
        log = self._context.logger
        with self._lifecycle_lock:
            if not self._context.control.deactivate():
                log.warning("Stop requested while monitoring is not active.")
                return False
            for loop in self._loops:
                loop.join(timeout=timeout)

        log.info("Monitoring stopped.")
        return True

    def pause(self) -> bool:
        log = self._context.logger
        if not self.is_running:
            log.warning("Pause requested while monitoring is not active.")
            return False
        if not self._context.control.set_paused(True):
            log.warning("Pause requested while monitoring is already paused.")
            return False
        log.info("Monitoring paused.")
        return True

    def resume(self) -> bool:
        log = self._context.logger
        if not self.is_running:
            log.warning("Resume requested while monitoring is not active.")
            return False
        if not self._context.control.set_paused(False):
            log.warning("Resume requested while monitoring is already running.")
            return False
        log.info("Monitoring resumed.")
        return True

    def set_sort_criterion(self, criterion: SortCriterion | str) -> SortCriterion:
        """
        Change the sort order of the view.

        Raises:
            ValueError: If criterion is not 'cpu' or 'memory'.
        """
        try:
            sort = criterion if isinstance(criterion, SortCriterion) else SortCriterion(criterion)
        except ValueError:
            self._context.logger.warning("Rejected sorting criterion: %s", criterion)
            raise ValueError(f"Invalid sorting criterion {criterion!r}. Use 'cpu' or 'memory'.") from None

        self._context.control.sort_criterion = sort
        self._context.logger.info("Sorting criterion changed to %s.", sort.value)
        return sort

    def set_filter_criterion(self, kind: FilterKind | str, value: str = "") -> FilterCriterion:
        """
        Restrict the view to processes matching (kind, value).

        Raises:
            ValueError: For an unknown kind, an empty user or a non-numeric threshold.
        """
        log = self._context.logger
        try:
            filter_kind = kind if isinstance(kind, FilterKind) else FilterKind(kind)
        except ValueError:
            log.warning("Rejected filter type: %s", kind)
            raise ValueError(f"Invalid filter type {kind!r}. Use 'user', 'cpu' or 'memory'.") from None

        value = str(value).strip()
        if filter_kind is FilterKind.USER and not value:
            log.warning("Rejected user filter without a username.")
            raise ValueError("A user filter needs a username.")
        if filter_kind in (FilterKind.CPU, FilterKind.MEMORY):
            try:
                threshold = parse_threshold(value)
            except ValueError:
                log.warning("Rejected %s filter threshold: %s", filter_kind.value, value)
                raise ValueError(f"Invalid {filter_kind.value} threshold {value!r}. Use a number.") from None
            # 50.0 is shown as "50"
            value = str(int(threshold)) if threshold == int(threshold) else str(threshold)
        if filter_kind is FilterKind.NONE:
            value = ""

        criterion = FilterCriterion(filter_kind, value)
        self._context.control.filter_criterion = criterion
        log.info("Filter applied: %s", criterion.describe())
        return criterion

    def clear_filter(self) -> FilterCriterion:
        return self.set_filter_criterion(FilterKind.NONE)

    def set_update_interval(self, seconds: int | str) -> int:
        """
        Change the sampling interval; takes effect on each loop's next cycle.

        Raises:
            ValueError: If seconds is not a positive integer.
        """
        try:
            interval = int(seconds) if isinstance(seconds, str) else seconds
            self._context.control.update_interval = interval
        except ValueError:
            self._context.logger.warning("Rejected update interval: %s", seconds)
            raise ValueError(f"Invalid interval {seconds!r}. Provide a positive integer number of seconds.") from None

        self._context.logger.info("Update interval changed to %d seconds.", interval)
        return interval

    def list_snapshot(self, limit: int | None = None) -> list[ProcessRecord]:
        """Return a filtered, sorted copy of the table, independent of the display loop."""
        control = self._context.control
        return build_view(
            self._context.table.snapshot_all(),
            control.filter_criterion,
            control.sort_criterion,
            limit=limit,
        )

    def refresh(self, window: float = 0.5) -> None:
        """
        Sample synchronously without starting the loops.

        Two CPU samples are taken window seconds apart so the percentages
        reflect that window rather than process lifetimes.
        """
        sampler = CpuSampler(self._context)
        sampler.prime()
        sampler.sample()
        time.sleep(window)
        sampler.sample()
        MemorySampler(self._context).sample()
