"""Process snapshot providers for procman."""

import logging
import os
from typing import Protocol

import psutil

from procman.models import UNKNOWN, ProcessInfo

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024
_SYSTEM_TIME_FIELDS = ("user", "nice", "system", "idle", "iowait", "irq", "softirq", "steal")
_PROCESS_TIME_FIELDS = ("user", "system", "children_user", "children_system")


def clock_ticks_per_second() -> int:
    """Get the kernel clock tick rate (USER_HZ), defaulting to 100."""
    try:
        ticks = os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return 100
    return ticks if ticks > 0 else 100


class SnapshotProvider(Protocol):
    """Source of raw process state consumed by the samplers."""

    def list_processes(self) -> list[ProcessInfo]:
        """Return the current set of live processes."""
        ...

    def total_system_cpu_ticks(self) -> int:
        """Return cumulative system-wide CPU ticks, or 0 on read failure."""
        ...

    def process_cpu_ticks(self, pid: int) -> int:
        """Return cumulative CPU ticks of pid, or 0 if it cannot be read."""
        ...

    def core_count(self) -> int:
        """Return the number of online CPU cores."""
        ...


class PsutilSnapshotProvider:
    """
    Snapshot provider backed by psutil.

    Handles NoSuchProcess, AccessDenied and ZombieProcess per process: vanished
    processes are skipped and unreadable fields fall back to "Unknown" or 0.
    """

    def __init__(self) -> None:
        self._ticks_per_second = clock_ticks_per_second()

    @property
    def ticks_per_second(self) -> int:
        return self._ticks_per_second

    def list_processes(self) -> list[ProcessInfo]:
        """
        Enumerate live processes.

        Uses psutil.process_iter() with ad_value so a single unreadable
        attribute never drops the whole process.
        """
        processes: list[ProcessInfo] = []

        for proc in psutil.process_iter(attrs=["pid", "username", "name", "memory_info"], ad_value=None):
            try:
                info = proc.info
                pid = info.get("pid")
                if not pid:
                    continue  # pid 0 is the idle/swapper task

                mem_info = info.get("memory_info")
                memory_mb = mem_info.rss / _BYTES_PER_MB if mem_info else 0.0

                processes.append(
                    ProcessInfo(
                        pid=pid,
                        owner=info.get("username") or UNKNOWN,
                        command=info.get("name") or UNKNOWN,
                        memory_mb=memory_mb,
                    )
                )
            except (psutil.NoSuchProcess, psutil.ZombieProcess):
                continue

        return processes

    def total_system_cpu_ticks(self) -> int:
        try:
            times = psutil.cpu_times()
        except (OSError, RuntimeError) as exc:
            logger.error("Failed to read system CPU times: %s", exc)
            return 0
        seconds = sum(getattr(times, name, 0.0) for name in _SYSTEM_TIME_FIELDS)
        return int(round(seconds * self._ticks_per_second))

    def process_cpu_ticks(self, pid: int) -> int:
        try:
            times = psutil.Process(pid).cpu_times()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            logger.debug("Failed to read CPU times of PID %d", pid)
            return 0
        seconds = sum(getattr(times, name, 0.0) for name in _PROCESS_TIME_FIELDS)
        return int(round(seconds * self._ticks_per_second))

    def core_count(self) -> int:
        return psutil.cpu_count() or 1
