"""Process termination helpers."""

import logging
import os
from collections.abc import Iterable

import psutil

from procman.models import ProcessRecord

logger = logging.getLogger(__name__)


def kill_process(pid: int) -> bool:
    """
    Send SIGKILL to pid.

    Refuses non-positive pids and the monitor's own pid. Vanished or
    privileged processes are reported as failures; nothing is retried.
    """
    if pid <= 0:
        logger.error("Refusing to kill invalid PID %d.", pid)
        return False
    if pid == os.getpid():
        logger.error("Refusing to kill the monitor itself (PID %d).", pid)
        return False

    try:
        psutil.Process(pid).kill()
    except psutil.NoSuchProcess:
        logger.error("Failed to kill PID %d: no such process.", pid)
        return False
    except psutil.AccessDenied:
        logger.error("Failed to kill PID %d: access denied.", pid)
        return False
    return True


def _kill_all(records: Iterable[ProcessRecord]) -> bool:
    killed = False
    for record in records:
        if kill_process(record.pid):
            killed = True
    return killed


def kill_processes_by_cpu(records: Iterable[ProcessRecord], threshold: float) -> bool:
    """Kill every process above threshold percent CPU. True if any was killed."""
    return _kill_all(r for r in records if r.cpu_percent > threshold)


def kill_processes_by_user(records: Iterable[ProcessRecord], username: str) -> bool:
    """Kill every process owned by username. True if any was killed."""
    return _kill_all(r for r in records if r.owner == username)
