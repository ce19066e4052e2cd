"""Shared fixtures for procman tests."""

import logging
import threading

import pytest

from procman.models import ProcessInfo


class FakeSnapshotProvider:
    """
    Scripted snapshot provider.

    Processes, per-process ticks and the system tick counter are plain
    attributes that tests mutate between sampling cycles.
    """

    def __init__(self, processes=None, ticks=None, total_ticks=0, cores=1):
        self._lock = threading.Lock()
        self.processes: list[ProcessInfo] = list(processes or [])
        self.ticks: dict[int, int] = dict(ticks or {})
        self.total_ticks = total_ticks
        self.cores = cores
        self.list_calls = 0

    def list_processes(self) -> list[ProcessInfo]:
        with self._lock:
            self.list_calls += 1
            return list(self.processes)

    def total_system_cpu_ticks(self) -> int:
        return self.total_ticks

    def process_cpu_ticks(self, pid: int) -> int:
        return self.ticks.get(pid, 0)

    def core_count(self) -> int:
        return self.cores


class AdvancingProvider(FakeSnapshotProvider):
    """Fake provider whose counters advance on every read."""

    def total_system_cpu_ticks(self) -> int:
        with self._lock:
            self.total_ticks += 1000
            return self.total_ticks

    def process_cpu_ticks(self, pid: int) -> int:
        with self._lock:
            self.ticks[pid] = self.ticks.get(pid, 0) + pid
            return self.ticks[pid]


def make_info(pid, owner="user", command="cmd", memory_mb=1.0) -> ProcessInfo:
    return ProcessInfo(pid=pid, owner=owner, command=command, memory_mb=memory_mb)


@pytest.fixture
def alice_bob_provider():
    """Two processes owned by alice and bob with 50 and 10 cumulative ticks."""
    return FakeSnapshotProvider(
        processes=[
            make_info(1, owner="alice", command="worker", memory_mb=20.0),
            make_info(2, owner="bob", command="shell", memory_mb=80.0),
        ],
        ticks={1: 50, 2: 10},
        total_ticks=1000,
        cores=1,
    )


@pytest.fixture
def test_logger():
    """A logger isolated from the procman package logger."""
    logger = logging.getLogger("tests.procman")
    logger.setLevel(logging.DEBUG)
    return logger
