"""Tests for process termination helpers."""

import multiprocessing
import os
import time

import psutil

from procman.control import kill_process, kill_processes_by_cpu, kill_processes_by_user
from procman.models import ProcessRecord


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def test_refuses_invalid_pids():
    assert not kill_process(0)
    assert not kill_process(-5)


def test_refuses_own_pid():
    assert not kill_process(os.getpid())


def test_kills_spawned_process():
    p = multiprocessing.Process(target=dummy_worker, args=(30.0,))
    p.start()
    try:
        assert kill_process(p.pid)
        p.join(timeout=5.0)
        assert not p.is_alive()
    finally:
        if p.is_alive():
            p.terminate()
            p.join(timeout=1.0)


def test_vanished_process_reports_failure():
    # Above the largest pid_max Linux allows
    pid = 2**22 + 12345
    assert not psutil.pid_exists(pid)
    assert not kill_process(pid)


def test_kill_by_cpu_selects_strictly_greater(monkeypatch):
    killed = []
    monkeypatch.setattr("procman.control.kill_process", lambda pid: killed.append(pid) or True)
    records = [
        ProcessRecord(pid=1, cpu_percent=50.0),
        ProcessRecord(pid=2, cpu_percent=50.1),
        ProcessRecord(pid=3, cpu_percent=99.0),
    ]

    assert kill_processes_by_cpu(records, 50.0)
    assert killed == [2, 3]


def test_kill_by_user_reports_no_match(monkeypatch):
    killed = []
    monkeypatch.setattr("procman.control.kill_process", lambda pid: killed.append(pid) or True)
    records = [ProcessRecord(pid=1, owner="alice"), ProcessRecord(pid=2, owner="Alice")]

    assert not kill_processes_by_user(records, "bob")
    assert kill_processes_by_user(records, "alice")
    assert killed == [1]
