"""Shared process table guarded by a single lock."""

import threading
from collections.abc import Iterable

from procman.models import ProcessRecord

_FIELDS = frozenset({"owner", "command", "cpu_percent", "memory_mb", "prev_cpu_ticks"})


class ProcessTable:
    """
    Mapping from pid to the last-known ProcessRecord.

    Records are created and reconciled by the CPU sampler; the memory sampler
    only refreshes records that already exist. Read by the display loop and the
    control surface. The lock is held only while the dict is touched; callers
    receive copies and process them unlocked.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[int, ProcessRecord] = {}

    def upsert(self, pid: int, **fields) -> None:
        """
        Merge fields into the record for pid, creating it if needed.

        Args:
            pid: Process id.
            **fields: Any of owner, command, cpu_percent, memory_mb, prev_cpu_ticks.

        Raises:
            TypeError: If an unknown field name is given.
        """
        unknown = set(fields) - _FIELDS
        if unknown:
            raise TypeError(f"Unknown process record field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            record = self._records.get(pid)
            if record is None:
                self._records[pid] = ProcessRecord(pid=pid, **fields)
                return
            for name, value in fields.items():
                setattr(record, name, value)

    def update_existing(self, pid: int, **fields) -> bool:
        """
        Merge fields into the record for pid only if it is already tracked.

        Returns:
            True if a record was updated, False if pid is not in the table.

        Raises:
            TypeError: If an unknown field name is given.
        """
        unknown = set(fields) - _FIELDS
        if unknown:
            raise TypeError(f"Unknown process record field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            record = self._records.get(pid)
            if record is None:
                return False
            for name, value in fields.items():
                setattr(record, name, value)
            return True

    def snapshot_all(self) -> list[ProcessRecord]:
        """Return copies of all records in insertion order."""
        with self._lock:
            return [record.copy() for record in self._records.values()]

    def reconcile(self, live_pids: Iterable[int]) -> int:
        """
        Remove every record whose pid is not in live_pids.

        Returns:
            Number of records removed.
        """
        live = set(live_pids)
        with self._lock:
            stale = [pid for pid in self._records if pid not in live]
            for pid in stale:
                del self._records[pid]
        return len(stale)

    def prev_cpu_ticks(self, pid: int) -> int:
        """Get the last observed cumulative ticks for pid (0 if unknown)."""
        with self._lock:
            record = self._records.get(pid)
            return record.prev_cpu_ticks if record is not None else 0

    def get(self, pid: int) -> ProcessRecord | None:
        """Get a copy of the record for pid, if any."""
        with self._lock:
            record = self._records.get(pid)
            return record.copy() if record is not None else None

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, pid: object) -> bool:
        with self._lock:
            return pid in self._records
