"""Data models for procman."""

from dataclasses import dataclass, replace
from enum import Enum

UNKNOWN = "Unknown"


@dataclass(slots=True)
class ProcessRecord:
    """Last-known metrics of one live process, as held in the process table."""

    pid: int
    owner: str = UNKNOWN
    command: str = UNKNOWN
    cpu_percent: float = 0.0  # 0.0 - 100.0 * core_count
    memory_mb: float = 0.0
    prev_cpu_ticks: int = 0  # Cumulative ticks seen by the last CPU sample

    def copy(self) -> "ProcessRecord":
        """Return an independent copy of this record."""
        return replace(self)


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable entry of a process listing."""

    pid: int
    owner: str
    command: str
    memory_mb: float


class SortCriterion(Enum):
    """Sort keys for the process view."""

    CPU = "cpu"
    MEMORY = "memory"


class FilterKind(Enum):
    """Kinds of filter that can restrict the process view."""

    NONE = "none"
    USER = "user"
    CPU = "cpu"
    MEMORY = "memory"


@dataclass(slots=True, frozen=True)
class FilterCriterion:
    """A (kind, value) pair; the value is parsed per kind when applied."""

    kind: FilterKind = FilterKind.NONE
    value: str = ""

    @classmethod
    def none(cls) -> "FilterCriterion":
        return cls(FilterKind.NONE, "")

    def describe(self) -> str:
        """Human-readable form used in the status header and logs."""
        if self.kind is FilterKind.NONE:
            return "none"
        if self.kind is FilterKind.USER:
            return f"user={self.value}"
        unit = "%" if self.kind is FilterKind.CPU else " MB"
        return f"{self.kind.value} > {self.value}{unit}"


class LoopState(Enum):
    """Lifecycle states shared by the sampler and display loops."""

    WAITING_TO_RUN = "waiting"
    SAMPLING = "sampling"
    STOPPED = "stopped"
