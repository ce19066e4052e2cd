"""Filtering and sorting of process table snapshots."""

from collections.abc import Iterable

from procman.models import FilterCriterion, FilterKind, ProcessRecord, SortCriterion

DEFAULT_DISPLAY_LIMIT = 30


def parse_threshold(value: str) -> float:
    """
    Parse a numeric filter threshold.

    Raises:
        ValueError: If value is not a finite number.
    """
    threshold = float(value)
    if threshold != threshold or threshold in (float("inf"), float("-inf")):
        raise ValueError(f"Threshold must be a finite number, got {value!r}")
    return threshold


def matches_filter(record: ProcessRecord, criterion: FilterCriterion) -> bool:
    """Check whether record passes the filter criterion."""
    if criterion.kind is FilterKind.USER:
        return record.owner == criterion.value
    if criterion.kind in (FilterKind.CPU, FilterKind.MEMORY):
        try:
            threshold = parse_threshold(criterion.value)
        except ValueError:
            return True
        if criterion.kind is FilterKind.CPU:
            return record.cpu_percent > threshold
        return record.memory_mb > threshold
    return True


def apply_filter(records: Iterable[ProcessRecord], criterion: FilterCriterion) -> list[ProcessRecord]:
    """Drop every record that does not match criterion."""
    return [record for record in records if matches_filter(record, criterion)]


def sort_records(records: Iterable[ProcessRecord], criterion: SortCriterion) -> list[ProcessRecord]:
    """Sort descending by CPU or memory; ties keep their snapshot order."""
    key_func = {
        SortCriterion.CPU: lambda r: r.cpu_percent,
        SortCriterion.MEMORY: lambda r: r.memory_mb,
    }
    return sorted(records, key=key_func[criterion], reverse=True)


def build_view(
    records: Iterable[ProcessRecord],
    criterion: FilterCriterion,
    sort: SortCriterion,
    limit: int | None = None,
) -> list[ProcessRecord]:
    """Filter, sort and cap a snapshot for display."""
    view = sort_records(apply_filter(records, criterion), sort)
    if limit is not None:
        view = view[:limit]
    return view
