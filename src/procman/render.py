"""Plain-text rendering of process views."""

from collections.abc import Iterable

from procman.models import ProcessRecord
from procman.view import DEFAULT_DISPLAY_LIMIT

COMMAND_WIDTH = 35


def truncate_command(command: str, width: int = COMMAND_WIDTH) -> str:
    """Shorten command to width characters, ending in '...' when cut."""
    if len(command) <= width:
        return command
    return command[: width - 3] + "..."


def format_process_row(record: ProcessRecord) -> str:
    return (
        f"{record.pid:>8} | {record.owner:<14} | {record.cpu_percent:<8.2f}% | "
        f"{record.memory_mb:<13.2f} MB | {truncate_command(record.command)}"
    )


def format_process_table(records: Iterable[ProcessRecord], limit: int = DEFAULT_DISPLAY_LIMIT) -> str:
    """Format records as a fixed-width table, at most limit rows."""
    lines = [
        f"{'PID':>8} | {'User':<14} | {'CPU (%)':<9} | {'Memory (MB)':<16} | Command",
        "=" * 100,
    ]
    for count, record in enumerate(records):
        if count >= limit:
            break
        lines.append(format_process_row(record))
    return "\n".join(lines)
