"""procman - Main Textual application."""

import argparse
import logging
from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.suggester import SuggestFromList
from textual.widgets import DataTable, Footer, Input, Static

from procman.commands import COMMANDS, CommandHandler
from procman.config import MonitorConfig, load_config
from procman.logging_setup import setup_logging, shutdown_logging
from procman.models import ProcessRecord, SortCriterion
from procman.monitor import ProcessMonitor
from procman.provider import SnapshotProvider
from procman.render import format_process_table, truncate_command


class StatusHeader(Static):
    """Header widget showing the monitoring state and view settings."""

    DEFAULT_CSS = """
    StatusHeader {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize StatusHeader."""
        super().__init__(*args, **kwargs)
        self._state: str = "Stopped"
        self._sort: str = SortCriterion.CPU.value
        self._filter: str = "none"
        self._interval: int = 0
        self._shown: int = 0

    def update_status(self, monitor: ProcessMonitor, shown: int | None = None) -> None:
        """Update the header from the monitor's control state."""
        if not monitor.is_running:
            self._state = "Stopped"
        elif monitor.is_paused:
            self._state = "Paused"
        else:
            self._state = "Running"
        self._sort = monitor.sort_criterion.value
        self._filter = monitor.filter_criterion.describe()
        self._interval = monitor.update_interval
        if shown is not None:
            self._shown = shown
        self.update(self.render_status())

    def render_status(self) -> str:
        colour = {"Running": "green", "Paused": "yellow"}.get(self._state, "red")
        return (
            f"[bold {colour}]{self._state}[/bold {colour}]  "
            f"Sort: [cyan]{self._sort}[/cyan]  "
            f"Filter: [cyan]{self._filter}[/cyan]  "
            f"Interval: [cyan]{self._interval}s[/cyan]  "
            f"Shown: {self._shown}"
        )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._row_order: list[int] = []
        self._current_pids: set[int] = set()

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("USER", key="user", width=14)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("MEM(MB)", key="mem", width=10)
        table.add_column("Command", key="command")

    def update_processes(self, records: list[ProcessRecord]) -> None:
        """
        Show an already filtered and sorted view.

        Rows are keyed by pid: vanished rows are removed, known rows have
        their cells updated in place and new rows are appended. The table is
        then re-sorted into view order only if the order differs.
        """
        table = self.query_one("#process-table", DataTable)
        new_order = [record.pid for record in records]
        new_pids = set(new_order)

        for pid in self._current_pids - new_pids:
            table.remove_row(str(pid))

        for record in records:
            if record.pid in self._current_pids:
                self._update_row(table, str(record.pid), record)
            else:
                self._add_row(table, str(record.pid), record)

        shown_order = [pid for pid in self._row_order if pid in new_pids]
        shown_order += [pid for pid in new_order if pid not in self._current_pids]
        if shown_order != new_order:
            position = {pid: index for index, pid in enumerate(new_order)}
            table.sort("pid", key=lambda pid: position[int(pid)])

        self._row_order = new_order
        self._current_pids = new_pids

    def _update_row(self, table: DataTable, row_key: str, record: ProcessRecord) -> None:
        table.update_cell(row_key, "user", record.owner[:14])
        table.update_cell(row_key, "cpu", f"{record.cpu_percent:6.2f}")
        table.update_cell(row_key, "mem", f"{record.memory_mb:8.2f}")
        table.update_cell(row_key, "command", truncate_command(record.command))

    def _add_row(self, table: DataTable, row_key: str, record: ProcessRecord) -> None:
        table.add_row(
            str(record.pid),
            record.owner[:14],
            f"{record.cpu_percent:6.2f}",
            f"{record.memory_mb:8.2f}",
            truncate_command(record.command),
            key=row_key,
        )


class ProcmanApp(App):
    """Main procman application."""

    TITLE = "procman"
    SUB_TITLE = "Concurrent Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status {
        dock: top;
    }

    #message {
        height: auto;
        max-height: 12;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("p", "toggle_pause", "Pause/Resume"),
        ("f6", "sort", "Sort"),
        ("slash", "command", "Command"),
    ]

    def __init__(
        self,
        config: MonitorConfig | None = None,
        provider: SnapshotProvider | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the ProcmanApp."""
        super().__init__()
        self._config = config or MonitorConfig()
        self._update_queue: Queue[list[ProcessRecord]] = Queue()
        self._monitor = ProcessMonitor(
            provider=provider,
            renderer=self._update_queue.put,
            config=self._config,
            logger=logger,
        )
        self._commands = CommandHandler(self._monitor)
        self._message = "Type 'help' for commands."

    @property
    def monitor(self) -> ProcessMonitor:
        return self._monitor

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusHeader(id="status")
        yield ProcessTable()
        yield Static(self._message, id="message")
        yield Input(
            placeholder="command (help for a list)",
            id="command-input",
            suggester=SuggestFromList(COMMANDS),
        )
        yield Footer()

    def on_mount(self) -> None:
        """Start monitoring when the app is mounted, if configured to."""
        if self._config.autostart:
            self._monitor.start()
        self._refresh_status()
        # Poll the queue for views pushed by the display loop
        self.set_interval(0.5, self._check_for_updates)

    def on_unmount(self) -> None:
        """Make sure no loop outlives the UI."""
        if self._monitor.is_running:
            self._monitor.stop()

    def _check_for_updates(self) -> None:
        """Show the most recent view from the queue, dropping older ones."""
        view = None
        while True:
            try:
                view = self._update_queue.get_nowait()
            except Empty:
                break

        if view is not None:
            self._show(view)
        else:
            self._refresh_status()

    def _show(self, records: list[ProcessRecord]) -> None:
        self.query_one(ProcessTable).update_processes(records)
        self._refresh_status(len(records))

    def _refresh_status(self, shown: int | None = None) -> None:
        self.query_one("#status", StatusHeader).update_status(self._monitor, shown)

    @property
    def message(self) -> str:
        """Text currently shown in the message line."""
        return self._message

    def _set_message(self, text: str) -> None:
        self._message = text
        self.query_one("#message", Static).update(text)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Run a command line typed into the command input."""
        event.input.value = ""
        result = self._commands.execute(event.value)

        if result.exit:
            self.exit()
            return
        if result.records is not None:
            self._show(result.records)
        self._set_message("" if result.clear else result.message)
        self._refresh_status()

    def action_command(self) -> None:
        """Focus the command input."""
        self.query_one("#command-input", Input).focus()

    def action_toggle_pause(self) -> None:
        """Pause a running monitor or resume a paused one."""
        if self._monitor.is_paused:
            changed = self._monitor.resume()
        else:
            changed = self._monitor.pause()
        if changed:
            self.notify("Paused" if self._monitor.is_paused else "Resumed")
        else:
            self.notify("Monitoring is not active", severity="warning")
        self._refresh_status()

    def action_sort(self) -> None:
        """Toggle between CPU and memory sorting and re-render at once."""
        if self._monitor.sort_criterion is SortCriterion.CPU:
            sort = SortCriterion.MEMORY
        else:
            sort = SortCriterion.CPU
        self._monitor.set_sort_criterion(sort)
        self.notify(f"Sort: {sort.value.upper()}")
        self._show(self._monitor.list_snapshot(limit=self._monitor.display_limit))

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        if self._monitor.is_running:
            self._monitor.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="procman", description="Interactive concurrent process monitor")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML configuration file")
    parser.add_argument("--interval", type=int, default=None, help="Update interval in seconds")
    parser.add_argument("--sort", choices=[s.value for s in SortCriterion], default=None, help="Sort criterion")
    parser.add_argument("--log-file", type=str, default=None, help="Append events to this file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, ...)")
    parser.add_argument("--list", action="store_true", help="Print one process table and exit")
    parser.add_argument("--no-autostart", action="store_true", help="Wait for start_monitor before sampling")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for procman application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config).with_overrides(
            update_interval=args.interval,
            sort_criterion=args.sort,
            log_file=args.log_file,
            log_level=args.log_level,
            autostart=False if args.no_autostart else None,
        )
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logger = setup_logging(config.log_file, config.log_level)
    logger.info("Process manager started.")
    try:
        if args.list:
            monitor = ProcessMonitor(config=config, logger=logger)
            monitor.refresh()
            print(format_process_table(monitor.list_snapshot(), limit=config.display_limit))
        else:
            ProcmanApp(config=config, logger=logger).run()
    finally:
        logger.info("Shutting down process manager.")
        shutdown_logging(logger)


if __name__ == "__main__":
    main()
