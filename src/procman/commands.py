"""Line-oriented command interpreter for procman."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from procman.control import kill_process, kill_processes_by_cpu, kill_processes_by_user
from procman.logging_setup import LOGGER_NAME, add_file_handler
from procman.models import FilterKind, ProcessRecord, SortCriterion
from procman.monitor import ProcessMonitor
from procman.view import parse_threshold

DEFAULT_LOG_FILE = "process_log.txt"

COMMANDS = (
    "start_monitor",
    "stop_monitor",
    "pause_monitor",
    "resume_monitor",
    "list_processes",
    "kill",
    "kill_all",
    "filter",
    "sort_by",
    "log",
    "help",
    "clear",
    "set_update_freq",
    "exit",
    "quit",
)

HELP_TEXT = """\
Available Commands:
  start_monitor [cpu|memory]        Start monitoring (default sort: cpu).
  stop_monitor                      Stop monitoring.
  pause_monitor                     Pause monitoring.
  resume_monitor                    Resume paused monitoring.
  list_processes                    Show the current process list.
  kill <PID>                        Kill the process with the given PID.
  kill_all <cpu|user> <value>       Kill processes above a CPU threshold or owned by a user.
  filter <user|cpu|memory> <value>  Filter by user, CPU % or memory MB ('filter none' clears).
  sort_by <cpu|memory>              Change the sorting criterion.
  set_update_freq <seconds>         Change the update interval.
  log [filename]                    Log events to a file (default: process_log.txt).
  clear                             Clear the message area.
  help                              Show this help message.
  exit, quit                        Exit the application.

Examples:
  start_monitor memory
  kill 1234
  kill_all cpu 50
  filter user root
  set_update_freq 10"""


@dataclass(slots=True)
class CommandResult:
    """Outcome of one command line."""

    ok: bool
    message: str = ""
    records: list[ProcessRecord] | None = None
    exit: bool = False
    clear: bool = False


class CommandHandler:
    """
    Parses command lines and drives a ProcessMonitor.

    kill and kill_all need confirmation: they leave a pending action that
    the next line runs when it is 'y' or 'yes' and cancels otherwise.
    """

    def __init__(
        self,
        monitor: ProcessMonitor,
        add_log_file: Callable[[str], bool] | None = None,
    ) -> None:
        self._monitor = monitor
        self._log = monitor.context.logger
        self._add_log_file = add_log_file or (
            lambda path: add_file_handler(path, logging.getLogger(LOGGER_NAME))
        )
        self._pending: Callable[[], CommandResult] | None = None
        self._handlers: dict[str, Callable[[list[str]], CommandResult]] = {
            "start_monitor": self._start,
            "stop_monitor": self._stop,
            "pause_monitor": self._pause,
            "resume_monitor": self._resume,
            "list_processes": self._list,
            "kill": self._kill,
            "kill_all": self._kill_all,
            "filter": self._filter,
            "sort_by": self._sort_by,
            "set_update_freq": self._set_update_freq,
            "log": self._start_log,
            "clear": lambda args: CommandResult(True, clear=True),
            "help": lambda args: CommandResult(True, HELP_TEXT),
            "exit": self._exit,
            "quit": self._exit,
        }

    @property
    def awaiting_confirmation(self) -> bool:
        return self._pending is not None

    def execute(self, line: str) -> CommandResult:
        """Run one command line and describe the outcome."""
        line = line.strip()

        if self._pending is not None:
            action, self._pending = self._pending, None
            if line.lower() in ("y", "yes"):
                return action()
            self._log.info("User canceled termination.")
            return CommandResult(True, "Termination canceled.")

        if not line:
            return CommandResult(True)

        command, *args = line.split()
        handler = self._handlers.get(command)
        if handler is None:
            return CommandResult(False, f"Unknown command: {command}. Type 'help' to see available commands.")
        return handler(args)

    def _usage(self, usage: str) -> CommandResult:
        self._log.warning("Invalid command arguments. %s", usage)
        return CommandResult(False, usage)

    def _start(self, args: list[str]) -> CommandResult:
        if self._monitor.is_running:
            return CommandResult(False, "Monitoring is already active.")

        notes = []
        sort = SortCriterion.CPU
        if args:
            try:
                sort = SortCriterion(args[0])
            except ValueError:
                notes.append("Invalid argument. Use 'cpu' or 'memory'. Defaulting to 'cpu'.")
        self._monitor.set_sort_criterion(sort)
        self._monitor.start()
        notes.append(f"Monitoring started with sorting by {sort.value}.")
        return CommandResult(True, "\n".join(notes))

    def _stop(self, args: list[str]) -> CommandResult:
        if self._monitor.stop():
            return CommandResult(True, "Monitoring stopped.")
        return CommandResult(False, "Monitoring is not active.")

    def _pause(self, args: list[str]) -> CommandResult:
        if self._monitor.pause():
            return CommandResult(True, "Monitoring paused.")
        if self._monitor.is_paused:
            return CommandResult(False, "Monitoring is already paused.")
        return CommandResult(False, "Monitoring is not active.")

    def _resume(self, args: list[str]) -> CommandResult:
        if self._monitor.resume():
            return CommandResult(True, "Monitoring resumed.")
        if not self._monitor.is_running:
            return CommandResult(False, "Monitoring is not active. Use 'start_monitor' to begin monitoring.")
        return CommandResult(False, "Monitoring is already running.")

    def _list(self, args: list[str]) -> CommandResult:
        records = self._monitor.list_snapshot()
        self._log.info("User listed all processes.")
        return CommandResult(True, f"{len(records)} processes.", records=records)

    def _kill(self, args: list[str]) -> CommandResult:
        try:
            pid = int(args[0])
        except (IndexError, ValueError):
            return self._usage("Usage: kill <PID>")

        def action() -> CommandResult:
            if kill_process(pid):
                self._log.info("User terminated process PID: %d.", pid)
                return CommandResult(True, f"Process {pid} has been terminated.")
            self._log.error("Failed to terminate process PID: %d.", pid)
            return CommandResult(False, f"Failed to terminate process {pid}.")

        self._pending = action
        return CommandResult(True, f"Are you sure you want to terminate process {pid}? (y/n)")

    def _kill_all(self, args: list[str]) -> CommandResult:
        if len(args) < 2 or args[0] not in ("cpu", "user"):
            return self._usage("Usage: kill_all <cpu|user> <value>")

        kind, value = args[0], args[1]
        if kind == "cpu":
            try:
                threshold = parse_threshold(value)
            except ValueError:
                return self._usage("Usage: kill_all cpu <threshold>")

            def action() -> CommandResult:
                if kill_processes_by_cpu(self._monitor.table.snapshot_all(), threshold):
                    self._log.info("User killed all processes with CPU usage above %s%%.", value)
                    return CommandResult(True, f"Processes exceeding {value}% CPU usage have been terminated.")
                self._log.info("No processes matched the CPU threshold %s%%.", value)
                return CommandResult(False, "No processes found exceeding the CPU usage threshold.")

            prompt = f"Are you sure you want to terminate all processes with CPU usage above {value}%? (y/n)"
        else:

            def action() -> CommandResult:
                if kill_processes_by_user(self._monitor.table.snapshot_all(), value):
                    self._log.info("User killed all processes belonging to user: %s.", value)
                    return CommandResult(True, f"All processes for user {value} have been terminated.")
                self._log.info("No processes found for user: %s.", value)
                return CommandResult(False, f"No processes found for user: {value}")

            prompt = f"Are you sure you want to terminate all processes for user {value}? (y/n)"

        self._pending = action
        return CommandResult(True, prompt)

    def _filter(self, args: list[str]) -> CommandResult:
        if not args:
            return self._usage("Usage: filter <user|cpu|memory|none> [value]")
        if args[0] != FilterKind.NONE.value and len(args) < 2:
            return self._usage(f"Usage: filter {args[0]} <value>")

        try:
            criterion = self._monitor.set_filter_criterion(args[0], args[1] if len(args) > 1 else "")
        except ValueError as exc:
            return CommandResult(False, str(exc))
        if criterion.kind is FilterKind.NONE:
            return CommandResult(True, "Filter cleared.")
        return CommandResult(True, f"Filter applied: {criterion.describe()}")

    def _sort_by(self, args: list[str]) -> CommandResult:
        if not args:
            return self._usage("Usage: sort_by <cpu|memory>")
        try:
            sort = self._monitor.set_sort_criterion(args[0])
        except ValueError as exc:
            return CommandResult(False, str(exc))
        return CommandResult(True, f"Sorting criterion updated to: {sort.value}")

    def _set_update_freq(self, args: list[str]) -> CommandResult:
        if not args:
            return self._usage("Usage: set_update_freq <seconds>")
        try:
            seconds = self._monitor.set_update_interval(args[0])
        except ValueError as exc:
            return CommandResult(False, str(exc))
        return CommandResult(True, f"Update frequency set to {seconds} seconds.")

    def _start_log(self, args: list[str]) -> CommandResult:
        log_file = args[0] if args else DEFAULT_LOG_FILE
        if not self._add_log_file(log_file):
            self._log.error("Failed to start logger on file: %s.", log_file)
            return CommandResult(False, f"Failed to start logger on file: {log_file}")
        self._log.info("User started logging on file: %s.", log_file)
        return CommandResult(True, f"Logging started on file: {log_file}")

    def _exit(self, args: list[str]) -> CommandResult:
        if self._monitor.is_running:
            self._monitor.stop()
        self._log.info("User exited the application.")
        return CommandResult(True, "Exiting.", exit=True)
