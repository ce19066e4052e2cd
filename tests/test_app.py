"""Tests for procman application."""

import pytest
from textual.widgets import DataTable, Input

from conftest import FakeSnapshotProvider, make_info
from procman.app import ProcessTable, ProcmanApp, StatusHeader, build_parser, main
from procman.config import MonitorConfig
from procman.models import ProcessRecord, SortCriterion


def make_app(autostart: bool = False, interval: int = 3600) -> ProcmanApp:
    provider = FakeSnapshotProvider(
        processes=[
            make_info(1, owner="alice", command="worker", memory_mb=20.0),
            make_info(2, owner="bob", command="shell", memory_mb=80.0),
        ],
        ticks={1: 50, 2: 10},
        total_ticks=1000,
    )
    config = MonitorConfig(update_interval=interval, pause_quantum=0.05, autostart=autostart, log_file=None)
    return ProcmanApp(config=config, provider=provider)


def records(*pids_and_cpu: tuple[int, float]) -> list[ProcessRecord]:
    return [ProcessRecord(pid=pid, owner="user", command=f"cmd{pid}", cpu_percent=cpu) for pid, cpu in pids_and_cpu]


class TestParser:
    """Tests for the command-line parser."""

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.config is None
        assert args.interval is None
        assert not args.list
        assert not args.no_autostart

    def test_options(self):
        args = build_parser().parse_args(["--interval", "2", "--sort", "memory", "--list", "--no-autostart"])
        assert args.interval == 2
        assert args.sort == "memory"
        assert args.list
        assert args.no_autostart

    def test_rejects_unknown_sort(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--sort", "pid"])


def test_main_list_prints_table(tmp_path, capsys):
    main(["--list", "--log-file", str(tmp_path / "procman.log")])

    out = capsys.readouterr().out.splitlines()
    assert "PID" in out[0]
    assert out[1] == "=" * 100
    assert len(out) > 2
    assert "Process manager started." in (tmp_path / "procman.log").read_text()


def test_main_rejects_bad_interval(tmp_path):
    with pytest.raises(SystemExit):
        main(["--list", "--interval", "0", "--log-file", str(tmp_path / "procman.log")])


@pytest.mark.asyncio
async def test_app_creation():
    """Test ProcmanApp can be instantiated."""
    app = make_app()
    assert app.title == "procman"
    assert app.sub_title == "Concurrent Process Monitor"
    assert app.monitor is not None
    assert app._update_queue is not None


@pytest.mark.asyncio
async def test_app_compose():
    """Test ProcmanApp composes correctly."""
    app = make_app()
    async with app.run_test() as pilot:
        assert pilot.app.query_one("#status") is not None
        assert pilot.app.query_one("#process-table") is not None
        assert pilot.app.query_one("#command-input") is not None
        assert not pilot.app.monitor.is_running


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit and stops monitoring."""
    app = make_app(autostart=True)
    async with app.run_test() as pilot:
        assert app.monitor.is_running
        await pilot.press("q")
        assert pilot.app._exit
        assert not app.monitor.is_running


@pytest.mark.asyncio
async def test_app_sort_binding():
    """Test that F6 toggles the sort criterion."""
    app = make_app()
    async with app.run_test() as pilot:
        assert app.monitor.sort_criterion is SortCriterion.CPU

        await pilot.press("f6")
        assert app.monitor.sort_criterion is SortCriterion.MEMORY

        await pilot.press("f6")
        assert app.monitor.sort_criterion is SortCriterion.CPU


@pytest.mark.asyncio
async def test_app_pause_binding():
    """Test that 'p' pauses and resumes a running monitor."""
    app = make_app(autostart=True)
    async with app.run_test() as pilot:
        await pilot.press("p")
        assert app.monitor.is_paused

        await pilot.press("p")
        assert not app.monitor.is_paused


@pytest.mark.asyncio
async def test_command_input_runs_commands():
    """Test that submitted command lines reach the command handler."""
    app = make_app()
    async with app.run_test() as pilot:
        await pilot.press("slash")
        command_input = pilot.app.query_one("#command-input", Input)
        assert command_input.has_focus

        command_input.value = "sort_by memory"
        await pilot.press("enter")

        assert app.monitor.sort_criterion is SortCriterion.MEMORY
        assert command_input.value == ""
        assert pilot.app.message == "Sorting criterion updated to: memory"


@pytest.mark.asyncio
async def test_list_processes_command_fills_table():
    """Test that list_processes shows the current snapshot."""
    app = make_app()
    async with app.run_test() as pilot:
        app.monitor.refresh(window=0.0)
        await pilot.press("slash")
        command_input = pilot.app.query_one("#command-input", Input)
        command_input.value = "list_processes"
        await pilot.press("enter")

        process_table = pilot.app.query_one(ProcessTable)
        assert process_table._current_pids == {1, 2}


@pytest.mark.asyncio
async def test_exit_command_exits():
    app = make_app(autostart=True)
    async with app.run_test() as pilot:
        await pilot.press("slash")
        pilot.app.query_one("#command-input", Input).value = "exit"
        await pilot.press("enter")

        assert pilot.app._exit
        assert not app.monitor.is_running


@pytest.mark.asyncio
async def test_process_table_update_processes():
    """Test ProcessTable keeps rows in view order."""
    app = make_app()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table", DataTable)

        process_table.update_processes(records((100, 20.0), (200, 10.0)))
        assert process_table._row_order == [100, 200]

        # Same order: cells updated in place
        process_table.update_processes(records((100, 30.0), (200, 5.0)))
        assert process_table._row_order == [100, 200]
        assert table.get_cell("100", "cpu").strip() == "30.00"

        # New order: rows re-sorted without being rebuilt
        process_table.update_processes(records((200, 50.0), (100, 1.0)))
        assert process_table._row_order == [200, 100]
        assert table.row_count == 2
        assert [table.get_row_at(i)[0] for i in range(2)] == ["200", "100"]
        assert table.get_cell("200", "cpu").strip() == "50.00"


@pytest.mark.asyncio
async def test_process_table_adds_new_processes_in_view_order():
    app = make_app()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)
        table = pilot.app.query_one("#process-table", DataTable)

        process_table.update_processes(records((100, 20.0), (200, 10.0)))
        process_table.update_processes(records((300, 90.0), (100, 20.0), (400, 15.0)))

        assert table.row_count == 3
        assert [table.get_row_at(i)[0] for i in range(3)] == ["300", "100", "400"]
        assert process_table._current_pids == {100, 300, 400}


@pytest.mark.asyncio
async def test_process_table_removes_old_processes():
    """Test ProcessTable removes processes that no longer exist."""
    app = make_app()
    async with app.run_test() as pilot:
        process_table = pilot.app.query_one(ProcessTable)

        process_table.update_processes(records((100, 20.0), (200, 10.0)))
        process_table.update_processes(records((200, 25.0)))

        assert 100 not in process_table._current_pids
        assert 200 in process_table._current_pids
        table = pilot.app.query_one("#process-table", DataTable)
        assert table.row_count == 1
        assert table.get_row_at(0)[0] == "200"


@pytest.mark.asyncio
async def test_status_header_reflects_state():
    app = make_app(autostart=True)
    async with app.run_test() as pilot:
        header = pilot.app.query_one("#status", StatusHeader)
        header.update_status(app.monitor, shown=2)
        assert "Running" in header.render_status()
        assert "Shown: 2" in header.render_status()

        app.monitor.pause()
        header.update_status(app.monitor)
        assert "Paused" in header.render_status()

        app.monitor.stop()
        header.update_status(app.monitor)
        assert "Stopped" in header.render_status()


@pytest.mark.asyncio
async def test_app_receives_updates_from_display_loop():
    """Test that views pushed by the display loop reach the table."""
    app = make_app(autostart=True, interval=1)
    async with app.run_test() as pilot:
        await pilot.pause(3.5)

        assert app.monitor.is_running
        process_table = pilot.app.query_one(ProcessTable)
        assert process_table._current_pids == {1, 2}
