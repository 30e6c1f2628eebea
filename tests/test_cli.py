#!/usr/bin/env python3
"""Tests for the tartly command line."""

from unittest.mock import MagicMock

import pytest

from tartly import __version__
from tartly.cli import main
from tartly.cli import utils as cli_utils
from tartly.cli.utils import render_status_table
from tartly.errors import PrerequisiteError
from tartly.status import AgentStatus, StatusRow, VMStatus


@pytest.fixture
def cli(monkeypatch, settings, manager):
    """Run main() against the fake-backed manager; returns (exit, out, err)."""
    configure = MagicMock()
    monkeypatch.setattr("tartly.cli.parsers.load_settings", lambda: settings)
    monkeypatch.setattr("tartly.cli.parsers.configure_logging", configure)
    monkeypatch.setattr("tartly.cli.parsers.check_prerequisites", lambda s: s)
    monkeypatch.setattr("tartly.cli.parsers.create_manager", lambda s: manager)

    def run(*argv):
        return main(list(argv))

    run.configure_logging = configure
    return run


class TestUsage:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 2
        assert "usage: tartly" in capsys.readouterr().err

    def test_help_command(self, capsys, monkeypatch):
        def fail(settings):
            raise PrerequisiteError("should not run")

        monkeypatch.setattr("tartly.cli.parsers.check_prerequisites", fail)
        assert main(["help"]) == 0
        out = capsys.readouterr().out
        for command in ["list", "install", "start", "stop", "uninstall"]:
            assert command in out

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert __version__ in capsys.readouterr().out

    @pytest.mark.parametrize(
        "argv",
        [
            ["frobnicate"],
            ["install"],
            ["install", "a", "b"],
            ["install", ""],
            ["start", "  "],
            ["list", "--bogus"],
            ["uninstall", "demo", "--force"],
            ["--log-level", "LOUD", "list"],
        ],
    )
    def test_usage_errors_exit_2(self, argv, capsys):
        assert main(argv) == 2

    def test_empty_name_message(self, capsys):
        main(["install", ""])
        assert "VM name cannot be empty" in capsys.readouterr().err


class TestCommands:
    def test_list_empty(self, cli, capsys):
        assert cli("list") == 0
        assert "No managed VMs found." in capsys.readouterr().out

    def test_install_then_list(self, cli, capsys):
        assert cli("install", "demo") == 0
        assert cli("list") == 0

        out = capsys.readouterr().out
        assert "VM 'demo' installed successfully." in out
        assert "Plist file:" in out
        assert "Launch Agent" in out
        assert "Not found" in out
        assert "co.bitwild.tartly.tart.demo" not in out.split("Launch Agent")[1]

    def test_list_verbose_shows_label(self, cli, capsys):
        cli("install", "demo")
        capsys.readouterr()

        assert cli("list", "-v") == 0
        out = capsys.readouterr().out
        assert "Label" in out
        assert "co.bitwild.tartly.tart.demo" in out

    def test_install_existing_non_interactive(self, cli, capsys):
        cli("install", "demo")

        assert cli("install", "demo") == 5
        assert "--force" in capsys.readouterr().err

    def test_install_force(self, cli, capsys):
        cli("install", "demo")

        assert cli("install", "demo", "--force") == 0
        assert "reinstalled successfully" in capsys.readouterr().out

    def test_start_not_installed(self, cli, capsys, supervisor):
        assert cli("start", "demo") == 3
        assert "Error: VM 'demo' is not installed." in capsys.readouterr().err
        assert supervisor.calls == []

    def test_start_and_stop(self, cli, capsys):
        cli("install", "demo")

        assert cli("start", "demo") == 0
        assert cli("stop", "demo") == 0

        out = capsys.readouterr().out
        assert "VM 'demo' started successfully." in out
        assert "VM 'demo' stopped successfully." in out

    def test_start_unconfirmed_warns_but_succeeds(self, cli, capsys, supervisor):
        cli("install", "demo")
        supervisor.start_delay = None

        assert cli("start", "demo") == 0
        assert "not reported running" in capsys.readouterr().out

    def test_stop_not_running(self, cli, capsys):
        cli("install", "demo")

        assert cli("stop", "demo") == 5
        assert "not running" in capsys.readouterr().err

    def test_uninstall_clean_logs(self, cli, capsys, settings):
        cli("install", "demo")
        log_file = settings.logs_dir / "tartly-demo.log"
        log_file.write_text("x")

        assert cli("uninstall", "demo", "-c") == 0

        out = capsys.readouterr().out
        assert "Removed log file:" in out
        assert "VM 'demo' uninstalled successfully." in out
        assert not log_file.exists()

    def test_uninstall_keeps_logs_non_interactive(self, cli, capsys, settings):
        cli("install", "demo")
        log_file = settings.logs_dir / "tartly-demo.log"
        log_file.write_text("x")

        assert cli("uninstall", "demo") == 0
        assert "Log files preserved." in capsys.readouterr().out
        assert log_file.exists()

    def test_external_tool_failure_exit_6(self, cli, capsys, supervisor):
        supervisor.fail.add("register")

        assert cli("install", "demo") == 6
        err = capsys.readouterr().err
        assert err.startswith("Error: ")
        assert len(err.strip().splitlines()) == 1

    def test_log_level_option(self, cli):
        cli("--log-level", "debug", "--json-logs", "list")
        cli.configure_logging.assert_called_once_with(level="DEBUG", json_output=True)

    def test_log_level_from_settings(self, cli):
        cli("list")
        cli.configure_logging.assert_called_once_with(level="INFO", json_output=False)


class TestFailures:
    def test_prerequisite_failure(self, monkeypatch, settings, capsys):
        def fail(s):
            raise PrerequisiteError("This tool can only run on macOS.")

        monkeypatch.setattr("tartly.cli.parsers.load_settings", lambda: settings)
        monkeypatch.setattr("tartly.cli.parsers.configure_logging", MagicMock())
        monkeypatch.setattr("tartly.cli.parsers.check_prerequisites", fail)

        assert main(["list"]) == 6
        assert "Error: This tool can only run on macOS." in capsys.readouterr().err

    @pytest.mark.parametrize("exc,code", [(RuntimeError("boom"), 1), (KeyboardInterrupt(), 130)])
    def test_unexpected(self, cli, monkeypatch, manager, exc, code):
        def explode():
            raise exc

        monkeypatch.setattr(manager, "status", explode)
        assert cli("list") == code


class TestUtils:
    def test_confirm_without_tty(self, monkeypatch):
        monkeypatch.setattr("sys.stdin", MagicMock(isatty=lambda: False))
        assert cli_utils.confirm("Overwrite?") is None

    @pytest.mark.parametrize("answer,expected", [(True, True), (False, False), (None, False)])
    def test_confirm_with_tty(self, monkeypatch, answer, expected):
        prompt = MagicMock()
        prompt.ask.return_value = answer
        questionary_confirm = MagicMock(return_value=prompt)
        monkeypatch.setattr("sys.stdin", MagicMock(isatty=lambda: True))
        monkeypatch.setattr("tartly.cli.utils.questionary.confirm", questionary_confirm)

        assert cli_utils.confirm("Overwrite?") is expected
        questionary_confirm.assert_called_once_with(
            "Overwrite?", default=False, style=cli_utils.custom_style
        )

    def test_render_status_table_columns(self):
        row = StatusRow("demo", "co.bitwild.tartly.tart.demo", AgentStatus.RUNNING, VMStatus.NOT_FOUND)

        plain = render_status_table([row])
        verbose = render_status_table([row], verbose=True)

        assert [c.header for c in plain.columns] == ["VM Name", "Launch Agent", "VM Status"]
        assert [c.header for c in verbose.columns][-1] == "Label"
        assert plain.row_count == 1

    def test_verbose_table_highlights_inconsistent_rows(self):
        rows = [
            StatusRow("a", "co.bitwild.tartly.tart.a", AgentStatus.RUNNING, VMStatus.RUNNING),
            StatusRow("b", "co.bitwild.tartly.tart.b", AgentStatus.RUNNING, VMStatus.NOT_FOUND),
        ]

        verbose = render_status_table(rows, verbose=True)
        plain = render_status_table(rows)

        assert [r.style for r in verbose.rows] == [None, "yellow"]
        assert [r.style for r in plain.rows] == [None, None]

    def test_name_from_label_is_marked(self):
        row = StatusRow(
            "demo-1.0",
            "co.bitwild.tartly.tart.demo-1.0",
            AgentStatus.STOPPED,
            VMStatus.NOT_FOUND,
            name_recovered=False,
        )

        table = render_status_table([row])

        assert "(from label)" in table.columns[0]._cells[0]
