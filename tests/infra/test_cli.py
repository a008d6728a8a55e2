"""
Tests for the procshell CLI.

Tests CLI features including:
- Argument parsing and config layering
- Exit code mapping
- Signal-triggered stop of the child
- End-to-end runs of real commands
"""

import signal
import sys
from unittest.mock import MagicMock, Mock, patch

import pytest

from procshell import cli
from procshell.config import ShellConfig
from procshell.exceptions import ShellError


@pytest.mark.unit
class TestExitCode:
    """Tests for return code mapping."""

    @pytest.mark.parametrize(
        "returncode,expected",
        [(0, 0), (3, 3), (-signal.SIGINT, 130), (-signal.SIGTERM, 143), (None, 1)],
    )
    def test_mapping(self, returncode, expected):
        """Test shell-style exit codes."""
        assert cli.exit_code(returncode) == expected


@pytest.mark.unit
class TestParser:
    """Tests for argument parsing and config layering."""

    def test_no_command_is_an_error(self):
        """Test run without a command exits with a usage error."""
        with pytest.raises(SystemExit) as exc:
            cli.main(["run"])
        assert exc.value.code == 2

    def test_command_after_separator(self):
        """Test the command after '--' is passed through verbatim."""
        with patch.object(cli, "run_command", return_value=0) as run:
            assert cli.main(["run", "--timeout", "2", "--", "ls", "-la"]) == 0
        cfg, argv, timeout = run.call_args.args
        assert argv == ["ls", "-la"]
        assert timeout == 2.0
        assert isinstance(cfg, ShellConfig)

    def test_flags_override_config_file(self, tmp_path):
        """Test CLI flags win over file values."""
        path = tmp_path / "shell.yaml"
        path.write_text("shell:\n  dir: /from/file\n  stop_timeout: 9\n")
        with patch.object(cli, "run_command", return_value=0) as run:
            cli.main(
                ["run", "--config", str(path), "--stop-timeout", "1", "--", "true"]
            )
        cfg = run.call_args.args[0]
        assert cfg.dir == "/from/file"
        assert cfg.stop_timeout == 1.0

    def test_bad_config_returns_error(self, tmp_path, capsys):
        """Test an invalid config file exits with code 2."""
        path = tmp_path / "shell.yaml"
        path.write_text("shell:\n  poll_interval: 0\n")
        assert cli.main(["run", "--config", str(path), "--", "true"]) == cli.EXIT_CONFIG
        assert "poll_interval" in capsys.readouterr().err


@pytest.mark.unit
class TestStopOnSignal:
    """Tests for signal-triggered child stop."""

    def test_register_and_restore(self):
        """Test handlers are installed for SIGTERM/SIGINT and restored."""
        stopper = cli.StopOnSignal(MagicMock(), stop_timeout=1.0)
        original = Mock()
        with patch("signal.signal", return_value=original) as mock_signal:
            stopper.register()
            registered = [c.args[0] for c in mock_signal.call_args_list]
            assert signal.SIGTERM in registered
            assert signal.SIGINT in registered

            mock_signal.reset_mock()
            stopper.restore()
            restored = {c.args[0]: c.args[1] for c in mock_signal.call_args_list}
            assert restored == {signal.SIGTERM: original, signal.SIGINT: original}

    def test_signal_stops_child_once(self):
        """Test the first signal stops the child and duplicates are ignored."""
        proc = MagicMock()
        stopper = cli.StopOnSignal(proc, stop_timeout=2.5)

        stopper._handle_signal(signal.SIGTERM, None)
        stopper._handle_signal(signal.SIGINT, None)
        stopper._thread.join(timeout=5)

        proc.stop.assert_called_once_with(2.5)
        assert stopper.signum == signal.SIGTERM
        assert stopper.return_code() == 143

    def test_stop_failure_is_logged(self, caplog):
        """Test a failing stop is reported instead of crashing the thread."""
        proc = MagicMock()
        proc.stop.side_effect = ShellError("boom")
        stopper = cli.StopOnSignal(proc, stop_timeout=None)

        stopper._handle_signal(signal.SIGINT, None)
        stopper._thread.join(timeout=5)

        assert stopper.return_code() == 130
        assert "failed to stop child: boom" in caplog.text


@pytest.mark.integration
@pytest.mark.posix
class TestRunCommand:
    """End-to-end runs of real commands."""

    def test_success(self):
        """Test a clean exit maps to 0."""
        assert cli.run_command(ShellConfig(), ["sh", "-c", "exit 0"], None) == 0

    def test_exit_status(self):
        """Test the child's exit status is passed through."""
        assert cli.run_command(ShellConfig(), ["sh", "-c", "exit 3"], None) == 3

    def test_launch_failure(self, tmp_path):
        """Test a missing executable maps to 127."""
        missing = str(tmp_path / "missing")
        assert cli.run_command(ShellConfig(), [missing], None) == cli.EXIT_LAUNCH_FAILED

    def test_timeout(self):
        """Test an expired timeout kills the child and maps to 124."""
        argv = [sys.executable, "-c", "import time; time.sleep(10)"]
        assert cli.run_command(ShellConfig(), argv, 0.1) == cli.EXIT_TIMEOUT
