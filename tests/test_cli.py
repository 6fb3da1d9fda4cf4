"""Tests for the command line interface."""

# Standard library imports
import logging
import os
import signal
import threading
import time
from unittest.mock import patch

# Third-party imports
import pytest
from click.testing import CliRunner

# Local/package imports
from stagecoach.cli import EXIT_FAILED, cli
from stagecoach.utils.logger import PACKAGE_LOGGER

from conftest import requires_pty


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """The CLI attaches handlers to the runner's temporary streams."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@requires_pty
class TestRunCommand:
    """The ``run`` subcommand."""

    def test_streams_command_output(self, runner):
        result = runner.invoke(cli, ["run", 'echo "hi"', 'echo "hello"'])

        assert result.exit_code == 0
        assert "hi" in result.output
        assert "hello" in result.output

    def test_failing_command_exits_nonzero(self, runner):
        result = runner.invoke(cli, ["run", "ls /nonexistent/place", 'echo "never"'])

        assert result.exit_code == 1
        assert 'Failed to execute "ls /nonexistent/place"' in result.output
        assert "never" not in result.output

    def test_echo_commands(self, runner):
        result = runner.invoke(cli, ["run", "--echo-commands", 'echo "hi"'])

        assert result.exit_code == 0
        assert '» echo "hi"' in result.output

    def test_runs_in_given_directory(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--cwd", str(tmp_path), "pwd"])

        assert result.exit_code == 0
        assert tmp_path.name in result.output

    def test_termination_signal_stops_the_command(self, runner):
        previous = signal.getsignal(signal.SIGTERM)
        timer = threading.Timer(0.5, os.kill, args=(os.getpid(), signal.SIGTERM))
        timer.start()

        started = time.monotonic()
        result = runner.invoke(cli, ["run", "sleep 100", 'echo "never"'])
        timer.join()

        assert time.monotonic() - started < 10
        assert result.exit_code == EXIT_FAILED
        assert "never" not in result.output
        assert signal.getsignal(signal.SIGTERM) is previous

    def test_lock_options_are_not_offered(self, runner):
        result = runner.invoke(cli, ["run", "--resource", "project-1", "true"])
        assert result.exit_code == 2
        assert "No such option" in result.output


class TestGroupOptions:
    """Options and configuration loading shared by all subcommands."""

    def test_requires_commands(self, runner):
        result = runner.invoke(cli, ["run"])
        assert result.exit_code == 2

    def test_config_command_shows_settings(self, runner):
        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "shell: /bin/sh" in result.output
        assert "lock_timeout: 600.0" in result.output

    def test_env_file_is_loaded(self, runner, tmp_path):
        env_file = tmp_path / "settings.env"
        env_file.write_text("STAGECOACH_LOCK_TIMEOUT=42\n")

        with patch.dict(os.environ):
            result = runner.invoke(cli, ["--env-file", str(env_file), "config"])

        assert result.exit_code == 0
        assert "lock_timeout: 42.0" in result.output

    def test_invalid_configuration_aborts(self, runner, monkeypatch):
        monkeypatch.setenv("STAGECOACH_READ_POLL_INTERVAL", "-1")

        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_log_dir_creates_log_file(self, runner, tmp_path):
        log_dir = tmp_path / "logs"

        result = runner.invoke(cli, ["--debug", "--log-dir", str(log_dir), "config"])

        assert result.exit_code == 0
        assert (log_dir / "stagecoach.log").exists()
