"""Tests for the pseudo-terminal process handle."""

# Standard library imports
import os
import signal
import time
from pathlib import Path

# Third-party imports
import pytest

# Local/package imports
from stagecoach.core.exceptions import SpawnError
from stagecoach.execution.process import PtyProcess

from conftest import requires_pty

pytestmark = requires_pty


def read_all(process, timeout=5.0):
    """Collect output until end of stream."""
    data = b""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        chunk = process.read_next(0.1)
        if chunk is None:
            return data
        data += chunk
    pytest.fail(f"no end of stream within {timeout}s, got {data!r}")


def process_gone(pid):
    """True once ``pid`` no longer exists or is only a zombie."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return True
    # Field 3 is the state; the command name before it may contain spaces
    return stat.rsplit(")", 1)[1].split()[0] == "Z"


class TestPtyProcess:
    """Spawning, reading and reaping a real command."""

    def test_reads_stdout_with_terminal_line_endings(self):
        with PtyProcess.spawn('echo "hi"') as process:
            assert read_all(process) == b"hi\r\n"
            assert process.wait() == 0

    def test_merges_stderr_into_the_same_stream(self):
        with PtyProcess.spawn('echo "out"; echo "err" >&2; echo "out again"') as process:
            assert read_all(process) == b"out\r\nerr\r\nout again\r\n"
            assert process.wait() == 0

    def test_reports_exit_status(self):
        with PtyProcess.spawn("exit 3") as process:
            read_all(process)
            assert process.wait() == 3
            assert process.returncode == 3

    def test_read_returns_empty_bytes_when_nothing_arrives(self):
        with PtyProcess.spawn("sleep 5") as process:
            try:
                assert process.read_next(0.05) == b""
                assert process.returncode is None
            finally:
                process.kill()
                process.wait()

    def test_stdin_is_not_the_terminal(self):
        with PtyProcess.spawn("cat") as process:
            assert read_all(process) == b""
            assert process.wait() == 0

    def test_runs_in_given_directory_and_environment(self, tmp_path):
        env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "GREETING": "hola"}
        with PtyProcess.spawn('pwd; echo "$GREETING"', cwd=str(tmp_path), env=env) as process:
            output = read_all(process).decode()
            assert process.wait() == 0
        assert tmp_path.name in output
        assert output.endswith("hola\r\n")


class TestSignals:
    """Termination and escalation."""

    def test_terminate_stops_a_long_running_command(self):
        with PtyProcess.spawn("sleep 100") as process:
            started = time.monotonic()
            process.signal_terminate()
            assert process.wait(timeout=5) == -signal.SIGTERM
            assert time.monotonic() - started < 5

    def test_terminate_is_idempotent(self):
        with PtyProcess.spawn("sleep 100") as process:
            process.signal_terminate()
            process.signal_terminate()
            assert process.wait(timeout=5) == -signal.SIGTERM
            process.signal_terminate()

    def test_kill_overrides_an_ignored_terminate(self):
        script = "trap '' TERM; echo ready; while true; do sleep 0.1; done"
        with PtyProcess.spawn(script) as process:
            assert process.read_next(5) == b"ready\r\n"
            process.signal_terminate()
            assert process.wait(timeout=0.5) is None
            process.kill()
            assert process.wait(timeout=5) == -signal.SIGKILL

    def test_signals_after_exit_are_ignored(self):
        with PtyProcess.spawn("true") as process:
            read_all(process)
            assert process.wait() == 0
            process.signal_terminate()
            process.kill()

    @pytest.mark.skipif(not Path("/proc").is_dir(), reason="needs /proc")
    def test_terminate_reaches_the_whole_process_group(self):
        with PtyProcess.spawn("sleep 100 & echo $!; wait") as process:
            line = process.read_next(5)
            child_pid = int(line.decode().strip())
            process.signal_terminate()
            process.wait(timeout=5)

        deadline = time.monotonic() + 5
        while not process_gone(child_pid) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert process_gone(child_pid)


    @pytest.mark.skipif(not Path("/proc").is_dir(), reason="needs /proc")
    def test_terminate_reaches_children_after_the_shell_exits(self):
        with PtyProcess.spawn("sleep 100 >/dev/null 2>&1 & echo $!") as process:
            line = process.read_next(5)
            child_pid = int(line.decode().strip())
            read_all(process)
            assert process.wait(timeout=5) == 0
            assert not process_gone(child_pid)

            process.signal_terminate()

        deadline = time.monotonic() + 5
        while not process_gone(child_pid) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert process_gone(child_pid)


class TestSpawnFailure:
    """Errors from the OS spawn primitive."""

    def test_missing_shell_raises_spawn_error(self):
        with pytest.raises(SpawnError) as exc_info:
            PtyProcess.spawn("echo hi", shell="/nonexistent/shell")

        assert exc_info.value.command == "echo hi"
        assert isinstance(exc_info.value.cause, OSError)

    def test_missing_directory_raises_spawn_error(self, tmp_path):
        with pytest.raises(SpawnError):
            PtyProcess.spawn("echo hi", cwd=str(tmp_path / "missing"))

    def test_close_is_idempotent(self):
        process = PtyProcess.spawn("true")
        read_all(process)
        process.wait()
        process.close()
        process.close()
        assert process.read_next(0.01) is None
