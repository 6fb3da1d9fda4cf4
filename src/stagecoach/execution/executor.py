"""
Sequential shell command execution with streamed output.

A TerminalExecutor runs commands one after another on a pseudo-terminal,
forwarding every chunk of output to its sink as soon as it arrives. The first
failing command ends the sequence. Another thread may call ``stop()`` at any
time to cancel the command that is running.
"""

# Standard library imports
import codecs
import threading
from functools import partial
from typing import Callable, Dict, Iterable, Optional

# Local/package imports
from ..config import ExecutionConfig, get_config
from ..core.exceptions import SpawnError
from ..core.types import PTY_EOL, Command, OutputSink
from ..utils.logger import get_logger
from .process import ProcessHandle, PtyProcess

logger = get_logger(__name__)

Spawner = Callable[[Command], ProcessHandle]


class TerminalExecutor:
    """Runs an ordered sequence of shell commands as one unit.

    Failures are never raised: ``execute`` returns False and the sink holds
    whatever the commands printed. A command exiting non-zero is followed by
    a ``Failed to execute "<command>"`` line; a cancelled run is not.

    Example:
        >>> output = []
        >>> TerminalExecutor(output).execute('echo "hi"', 'echo "hello"')
        True
        >>> "".join(output)
        'hi\\r\\nhello\\r\\n'
    """

    def __init__(
        self,
        sink: OutputSink,
        verbose: bool = False,
        config: Optional[ExecutionConfig] = None,
        spawner: Optional[Spawner] = None,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        """Initialize the executor.

        Args:
            sink: Receives output chunks in arrival order
            verbose: Echo each command to the sink before running it
            config: Execution settings, defaults to the global configuration
            spawner: Starts a command and returns its ProcessHandle
            cwd: Working directory for the commands
            env: Environment for the commands, defaults to the current one
        """
        self.sink = sink
        self.verbose = verbose
        self.config = config or get_config()
        self._spawner = spawner or partial(
            PtyProcess.spawn,
            shell=self.config.shell,
            cwd=cwd,
            env=env,
            chunk_size=self.config.read_chunk_size,
        )

        # Guards the active process and the cancellation flag
        self._lock = threading.Lock()
        self._process: Optional[ProcessHandle] = None
        self._stopped = False

    @property
    def pid(self) -> Optional[int]:
        """Pid of the running command, None when nothing is running."""
        with self._lock:
            return self._process.pid if self._process is not None else None

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def execute(self, *commands: Command) -> bool:
        """Run ``commands`` in order; True only if every one exits 0."""
        return self.execute_all(commands)

    def execute_all(self, commands: Iterable[Command]) -> bool:
        """Run an iterable of commands in order; True only if every one exits 0."""
        for command in commands:
            try:
                succeeded = self._execute_command(command)
            except Exception:  # noqa: BLE001 - callers get a result, never an exception
                logger.exception("Unexpected error while running %r", command)
                return False

            if self.stopped:
                logger.info("Execution stopped during %r", command)
                return False

            if not succeeded:
                logger.info("Command failed: %s", command)
                try:
                    self._write(f'Failed to execute "{command}"{PTY_EOL}')
                except Exception:  # noqa: BLE001
                    logger.exception("Output sink rejected failure notice")
                return False

        return True

    def stop(self) -> None:
        """Cancel the run. Safe from any thread; only the first call has effect."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            process = self._process

        if process is not None:
            logger.info("Stopping pid %s", process.pid)
            process.signal_terminate()
        else:
            logger.info("Stop requested with no running command")

    def _execute_command(self, command: Command) -> bool:
        if self.verbose and not self.stopped:
            self._write(f"» {command}{PTY_EOL}")

        spawn_error: Optional[SpawnError] = None
        with self._lock:
            # Checked under the lock so stop() either sees the process or
            # prevents it from ever starting
            if self._stopped:
                return False
            try:
                process = self._spawner(command)
            except SpawnError as e:
                spawn_error = e
            else:
                self._process = process

        if spawn_error is not None:
            logger.warning("Could not start %r: %s", command, spawn_error)
            self._write(f"{spawn_error}{PTY_EOL}")
            return False

        logger.debug("Running %r as pid %s", command, process.pid)
        try:
            status = self._stream(process)
        finally:
            with self._lock:
                self._process = None
            try:
                if process.returncode is None:
                    self._wind_down(process)
            finally:
                process.close()

        logger.debug("pid %s exited with status %s", process.pid, status)
        return status == 0

    def _stream(self, process: ProcessHandle) -> Optional[int]:
        """Forward output until end of stream or cancellation; return exit status."""
        decoder = codecs.getincrementaldecoder(self.config.encoding)(errors="replace")
        poll_interval = self.config.read_poll_interval

        while not self.stopped:
            data = process.read_next(poll_interval)
            if data is None:
                break
            if not data:
                # A background grandchild can hold the pty open after the
                # command itself has exited
                if process.returncode is not None:
                    break
                continue

            text = decoder.decode(data)
            if text:
                self._write(text)

        tail = decoder.decode(b"", final=True)
        if tail:
            self._write(tail)

        # A command can close its output and keep running
        status = None
        while status is None and not self.stopped:
            status = process.wait(timeout=poll_interval)

        if self.stopped:
            return self._wind_down(process)
        return status

    def _wind_down(self, process: ProcessHandle) -> Optional[int]:
        """Terminate ``process``, escalating to SIGKILL after the grace period."""
        process.signal_terminate()
        status = process.wait(timeout=self.config.terminate_grace_period)
        if status is None:
            logger.warning(
                "pid %s ignored SIGTERM for %ss, killing it",
                process.pid,
                self.config.terminate_grace_period,
            )
            process.kill()
            status = process.wait()
        return status

    def _write(self, chunk: str) -> None:
        self.sink.append(chunk)
