"""
Process control behind a narrow interface.

The executor only needs to spawn a command, read its merged output, signal
it and reap it. ``ProcessHandle`` describes that capability so tests can
substitute a fake; ``PtyProcess`` implements it on a POSIX pseudo-terminal,
which merges stdout and stderr in arrival order and keeps the child's
interactive (line-buffered) output behavior.
"""

# Standard library imports
import errno
import os
import pty
import select
import signal
import subprocess
import threading
from typing import Dict, Optional, Protocol

# Local/package imports
from ..core.exceptions import SpawnError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ProcessHandle(Protocol):
    """A running child process with a single combined output channel."""

    @property
    def pid(self) -> int:
        ...

    @property
    def returncode(self) -> Optional[int]:
        """Exit status if the process has been reaped, otherwise None."""
        ...

    def read_next(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Return the next chunk, ``b""`` if none arrived in time, None at end of stream."""
        ...

    def signal_terminate(self) -> None:
        ...

    def kill(self) -> None:
        ...

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Return the exit status, or None if ``timeout`` elapsed first."""
        ...

    def close(self) -> None:
        ...


class PtyProcess:
    """A shell command attached to a pseudo-terminal.

    The child runs in its own session, so signals go to its whole process
    group and reach anything the command spawned. ``signal_terminate`` and
    ``kill`` may be called from any thread while another thread is reading.
    """

    def __init__(
        self,
        popen: subprocess.Popen,
        master_fd: int,
        command: str,
        chunk_size: int = 1024,
    ):
        self.command = command
        self.chunk_size = chunk_size
        self._popen = popen
        self._master_fd: Optional[int] = master_fd
        self._eof = False
        self._terminated = False
        self._signal_lock = threading.Lock()

    @classmethod
    def spawn(
        cls,
        command: str,
        shell: str = "/bin/sh",
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        chunk_size: int = 1024,
    ) -> "PtyProcess":
        """Start ``shell -c command`` with stdout and stderr on a new pty.

        Raises:
            SpawnError: If the OS could not start the shell
        """
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise SpawnError(
                f"Could not allocate a pseudo-terminal: {e}", command=command, cause=e
            ) from e

        try:
            popen = subprocess.Popen(
                [shell, "-c", command],
                stdin=subprocess.DEVNULL,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=cwd,
                env=env,
                start_new_session=True,
                close_fds=True,
            )
        except OSError as e:
            os.close(master_fd)
            raise SpawnError(
                f"{shell}: {e.strerror or e}", command=command, cause=e
            ) from e
        finally:
            # The child holds its own copy; ours would keep EOF from arriving
            os.close(slave_fd)

        logger.debug("Spawned pid %s: %s", popen.pid, command)
        return cls(popen, master_fd, command, chunk_size=chunk_size)

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._popen.poll()

    def read_next(self, timeout: Optional[float] = None) -> Optional[bytes]:
        if self._eof or self._master_fd is None:
            return None

        ready, _, _ = select.select([self._master_fd], [], [], timeout)
        if not ready:
            return b""

        try:
            data = os.read(self._master_fd, self.chunk_size)
        except OSError as e:
            # Linux reports a closed slave side as EIO instead of EOF
            if e.errno != errno.EIO:
                raise
            data = b""

        if not data:
            self._eof = True
            return None
        return data

    def signal_terminate(self) -> None:
        with self._signal_lock:
            if self._terminated:
                return
            self._terminated = True
        self._send(signal.SIGTERM)

    def kill(self) -> None:
        self._send(signal.SIGKILL)

    def _send(self, sig: signal.Signals) -> None:
        # The group outlives the shell while any background child is alive
        try:
            os.killpg(self._popen.pid, sig)
            logger.debug("Sent %s to process group %s", sig.name, self._popen.pid)
        except ProcessLookupError:
            # Already gone
            pass
        except PermissionError as e:
            logger.warning(
                "Could not signal process group %s: %s", self._popen.pid, e
            )

    def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        try:
            return self._popen.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def close(self) -> None:
        if self._master_fd is not None:
            os.close(self._master_fd)
            self._master_fd = None

    def __enter__(self) -> "PtyProcess":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
