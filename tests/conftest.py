"""Shared fixtures for the stagecoach test suite."""

# Standard library imports
import os
import signal
import sys
import time

# Third-party imports
import pytest

# Local/package imports
from stagecoach.config import ExecutionConfig, clear_config, clear_root
from stagecoach.locking import LockRegistry, reset_registry

requires_pty = pytest.mark.skipif(
    sys.platform == "win32", reason="pseudo-terminals need a POSIX platform"
)


class FakeProcess:
    """In-memory stand-in for a ProcessHandle.

    Yields the given chunks and then reports end of stream, unless ``hang``
    is set, in which case it produces nothing until it is signalled.
    """

    _next_pid = 40000

    def __init__(self, chunks=(), status=0, hang=False, ignore_terminate=False):
        FakeProcess._next_pid += 1
        self.pid = FakeProcess._next_pid
        self.chunks = list(chunks)
        self.status = status
        self.hang = hang
        self.ignore_terminate = ignore_terminate
        self.returncode = None
        self.terminate_calls = 0
        self.killed = False
        self.closed = False

    def read_next(self, timeout=None):
        if self.chunks:
            return self.chunks.pop(0)
        if self.hang and self.returncode is None:
            time.sleep(min(timeout or 0.01, 0.01))
            return b""
        return None

    def signal_terminate(self):
        self.terminate_calls += 1
        if not self.ignore_terminate and self.returncode is None:
            self.returncode = -signal.SIGTERM

    def kill(self):
        self.killed = True
        if self.returncode is None:
            self.returncode = -signal.SIGKILL

    def wait(self, timeout=None):
        if self.returncode is None:
            if self.hang:
                if timeout is None:
                    raise AssertionError("wait() would block forever")
                return None
            self.returncode = self.status
        return self.returncode

    def close(self):
        self.closed = True


class FakeSpawner:
    """Hands out prepared FakeProcess objects and records the commands."""

    def __init__(self, *processes):
        self.processes = list(processes)
        self.commands = []

    def __call__(self, command):
        self.commands.append(command)
        return self.processes.pop(0)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep STAGECOACH_* settings and cached singletons out of every test."""
    for key in list(os.environ):
        if key.startswith("STAGECOACH_"):
            monkeypatch.delenv(key, raising=False)
    clear_config()
    clear_root()
    yield
    clear_config()
    clear_root()
    reset_registry()


@pytest.fixture
def config():
    """Configuration with short intervals so tests finish quickly."""
    return ExecutionConfig(
        read_poll_interval=0.05,
        terminate_grace_period=0.5,
        lock_poll_interval=0.02,
        lock_timeout=2.0,
    )


@pytest.fixture
def registry(config):
    return LockRegistry(config=config)


@pytest.fixture
def output():
    return []
