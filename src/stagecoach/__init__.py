"""
Stagecoach - run deployment command sequences under per-resource locks.

This module provides the main entry point for the Stagecoach package: the
execution engine, the lock registry and the coordinator that combines them.
The version information is read from the package metadata when the package
is installed.
"""

from importlib import metadata as importlib_metadata
from importlib.metadata import PackageNotFoundError

# Local/package imports
from .core.exceptions import ConfigError, LockTimeoutError, SpawnError, StagecoachError
from .core.types import OutputSink, StreamSink
from .execution import ProcessHandle, PtyProcess, TerminalExecutor
from .locking import (
    LockedExecutionCoordinator,
    LockEntry,
    LockRegistry,
    get_registry,
    reset_registry,
)
from .utils.logger import get_logger

# Configure package-level logger
package_logger = get_logger(__name__)

__version__ = "0.0.0"
__title__ = "stagecoach"
__author__ = ""
__license__ = ""


def get_metadata():
    """Extract version and metadata from package distribution when available."""

    global __version__, __title__, __author__, __license__

    try:
        _meta = importlib_metadata.metadata("stagecoach")
    except PackageNotFoundError:
        return

    __version__ = _meta.get("Version", __version__)
    __title__ = _meta.get("Name", __title__)
    __author__ = _meta.get("Author", __author__)
    __license__ = _meta.get("License", __license__)


get_metadata()

__all__ = [
    "__version__",
    "ConfigError",
    "LockEntry",
    "LockRegistry",
    "LockTimeoutError",
    "LockedExecutionCoordinator",
    "OutputSink",
    "ProcessHandle",
    "PtyProcess",
    "SpawnError",
    "StagecoachError",
    "StreamSink",
    "TerminalExecutor",
    "get_registry",
    "reset_registry",
]
