"""
This module initializes the core components of the stagecoach package.
"""

# Local/package imports (using relative imports at package root)
from .exceptions import ConfigError, LockTimeoutError, SpawnError, StagecoachError
from .types import PTY_EOL, Command, OutputSink, StreamSink

__all__ = [
    "Command",
    "ConfigError",
    "LockTimeoutError",
    "OutputSink",
    "PTY_EOL",
    "SpawnError",
    "StagecoachError",
    "StreamSink",
]
