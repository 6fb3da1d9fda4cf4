"""
Custom exceptions for Stagecoach.

Command and lock failures inside the engine are reported through return
values and sink output, not exceptions. The types below cover the places
where raising is the contract:

- StagecoachError: Base exception for all Stagecoach errors
  - SpawnError: The OS refused to start a command
  - LockTimeoutError: A resource lock could not be acquired in time
  - ConfigError: Invalid configuration value
"""

from typing import Any, Hashable, Optional


class StagecoachError(Exception):
    """Base exception class for Stagecoach."""

    pass


class SpawnError(StagecoachError):
    """Raised when a command could not be started."""

    def __init__(self, message: str, command: str = None, cause: Exception = None):
        self.command = command
        self.cause = cause
        super().__init__(message)


class LockTimeoutError(StagecoachError):
    """Raised when a resource lock is not acquired within the timeout."""

    def __init__(
        self,
        resource_id: Hashable,
        timeout: float,
        holder: Optional[str] = None,
    ):
        self.resource_id = resource_id
        self.timeout = timeout
        self.holder = holder

        message = f"Could not lock {resource_id!r} within {timeout}s"
        if holder:
            message = f"{message} (held by {holder})"
        super().__init__(message)


class ConfigError(StagecoachError):
    """Raised when there's a configuration error."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(message)
