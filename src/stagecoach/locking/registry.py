"""
Per-resource exclusive locks held in process memory.

At most one LockEntry exists per resource identifier. Acquisition polls on a
fixed interval until the resource is free or the timeout elapses; waiters are
not queued, so whichever attempt sees the free slot first wins. The holder
label is metadata for display and logging. It is never compared, so asking
twice with the same holder still waits for the first entry to go away.
"""

# Standard library imports
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Hashable, Iterator, Optional, TypeVar, Union

# Local/package imports
from ..config import ExecutionConfig, get_config
from ..core.exceptions import LockTimeoutError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

WaitCallback = Callable[["LockEntry"], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LockEntry:
    """Who holds a resource and since when."""

    resource_id: Hashable
    holder: str
    acquired_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, object]:
        return {
            "resource_id": self.resource_id,
            "holder": self.holder,
            "acquired_at": self.acquired_at.isoformat(),
        }


class LockRegistry:
    """Process-wide table of resource locks.

    Construct one per process and share it with everything that must be
    mutually exclusive. All reads and writes of the table go through one
    mutex, so the presence check and the insert in ``acquire`` are atomic.

    Example:
        >>> registry = LockRegistry()
        >>> registry.with_lock("project-1", "deploy #12", 30, run_deploy)
    """

    def __init__(
        self,
        poll_interval: Optional[float] = None,
        config: Optional[ExecutionConfig] = None,
    ):
        """Initialize the registry.

        Args:
            poll_interval: Seconds between acquisition attempts
            config: Supplies defaults for poll_interval and lock timeouts
        """
        self._config = config or get_config()
        self.poll_interval = (
            poll_interval
            if poll_interval is not None
            else self._config.lock_poll_interval
        )
        self._locks: Dict[Hashable, LockEntry] = {}
        self._mutex = threading.Lock()

    def acquire(
        self,
        resource_id: Hashable,
        holder: str,
        timeout: Optional[float] = None,
        on_wait: Optional[WaitCallback] = None,
    ) -> bool:
        """Lock ``resource_id`` for ``holder``, waiting up to ``timeout`` seconds.

        Args:
            resource_id: Resource to lock
            holder: Label recorded on the entry
            timeout: Seconds to keep trying, 0 for a single attempt.
                Defaults to the configured lock_timeout.
            on_wait: Called with the current entry after every failed attempt

        Returns:
            True if the lock was acquired, False on timeout
        """
        return self._claim(resource_id, holder, timeout, on_wait) is not None

    def release(self, resource_id: Hashable) -> Optional[LockEntry]:
        """Remove the entry for ``resource_id`` whoever holds it.

        Returns:
            The removed entry, or None if the resource was not locked
        """
        with self._mutex:
            entry = self._locks.pop(resource_id, None)

        if entry is None:
            logger.debug("Release of unlocked resource %r", resource_id)
        else:
            logger.debug("Released %r held by %s", resource_id, entry.holder)
        return entry

    def with_lock(
        self,
        resource_id: Hashable,
        holder: str,
        timeout: Optional[float],
        body: Callable[[], T],
        on_timeout: Optional[Callable[[], object]] = None,
        on_wait: Optional[WaitCallback] = None,
    ) -> Union[T, bool]:
        """Run ``body`` while holding the lock on ``resource_id``.

        The lock is released however ``body`` exits, and its return value or
        exception reaches the caller unchanged.

        Returns:
            The result of ``body``, or False if the lock was not acquired.
            In that case ``on_timeout`` has been called once and ``body``
            has not run.
        """
        entry = self._claim(resource_id, holder, timeout, on_wait)
        if entry is None:
            if on_timeout is not None:
                on_timeout()
            return False

        try:
            return body()
        finally:
            self._release_entry(entry)

    @contextmanager
    def locked(
        self,
        resource_id: Hashable,
        holder: str,
        timeout: Optional[float] = None,
        on_wait: Optional[WaitCallback] = None,
    ) -> Iterator[LockEntry]:
        """Context manager form of ``with_lock``.

        Raises:
            LockTimeoutError: If the lock is not acquired in time
        """
        entry = self._claim(resource_id, holder, timeout, on_wait)
        if entry is None:
            current = self.get(resource_id)
            raise LockTimeoutError(
                resource_id,
                self._resolve_timeout(timeout),
                holder=current.holder if current else None,
            )

        try:
            yield entry
        finally:
            self._release_entry(entry)

    def get(self, resource_id: Hashable) -> Optional[LockEntry]:
        """Current entry for ``resource_id``, if any."""
        with self._mutex:
            return self._locks.get(resource_id)

    def is_locked(self, resource_id: Hashable) -> bool:
        return self.get(resource_id) is not None

    def locks(self) -> Dict[Hashable, LockEntry]:
        """Snapshot of every held lock."""
        with self._mutex:
            return dict(self._locks)

    def clear(self) -> None:
        """Drop every entry."""
        with self._mutex:
            self._locks.clear()

    def __contains__(self, resource_id: Hashable) -> bool:
        return self.is_locked(resource_id)

    def __len__(self) -> int:
        with self._mutex:
            return len(self._locks)

    def _resolve_timeout(self, timeout: Optional[float]) -> float:
        return self._config.lock_timeout if timeout is None else max(timeout, 0)

    def _claim(
        self,
        resource_id: Hashable,
        holder: str,
        timeout: Optional[float],
        on_wait: Optional[WaitCallback],
    ) -> Optional[LockEntry]:
        """Poll until an entry for ``holder`` is inserted or the deadline passes."""
        timeout = self._resolve_timeout(timeout)
        deadline = time.monotonic() + timeout

        while True:
            with self._mutex:
                current = self._locks.get(resource_id)
                if current is None:
                    entry = LockEntry(resource_id, holder)
                    self._locks[resource_id] = entry
                    logger.debug("Locked %r for %s", resource_id, holder)
                    return entry

            if on_wait is not None:
                on_wait(current)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.info(
                    "Timed out after %ss waiting for %r (held by %s)",
                    timeout,
                    resource_id,
                    current.holder,
                )
                return None

            time.sleep(min(self.poll_interval, remaining))

    def _release_entry(self, entry: LockEntry) -> None:
        """Release ``entry`` only if it is still the one in the table.

        A forced ``release`` followed by someone else's ``acquire`` must not
        be undone when the original holder finishes.
        """
        with self._mutex:
            if self._locks.get(entry.resource_id) is entry:
                del self._locks[entry.resource_id]
                released = True
            else:
                released = False

        if released:
            logger.debug("Released %r held by %s", entry.resource_id, entry.holder)
        else:
            logger.warning(
                "Lock on %r for %s was released by someone else",
                entry.resource_id,
                entry.holder,
            )


# Shared instance for callers that do not build their own
_global_registry: Optional[LockRegistry] = None
_global_registry_lock = threading.Lock()


def get_registry() -> LockRegistry:
    """Get the process-wide lock registry, creating it on first use."""
    global _global_registry
    with _global_registry_lock:
        if _global_registry is None:
            _global_registry = LockRegistry()
        return _global_registry


def reset_registry() -> None:
    """Forget the process-wide registry; the next get_registry() builds a new one."""
    global _global_registry
    with _global_registry_lock:
        _global_registry = None
