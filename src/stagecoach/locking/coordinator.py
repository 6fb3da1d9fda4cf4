"""Run command sequences under a per-resource lock."""

# Standard library imports
import threading
from typing import Callable, Dict, Hashable, Iterable, Optional

# Local/package imports
from ..config import ExecutionConfig, get_config
from ..core.types import Command, OutputSink
from ..execution.executor import TerminalExecutor
from ..utils.logger import get_logger
from .registry import LockRegistry, WaitCallback, get_registry

logger = get_logger(__name__)

ExecutorFactory = Callable[..., TerminalExecutor]


class LockedExecutionCoordinator:
    """Guarantees at most one running command sequence per resource.

    The lock is held from before the first command spawns until the executor
    has returned, including the wind-down of a cancelled command.
    """

    def __init__(
        self,
        registry: Optional[LockRegistry] = None,
        config: Optional[ExecutionConfig] = None,
        executor_factory: Optional[ExecutorFactory] = None,
    ):
        self.config = config or get_config()
        self.registry = registry if registry is not None else get_registry()
        self._executor_factory = executor_factory or self._build_executor
        self._active: Dict[Hashable, TerminalExecutor] = {}
        self._active_lock = threading.Lock()

    def run(
        self,
        resource_id: Hashable,
        holder: str,
        timeout: Optional[float],
        commands: Iterable[Command],
        sink: OutputSink,
        on_timeout: Optional[Callable[[], object]] = None,
        on_wait: Optional[WaitCallback] = None,
        verbose: bool = False,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Lock ``resource_id`` and execute ``commands``, streaming to ``sink``.

        Args:
            resource_id: Resource to lock, e.g. a project id
            holder: Label recorded on the lock entry
            timeout: Seconds to wait for the lock, None for the configured default
            commands: Shell commands, run in order
            sink: Receives output chunks
            on_timeout: Called once if the lock is not acquired
            on_wait: Called with the holding entry after each failed attempt
            verbose: Echo each command to the sink before running it
            cwd: Working directory for the commands
            env: Environment for the commands

        Returns:
            True if the lock was acquired and every command exited 0
        """
        commands = list(commands)

        def body() -> bool:
            executor = self._executor_factory(sink, verbose=verbose, cwd=cwd, env=env)
            with self._active_lock:
                self._active[resource_id] = executor
            logger.info(
                "Running %d command(s) on %r for %s", len(commands), resource_id, holder
            )
            try:
                return executor.execute_all(commands)
            finally:
                with self._active_lock:
                    if self._active.get(resource_id) is executor:
                        del self._active[resource_id]

        result = self.registry.with_lock(
            resource_id,
            holder,
            timeout,
            body,
            on_timeout=on_timeout,
            on_wait=on_wait,
        )
        return bool(result)

    def stop(self, resource_id: Hashable) -> bool:
        """Cancel the execution running on ``resource_id``.

        Returns:
            True if there was an execution to stop
        """
        executor = self.active_executor(resource_id)
        if executor is None:
            return False
        executor.stop()
        return True

    def active_executor(self, resource_id: Hashable) -> Optional[TerminalExecutor]:
        with self._active_lock:
            return self._active.get(resource_id)

    def _build_executor(
        self,
        sink: OutputSink,
        verbose: bool = False,
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> TerminalExecutor:
        return TerminalExecutor(sink, verbose=verbose, config=self.config, cwd=cwd, env=env)
