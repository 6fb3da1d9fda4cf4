"""
Command execution package.
"""

from .executor import Spawner, TerminalExecutor
from .process import ProcessHandle, PtyProcess

__all__ = ["ProcessHandle", "PtyProcess", "Spawner", "TerminalExecutor"]
