"""Project path discovery utilities."""

import os
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_root() -> Path:
    """Get project root directory for loading .env files and resolving config paths.

    1. Check environment variable STAGECOACH_PROJECT_ROOT
    2. Walk up from the current working directory until we find pyproject.toml
    3. Fallback to current working directory

    Returns:
        Path: Project root directory
    """
    if root_env := os.getenv("STAGECOACH_PROJECT_ROOT"):
        root_path = Path(root_env).resolve()
        if root_path.exists():
            return root_path

    current = Path.cwd().resolve()
    for parent in (current, *current.parents):
        if (parent / "pyproject.toml").exists():
            return parent

    return Path.cwd()


def clear_root() -> None:
    """Clear the project root cache."""
    get_root.cache_clear()
