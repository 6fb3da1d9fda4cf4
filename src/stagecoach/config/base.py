"""Base configuration types and interfaces."""

# Standard library imports
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

# Local imports
from ..core.exceptions import ConfigError
from .paths import get_root
from .validation import ConfigValidator

ENV_PREFIX = "STAGECOACH_"


@dataclass
class BaseConfig:
    """Base configuration class.

    Every field can be overridden by a ``STAGECOACH_<FIELD>`` environment
    variable. Environment values take precedence over constructor arguments.
    """

    # Log settings
    log_dir: Optional[Path] = field(default=None)
    verbose: bool = field(default=False)
    debug: bool = field(default=False)

    def __post_init__(self):
        """Initialize configuration after creation."""
        self._validator = ConfigValidator()
        self._load_from_env()
        self._setup_validation()
        self._validate()

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        for field_name, field_value in self.__class__.__dataclass_fields__.items():
            env_key = f"{ENV_PREFIX}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is None:
                continue

            # Strip any comments and whitespace
            env_value = env_value.split("#")[0].strip()

            field_type = field_value.type
            try:
                if field_type is bool:
                    value = env_value.lower() in ("true", "1", "yes", "on")
                elif field_type in (Path, Optional[Path]):
                    if not env_value:
                        value = None
                    else:
                        # Relative paths resolve against the project root
                        path = Path(os.path.expanduser(env_value))
                        if not path.is_absolute():
                            path = get_root() / path
                        value = path
                else:
                    value = field_type(env_value)
            except (TypeError, ValueError) as e:
                raise ConfigError(
                    f"Invalid value for {env_key}: {env_value} - {e}",
                    field=field_name,
                    value=env_value,
                ) from e

            setattr(self, field_name, value)

    def _setup_validation(self) -> None:
        """Set up validation rules."""
        self._validator.add_type_rule("verbose", bool)
        self._validator.add_type_rule("debug", bool)
        self._validator.add_type_rule("log_dir", Path, allow_none=True)

    def _validate(self) -> None:
        """Validate configuration values."""
        self._validator.validate(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a plain dict."""
        return asdict(self)


@dataclass
class ExecutionConfig(BaseConfig):
    """Settings for command execution and resource locking."""

    # Process settings
    shell: str = field(default="/bin/sh")
    encoding: str = field(default="utf-8")
    read_chunk_size: int = field(default=1024)
    read_poll_interval: float = field(default=0.1)
    terminate_grace_period: float = field(default=5.0)

    # Lock settings
    lock_poll_interval: float = field(default=0.1)
    lock_timeout: float = field(default=600.0)

    def _setup_validation(self) -> None:
        """Set up validation rules."""
        super()._setup_validation()

        self._validator.add_type_rule("shell", str)
        self._validator.add_type_rule("encoding", str)
        self._validator.add_type_rule("read_chunk_size", int)
        self._validator.add_type_rule("read_poll_interval", (int, float))
        self._validator.add_type_rule("terminate_grace_period", (int, float))
        self._validator.add_type_rule("lock_poll_interval", (int, float))
        self._validator.add_type_rule("lock_timeout", (int, float))

        self._validator.add_range_rule("read_chunk_size", 1, 1024 * 1024)
        self._validator.add_range_rule("read_poll_interval", 0, 5.0, include_min=False)
        self._validator.add_range_rule("terminate_grace_period", 0)
        self._validator.add_range_rule("lock_poll_interval", 0, 60.0, include_min=False)
        self._validator.add_range_rule("lock_timeout", 0)

    def _validate(self) -> None:
        super()._validate()
        if not self.shell.strip():
            raise ConfigError("shell: Value cannot be empty", field="shell")
