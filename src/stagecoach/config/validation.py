"""
Configuration validation rules.

Rules are registered per field on a ConfigValidator and applied to a dict of
field values. Any violation raises ConfigError naming the field.
"""

# Standard library imports
from typing import Any, Dict, List, Optional, Type, Union

# Local/package imports
from ..core.exceptions import ConfigError


class ValidationRule:
    """Base class for validation rules."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        self.message = message

    def validate(self, value: Any) -> None:
        """Validate a value against this rule."""
        raise NotImplementedError

    def fail(self, value: Any, default_message: str) -> None:
        raise ConfigError(
            f"{self.field}: {self.message or default_message}",
            field=self.field,
            value=value,
        )


class TypeRule(ValidationRule):
    """Rule for type validation."""

    def __init__(
        self,
        field: str,
        expected_type: Union[Type, tuple],
        message: Optional[str] = None,
        allow_none: bool = False,
    ):
        super().__init__(field, message)
        self.expected_type = expected_type
        self.allow_none = allow_none

    def validate(self, value: Any) -> None:
        """Validate value type."""
        if value is None:
            if not self.allow_none:
                self.fail(value, "Value cannot be None")
            return

        # bool is an int subclass; never accept it for numeric fields
        if isinstance(value, bool) and self.expected_type is not bool:
            self.fail(value, f"Expected {self._type_name()}, got bool")

        if not isinstance(value, self.expected_type):
            self.fail(
                value, f"Expected {self._type_name()}, got {type(value).__name__}"
            )

    def _type_name(self) -> str:
        if isinstance(self.expected_type, tuple):
            return " or ".join(t.__name__ for t in self.expected_type)
        return self.expected_type.__name__


class RangeRule(ValidationRule):
    """Rule for range validation."""

    def __init__(
        self,
        field: str,
        min_value: Optional[Any],
        max_value: Optional[Any],
        message: Optional[str] = None,
        include_min: bool = True,
    ):
        super().__init__(field, message)
        self.min_value = min_value
        self.max_value = max_value
        self.include_min = include_min

    def validate(self, value: Any) -> None:
        """Validate value range."""
        if value is None:
            return

        if self.min_value is not None:
            too_small = (
                value < self.min_value if self.include_min else value <= self.min_value
            )
            if too_small:
                bound = ">=" if self.include_min else ">"
                self.fail(value, f"Value must be {bound} {self.min_value}")

        if self.max_value is not None and value > self.max_value:
            self.fail(value, f"Value must be <= {self.max_value}")


class ConfigValidator:
    """Collects validation rules and applies them to configuration values."""

    def __init__(self):
        self.rules: Dict[str, List[ValidationRule]] = {}

    def add_rule(self, rule: ValidationRule) -> None:
        """Add a validation rule."""
        self.rules.setdefault(rule.field, []).append(rule)

    def add_type_rule(
        self,
        field: str,
        expected_type: Union[Type, tuple],
        allow_none: bool = False,
        message: Optional[str] = None,
    ) -> None:
        """Add a type validation rule."""
        self.add_rule(TypeRule(field, expected_type, message, allow_none))

    def add_range_rule(
        self,
        field: str,
        min_value: Optional[Any] = None,
        max_value: Optional[Any] = None,
        include_min: bool = True,
        message: Optional[str] = None,
    ) -> None:
        """Add a range validation rule."""
        self.add_rule(RangeRule(field, min_value, max_value, message, include_min))

    def validate(self, config: Dict[str, Any]) -> None:
        """
        Validate configuration against all rules.

        Args:
            config: Mapping of field name to value

        Raises:
            ConfigError: If validation fails
        """
        for field, value in config.items():
            self.validate_field(field, value)

    def validate_field(self, field: str, value: Any) -> None:
        """Validate a single field value."""
        for rule in self.rules.get(field, []):
            rule.validate(value)
