"""
Input validation and sanitization utilities.
Provides decorators and functions for validating and cleaning input data.
"""

from typing import Any, Callable
import functools

from shared_utils.error_handler import ValidationError
from shared_utils.logging_utils import get_scoped_logger
from shared_utils.constants import LogScope


class InputValidator:
    """Utility class for input validation."""

    @staticmethod
    def validate_non_empty_string(value: str, field_name: str) -> str:
        """Validate non-empty string.

        Args:
            value: String to validate
            field_name: Name of field for error messages

        Returns:
            Validated string

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, str):
            raise ValidationError(f"{field_name} must be a string")

        if not value or not value.strip():
            raise ValidationError(f"{field_name} cannot be empty")

        return value.strip()

    @staticmethod
    def validate_positive_int(value: int, field_name: str, allow_zero: bool = False) -> int:
        """Validate positive integer.

        Args:
            value: Integer to validate
            field_name: Name of field for error messages
            allow_zero: Whether zero is valid

        Returns:
            Validated integer

        Raises:
            ValidationError: If validation fails
        """
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"{field_name} must be an integer")

        min_val = 0 if allow_zero else 1
        if value < min_val:
            raise ValidationError(
                f"{field_name} must be >= {min_val}",
                context={"field": field_name, "value": value},
            )

        return value


def validate_input(
    validation_rules: dict[str, Callable],
    scope: str = LogScope.VALIDATION
):
    """Decorator to validate function arguments against rules.

    Args:
        validation_rules: Dict mapping param names to validation functions
        scope: Log scope

    Example:
        @validate_input({
            'text': lambda x: InputValidator.validate_non_empty_string(x, 'text'),
        })
        def add_comment(scrum_id, author, text):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = get_scoped_logger(scope)

            try:
                for param_name, validator in validation_rules.items():
                    if param_name in kwargs:
                        kwargs[param_name] = validator(kwargs[param_name])

                logger.debug(
                    f"{func.__name__}_validation_passed",
                    func_name=func.__name__,
                    validated_params=list(validation_rules.keys())
                )

                return func(*args, **kwargs)

            except ValidationError as e:
                logger.warning(
                    f"{func.__name__}_validation_failed",
                    func_name=func.__name__,
                    error=str(e)
                )
                raise

        return wrapper
    return decorator
