"""Result pattern for consistent return types in LenderPro.

Pure operations of the amortization engine report malformed input (an
invalid duration, an unknown installment number) as a failed Result instead
of raising, so callers decide whether to show a message or refuse the action.
"""
from dataclasses import dataclass
from typing import Optional, TypeVar, Generic

T = TypeVar('T')


@dataclass
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success, None on failure.
        error: Error message on failure, None on success.
        error_type: Category of error, one of the ErrorType constants.

    Usage:
        result = generator.generate(...)
        if result.success:
            schedule = result.value
        else:
            print(f"Error: {result.error}")
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, value: T = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, error_type: str = None) -> 'Result[T]':
        """Create a failure result.

        Args:
            error: Error message describing what went wrong.
            error_type: Optional error category for programmatic handling.

        Returns:
            A Result with success=False and error details.
        """
        return cls(success=False, error=error, error_type=error_type)

    def __bool__(self) -> bool:
        return self.success


class ErrorType:
    """Standard error type constants."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    INVALID_DURATION = "INVALID_DURATION"
    INSTALLMENT_NOT_FOUND = "INSTALLMENT_NOT_FOUND"
    ALREADY_PAID = "ALREADY_PAID"
    MALFORMED_RECORD = "MALFORMED_RECORD"
    DATABASE = "DATABASE"
