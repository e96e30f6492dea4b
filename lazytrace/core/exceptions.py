"""
lazytrace exception hierarchy.

All lazytrace exceptions inherit from LazyTraceException for easy catching.
The kinds that callers are expected to branch on also inherit from the
matching builtin (IndexError, TypeError) so generic handlers keep working.
"""
from typing import TypeVar, Generic, Optional, Callable
from dataclasses import dataclass


class LazyTraceException(Exception):
    """Base exception for all lazytrace errors."""

    def __init__(self, message: str, context: dict = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self):
        base = f"{self.__class__.__name__}: {self.message}"
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} (context: {ctx_str})"
        return base


# IR construction exceptions
class InvalidArgumentError(LazyTraceException, ValueError):
    """Malformed construction parameters (output counts, indices, scalars)."""
    pass


class IndexOutOfRangeError(LazyTraceException, IndexError):
    """Output index exceeds the arity of a tuple shape."""
    pass


class TypeMismatchError(LazyTraceException, TypeError):
    """A node was treated as a concrete variant it is not."""
    pass


class ShapeInferenceError(LazyTraceException):
    """Shape inference failed."""
    pass


# Configuration exceptions
class ConfigurationError(LazyTraceException):
    """Invalid configuration."""
    pass


# ============================================================================
# Result Type for Operations That May Fail
# ============================================================================

T = TypeVar('T')
U = TypeVar('U')


@dataclass
class Result(Generic[T]):
    """
    Result type for operations that may fail.

    Forces explicit handling of the negative case, e.g. when a generic node
    does not provide the shape capability.

    Usage:
        result = get_shape_from_node(node)
        if result.is_ok:
            shape = result.unwrap()
        else:
            handle_error(result.error)
    """

    _value: Optional[T] = None
    _error: Optional[Exception] = None

    @staticmethod
    def ok(value: T) -> 'Result[T]':
        """Create successful result."""
        return Result(_value=value, _error=None)

    @staticmethod
    def err(error: Exception) -> 'Result[T]':
        """Create error result."""
        return Result(_value=None, _error=error)

    @property
    def is_ok(self) -> bool:
        """Check if result is successful."""
        return self._error is None

    @property
    def is_err(self) -> bool:
        """Check if result is error."""
        return self._error is not None

    def unwrap(self) -> T:
        """
        Get value, raising exception if error.

        Use when you're certain the result is Ok.
        """
        if self.is_err:
            raise self._error
        return self._value

    def unwrap_or(self, default: T) -> T:
        """Get value or return default if error."""
        if self.is_err:
            return default
        return self._value

    def unwrap_or_else(self, f: Callable[[Exception], T]) -> T:
        """Get value or compute from error."""
        if self.is_err:
            return f(self._error)
        return self._value

    @property
    def error(self) -> Optional[Exception]:
        """Get error if present."""
        return self._error

    def map(self, f: Callable[[T], U]) -> 'Result[U]':
        """Transform value if Ok."""
        if self.is_ok:
            try:
                return Result.ok(f(self._value))
            except Exception as e:
                return Result.err(e)
        return Result.err(self._error)


__all__ = [
    'LazyTraceException',
    'InvalidArgumentError',
    'IndexOutOfRangeError',
    'TypeMismatchError',
    'ShapeInferenceError',
    'ConfigurationError',
    'Result',
]
