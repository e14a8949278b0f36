"""Error-as-value wrapper returned by key-value store reads.

A ``Result`` holds either the value a computation produced or the exception
it raised. Readers that can degrade gracefully (fall back to a default, render
a partial page) check :attr:`Result.ok` or use :meth:`Result.value_or`; readers
that can't, call :meth:`Result.unwrap` and let the error propagate.

Example::

    result = kv.get("user.theme.42")

    theme = result.value_or(lambda error: "light")

    result.map(str.upper).unwrap()  # raises if the read failed
"""

from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class Result(Generic[T]):
    """The value or the error produced by a computation."""

    __slots__ = ("_value", "_error")

    def __init__(self, value: Any = None, error: Optional[Exception] = None):
        self._value = value
        self._error = error

    @classmethod
    def capture(cls, fn: Callable[[], T]) -> "Result[T]":
        """Run ``fn``, holding its return value or the exception it raised."""
        try:
            return cls(fn())
        except Exception as e:
            return cls(error=e)

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[Any]":
        if not isinstance(error, Exception):
            raise TypeError(f"Result.failure expects an Exception, got {type(error).__name__}")
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self._error is None

    @property
    def error(self) -> Optional[Exception]:
        return self._error

    def unwrap(self) -> T:
        """Return the value, or raise the held error."""
        if self._error is not None:
            raise self._error
        return self._value

    def value_or(self, fallback: Callable[[Exception], T]) -> T:
        """Return the value, or ``fallback(error)`` if the computation failed."""
        if not callable(fallback):
            raise TypeError("value_or expects a callable invoked with the error")
        if self._error is not None:
            return fallback(self._error)
        return self._value

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Transform a successful value; errors from ``fn`` are captured."""
        if self._error is not None:
            return self
        value = self._value
        return Result.capture(lambda: fn(value))

    def then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """Chain a computation that itself returns a Result."""
        if self._error is not None:
            return self
        result = fn(self._value)
        if not isinstance(result, Result):
            raise TypeError("function passed to Result.then did not return a Result")
        return result

    def rescue(self, fn: Callable[[Exception], "Result[T]"]) -> "Result[T]":
        """Recover from an error with a computation returning a Result."""
        if self._error is None:
            return self
        result = fn(self._error)
        if not isinstance(result, Result):
            raise TypeError("function passed to Result.rescue did not return a Result")
        return result

    def __repr__(self):
        if self._error is None:
            return f"<Result value: {self._value!r}>"
        return f"<Result error: {self._error!r}>"
