"""
Result values passed between components.

A Result carries either a success payload or the exception that describes why
an operation failed. Components use it at their seams instead of raising, and
the public table surface collapses it to a boolean, count, or nullable value.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a component operation.

    Attributes:
        value: Payload of a successful operation
        error: Exception describing the failure, or None on success
    """
    value: Optional[T] = None
    error: Optional[Exception] = None

    @classmethod
    def success(cls, value: Any = None) -> "Result":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[str]:
        """Name of the failure class (e.g. ``"ParseError"``), None on success."""
        if self.error is None:
            return None
        return type(self.error).__name__

    def unwrap_or(self, default: Any) -> Any:
        """Return the payload on success, ``default`` otherwise."""
        return self.value if self.error is None else default
