"""Tagged outcome returned by every mapper operation."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from litemap.errors import MapperError

__all__ = ["Result", "ResultStatus"]

T = TypeVar("T")


class ResultStatus(str, enum.Enum):
    """Enumerated outcomes of a mapper operation."""

    OK = "ok"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a mapper call: ``Ok(value) | NotFound | Failed(error)``.

    Lets callers tell an empty table or a missing row apart from a broken
    query, while operations themselves never raise.  ``bool(result)`` is true
    only for ``OK``.
    """

    status: ResultStatus
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(ResultStatus.OK, value=value)

    @classmethod
    def not_found(cls) -> "Result[Any]":
        return cls(ResultStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: BaseException) -> "Result[Any]":
        return cls(ResultStatus.FAILED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    @property
    def is_not_found(self) -> bool:
        return self.status is ResultStatus.NOT_FOUND

    @property
    def is_failed(self) -> bool:
        return self.status is ResultStatus.FAILED

    def unwrap(self) -> T:
        """Return the value, raising the carried error if there is none."""
        if self.status is ResultStatus.FAILED:
            if self.error is None:
                raise MapperError("operation failed without an error")
            raise self.error
        if self.status is ResultStatus.NOT_FOUND:
            raise LookupError("no matching row")
        return self.value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        return self.value if self.is_ok else default  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.is_ok
