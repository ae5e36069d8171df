"""wotscore error type.

All failures raised by wotscore are instances of a single exception class,
``TrustGraphError``, tagged with an ``ErrorKind``. Callers branch on
``error.kind`` instead of on a hierarchy of subclasses, and read structured
details (identity ids, counts, problem lists) from ``error.context``.

Kinds:
    VALIDATION  -- malformed mutation input, rejected before any write.
    CONSISTENCY -- structural invariant violation (duplicate row, dangling
                   reference). Should never happen in correct operation.
    NOT_FOUND   -- a required row does not exist. Optional lookups return
                   ``None`` instead of raising this.
    UPSTREAM    -- the persistence layer is closed or unavailable.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Discriminant for ``TrustGraphError``."""

    VALIDATION = "validation"
    CONSISTENCY = "consistency"
    NOT_FOUND = "not_found"
    UPSTREAM = "upstream"


class TrustGraphError(Exception):
    """Base (and only) exception for wotscore failures.

    Args:
        kind: The error category.
        message: Human-readable description.
        **context: Structured details about the failure.
    """

    def __init__(self, kind: ErrorKind, message: str, **context: Any) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.context: dict[str, Any] = dict(context)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"TrustGraphError(kind={self.kind.value!r}, "
            f"message={self.message!r}, context={self.context!r})"
        )

    @classmethod
    def validation(cls, message: str, **context: Any) -> TrustGraphError:
        return cls(ErrorKind.VALIDATION, message, **context)

    @classmethod
    def consistency(cls, message: str, **context: Any) -> TrustGraphError:
        return cls(ErrorKind.CONSISTENCY, message, **context)

    @classmethod
    def not_found(cls, message: str, **context: Any) -> TrustGraphError:
        return cls(ErrorKind.NOT_FOUND, message, **context)

    @classmethod
    def upstream(cls, message: str, **context: Any) -> TrustGraphError:
        return cls(ErrorKind.UPSTREAM, message, **context)
