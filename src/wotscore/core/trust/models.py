"""Trust edge data models.

- ``Trust`` -- a directed, signed trust edge stored in the trust table.
- ``TrustChange`` -- the before/after value of one edge, produced by every
  trust mutation and consumed by incremental score recomputation.
- ``TrustListEntry`` -- one entry of a remote identity's published trust list.
- ``TrustListImport`` -- outcome of applying a remote trust list.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Any

from wotscore.exceptions import TrustGraphError

MIN_TRUST_VALUE: int = -100
MAX_TRUST_VALUE: int = 100
MAX_TRUST_COMMENT_LENGTH: int = 256


def validate_trust_value(value: int) -> int:
    """Return ``value`` if it is an integer in [-100, 100], else raise VALIDATION."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TrustGraphError.validation(
            f"Trust value must be an integer, got {value!r}"
        )
    if value < MIN_TRUST_VALUE or value > MAX_TRUST_VALUE:
        raise TrustGraphError.validation(
            f"Invalid trust value ({value}). Trust values must be in range of "
            f"{MIN_TRUST_VALUE} to +{MAX_TRUST_VALUE}",
            value=value,
        )
    return value


def validate_trust_comment(comment: str) -> str:
    """Return the trimmed comment, or raise VALIDATION."""
    comment = (comment or "").strip()
    if len(comment) > MAX_TRUST_COMMENT_LENGTH:
        raise TrustGraphError.validation(
            f"Comment is too long (maximum is {MAX_TRUST_COMMENT_LENGTH} characters)",
            length=len(comment),
        )
    for char in comment:
        if unicodedata.category(char) in ("Cc", "Cf", "Zl", "Zp", "Cs", "Co", "Cn"):
            raise TrustGraphError.validation("Comment contains illegal characters")
    return comment


@dataclass(frozen=True)
class Trust:
    """A directed trust edge ``truster -> trustee``.

    Attributes:
        truster: Id of the identity giving trust.
        trustee: Id of the identity receiving trust.
        value: Trust value in [-100, 100]. Only strictly positive values
            propagate rank.
        comment: Free-text comment of the truster.
        truster_edition: Edition of the truster's trust list when the edge
            was written.
    """

    truster: str
    trustee: str
    value: int
    comment: str = ""
    truster_edition: int | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.truster, self.trustee)

    @property
    def is_positive(self) -> bool:
        return self.value > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "truster": self.truster,
            "trustee": self.trustee,
            "value": self.value,
            "comment": self.comment,
            "truster_edition": self.truster_edition,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trust:
        return cls(
            truster=data["truster"],
            trustee=data["trustee"],
            value=int(data["value"]),
            comment=data.get("comment", ""),
            truster_edition=data.get("truster_edition"),
        )


@dataclass(frozen=True)
class TrustChange:
    """Value of one edge before and after a mutation (None means absent)."""

    truster: str
    trustee: str
    old_value: int | None
    new_value: int | None

    @property
    def key(self) -> tuple[str, str]:
        return (self.truster, self.trustee)

    @property
    def was_positive(self) -> bool:
        return self.old_value is not None and self.old_value > 0

    @property
    def is_positive(self) -> bool:
        return self.new_value is not None and self.new_value > 0

    @property
    def is_effective(self) -> bool:
        """False if the edge value did not actually change."""
        return self.old_value != self.new_value

    @property
    def affects_rank(self) -> bool:
        """True if the edge switched between propagating and not propagating rank."""
        return self.was_positive != self.is_positive

    def merged_with(self, later: TrustChange) -> TrustChange:
        """Coalesce with a later change of the same edge.

        The result spans from this change's old value to the later
        change's new value.
        """
        if later.key != self.key:
            raise ValueError(f"Cannot merge changes of {self.key} and {later.key}")
        return TrustChange(self.truster, self.trustee, self.old_value, later.new_value)


@dataclass(frozen=True)
class TrustListEntry:
    """One trustee entry of a published trust list."""

    trustee: str
    value: int
    comment: str = ""


@dataclass
class TrustListImport:
    """Outcome of ``apply_remote_trust_list``.

    Attributes:
        truster: Id of the identity whose list was applied.
        edition: Edition of the offered list.
        accepted: False if the list was rejected as stale (not newer than
            the last applied edition).
        changes: Effective edge changes written by the import.
    """

    truster: str
    edition: int
    accepted: bool
    changes: list[TrustChange] = field(default_factory=list)
