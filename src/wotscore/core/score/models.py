"""Score data models.

- ``Score`` -- the derived (tree owner, target) row: rank, capacity, score.
- ``RecomputeMode`` -- how a recomputation pass was carried out.
- ``RecomputeResult`` -- summary of the rows one pass created, updated and
  deleted for a tree owner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class Score:
    """Reputation of ``target`` as seen from the tree of ``owner``.

    A row exists only while the target is reachable from the owner through
    strictly positive trust edges.

    Attributes:
        owner: Id of the tree owner (an OwnIdentity).
        target: Id of the rated identity.
        score: Sum of the target's received trust values, each weighted by
            the capacity of its truster.
        rank: Number of positive-trust hops from the owner (0 for the owner).
        capacity: Influence percentage of the target, a function of rank.
    """

    owner: str
    target: str
    score: int
    rank: int
    capacity: int

    @property
    def key(self) -> tuple[str, str]:
        return (self.owner, self.target)

    @property
    def sign(self) -> int:
        """Return -1, 0 or 1 depending on the sign of the score value."""
        return (self.score > 0) - (self.score < 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "target": self.target,
            "score": self.score,
            "rank": self.rank,
            "capacity": self.capacity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Score:
        return cls(
            owner=data["owner"],
            target=data["target"],
            score=int(data["score"]),
            rank=int(data["rank"]),
            capacity=int(data["capacity"]),
        )


class RecomputeMode(str, Enum):
    """How a tree owner's scores were brought up to date."""

    FULL = "full"
    INCREMENTAL = "incremental"
    SKIPPED = "skipped"


@dataclass
class RecomputeResult:
    """Rows written by one recomputation pass for one tree owner.

    Attributes:
        owner: Id of the tree owner.
        mode: Full, incremental, or skipped (nothing could have changed).
        created: Targets that received a new score row.
        updated: Targets whose existing row changed.
        deleted: Targets whose row was removed (no longer reachable).
    """

    owner: str
    mode: RecomputeMode
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted)

    def summary(self) -> str:
        return (
            f"{self.mode.value} recompute for {self.owner}: "
            f"{len(self.created)} created, {len(self.updated)} updated, "
            f"{len(self.deleted)} deleted"
        )
