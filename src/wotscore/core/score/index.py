"""Persisted view of one owner's tree, used by incremental updates."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from wotscore.core.score.models import Score

if TYPE_CHECKING:
    from wotscore.core.store import TrustGraphStore


@dataclass
class TreeIndex:
    """Ranks and rows of a tree owner as currently stored."""

    owner: str
    rows: dict[str, Score] = field(default_factory=dict)

    @classmethod
    def load(cls, store: TrustGraphStore, owner: str) -> TreeIndex:
        return cls(owner, {s.target: s for s in store.scores_of_owner(owner)})

    @property
    def has_owner_row(self) -> bool:
        """False before the first full computation of the tree."""
        return self.owner in self.rows

    def ranks(self) -> dict[str, int]:
        return {target: row.rank for target, row in self.rows.items()}
