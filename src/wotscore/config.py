"""Score computation settings.

``ScoreConfig`` holds the tunable parameters of the score engine and the
recomputation scheduler:

- ``capacities`` -- capacity percentage per rank. Entry 0 is the tree
  owner and must be 100; the sequence must be non-increasing.
- ``max_rank`` -- ranks at or beyond this value get capacity 0. ``None``
  means the last table entry applies to every deeper rank.
- ``coalesce_delay`` -- seconds the background worker waits after the
  first dirty mark so that bursts of edits share one pass.
- ``restrict_dirty_owners`` -- only mark tree owners whose tree contains
  the mutated edge's truster.

The default capacity table is the one used by the Freenet Web of Trust:
a newcomer sees identities trusted by people a few hops away, while the
influence of distant identities decays quickly.

Settings can be read from a YAML document::

    capacities: [100, 40, 16, 6, 2, 1]
    max_rank: 8
    coalesce_delay: 0.5
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from wotscore.exceptions import TrustGraphError

DEFAULT_CAPACITIES: tuple[int, ...] = (100, 40, 16, 6, 2, 1)
DEFAULT_COALESCE_DELAY: float = 1.0


@dataclass(frozen=True)
class ScoreConfig:
    """Capacity table and scheduling parameters.

    Attributes:
        capacities: Capacity percentage indexed by rank.
        max_rank: First rank with capacity 0, or None for no cutoff.
        coalesce_delay: Background coalescing delay in seconds.
        restrict_dirty_owners: Mark only owners whose tree contains the truster.
    """

    capacities: tuple[int, ...] = DEFAULT_CAPACITIES
    max_rank: int | None = None
    coalesce_delay: float = DEFAULT_COALESCE_DELAY
    restrict_dirty_owners: bool = True

    def __post_init__(self) -> None:
        # Accept lists from YAML/JSON while keeping the dataclass hashable.
        object.__setattr__(self, "capacities", tuple(self.capacities))

    def validate(self) -> None:
        """Raise a VALIDATION error if the settings are unusable."""
        caps = self.capacities
        if not caps:
            raise TrustGraphError.validation("Capacity table must not be empty")
        for rank, capacity in enumerate(caps):
            if isinstance(capacity, bool) or not isinstance(capacity, int):
                raise TrustGraphError.validation(
                    f"Capacity for rank {rank} must be an integer, got {capacity!r}",
                    rank=rank,
                )
            if capacity < 0 or capacity > 100:
                raise TrustGraphError.validation(
                    f"Capacity for rank {rank} must be in [0, 100], got {capacity}",
                    rank=rank,
                )
        if caps[0] != 100:
            raise TrustGraphError.validation(
                f"Capacity of rank 0 (the tree owner) must be 100, got {caps[0]}"
            )
        for rank in range(1, len(caps)):
            if caps[rank] > caps[rank - 1]:
                raise TrustGraphError.validation(
                    "Capacity table must be non-increasing",
                    rank=rank,
                )
        if self.max_rank is not None and (
            isinstance(self.max_rank, bool)
            or not isinstance(self.max_rank, int)
            or self.max_rank < 1
        ):
            raise TrustGraphError.validation(
                f"max_rank must be a positive integer or None, got {self.max_rank!r}"
            )
        if self.coalesce_delay < 0:
            raise TrustGraphError.validation(
                f"coalesce_delay must be non-negative, got {self.coalesce_delay}"
            )

    def capacity_for_rank(self, rank: int) -> int:
        """Return the capacity of an identity at ``rank``.

        Depends only on the rank value. Rank 0 is always 100.
        """
        if rank < 0:
            raise ValueError(f"Rank must be non-negative, got {rank}")
        if rank == 0:
            return 100
        if self.max_rank is not None and rank >= self.max_rank:
            return 0
        if rank < len(self.capacities):
            return self.capacities[rank]
        return self.capacities[-1]

    # -- Loading --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoreConfig:
        """Build a validated config from a mapping. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise TrustGraphError.validation(
                f"Unknown configuration keys: {', '.join(unknown)}",
                keys=unknown,
            )
        config = cls(**data)
        config.validate()
        return config

    @classmethod
    def load(cls, path: Path) -> ScoreConfig:
        """Read settings from a YAML file.

        An empty file yields the defaults.

        Raises:
            TrustGraphError: VALIDATION if the file is not a YAML mapping
                or the settings are invalid.
        """
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise TrustGraphError.validation(
                f"Configuration file {path} is not valid YAML: {exc}",
                path=str(path),
            ) from exc
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TrustGraphError.validation(
                f"Configuration file {path} must contain a mapping",
                path=str(path),
            )
        return cls.from_dict(data)
