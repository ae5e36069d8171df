"""Score engine: keeps each tree owner's Score rows consistent with the graph.

Two ways of bringing a tree up to date:

1. **Full recompute** -- breadth-first rank assignment from the owner over
   strictly positive edges, capacity lookup per rank, one pass over the
   outbound edges of every ranked identity to aggregate scores, then a
   diff against the stored rows. O(V + E) per owner.
2. **Incremental update** -- for a batch of edge changes that share one
   truster, reuse the stored ranks, lower ranks where new positive edges
   appear, and rescore only the affected identities. Rank increases are
   not locally bounded, so removing the only edge that realizes a rank
   falls back to a full recompute.

Both write only the rows that differ, inside one store transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from wotscore.config import ScoreConfig
from wotscore.core.score.index import TreeIndex
from wotscore.core.score.models import RecomputeMode, RecomputeResult, Score
from wotscore.core.score.propagation import (
    compute_ranks,
    compute_score_value,
    has_alternative_support,
    lower_ranks,
    weighted_trust,
)
from wotscore.core.trust.models import Trust, TrustChange
from wotscore.exceptions import TrustGraphError

if TYPE_CHECKING:
    from wotscore.core.store import TrustGraphStore

logger = logging.getLogger(__name__)


class ScoreEngine:
    """Rank, capacity and score computation for tree owners.

    Args:
        store: The backing trust graph store.
        config: Capacity table and rank cutoff. Defaults to ``ScoreConfig()``.
    """

    def __init__(self, store: TrustGraphStore, config: ScoreConfig | None = None) -> None:
        self._store = store
        self._config = config or ScoreConfig()
        self._config.validate()

    @property
    def config(self) -> ScoreConfig:
        return self._config

    # -- Graph access -------------------------------------------------------

    def _given_trusts(self, truster: str) -> list[Trust]:
        trusts = self._store.given_trusts(truster)
        for trust in trusts:
            if self._store.get_identity(trust.trustee) is None:
                raise TrustGraphError.consistency(
                    f"Trust {trust.key!r} references missing trustee {trust.trustee!r}",
                    truster=trust.truster,
                    trustee=trust.trustee,
                )
        return trusts

    def _received_trusts(self, trustee: str) -> list[Trust]:
        return self._store.received_trusts(trustee)

    def _require_owner(self, owner: str) -> None:
        identity = self._store.get_identity(owner)
        if identity is None or not identity.own:
            raise TrustGraphError.consistency(
                f"Tree owner {owner!r} is not an own identity", owner=owner
            )

    def _current(self, change: TrustChange) -> TrustChange:
        trust = self._store.get_trust(change.truster, change.trustee)
        value = trust.value if trust is not None else None
        if value == change.new_value:
            return change
        return TrustChange(change.truster, change.trustee, change.old_value, value)

    def _row(self, owner: str, target: str, ranks: dict[str, int]) -> Score:
        rank = ranks[target]
        value = compute_score_value(
            target, ranks, self._received_trusts, self._config.capacity_for_rank
        )
        return Score(owner, target, value, rank, self._config.capacity_for_rank(rank))

    # -- Full ---------------------------------------------------------------

    def compute_tree(self, owner: str) -> dict[str, Score]:
        """Compute every row of ``owner``'s tree from scratch without writing.

        Raises:
            TrustGraphError: CONSISTENCY if the owner is not an own identity
                or an edge points to a missing identity.
        """
        self._require_owner(owner)
        ranks = compute_ranks(owner, self._given_trusts)

        totals: dict[str, int] = {}
        for truster, rank in ranks.items():
            capacity = self._config.capacity_for_rank(rank)
            for trust in self._store.given_trusts(truster):
                totals[trust.trustee] = totals.get(trust.trustee, 0) + weighted_trust(
                    trust.value, capacity
                )

        return {
            target: Score(
                owner,
                target,
                totals.get(target, 0),
                rank,
                self._config.capacity_for_rank(rank),
            )
            for target, rank in ranks.items()
        }

    def full_recompute(self, owner: str) -> RecomputeResult:
        """Recompute ``owner``'s tree from scratch and store the difference."""
        with self._store.transaction():
            tree = self.compute_tree(owner)
            stored = {s.target: s for s in self._store.scores_of_owner(owner)}
            result = RecomputeResult(owner, RecomputeMode.FULL)
            self._sync(result, stored, tree, stored.keys() | tree.keys())
        logger.debug(result.summary())
        return result

    # -- Incremental --------------------------------------------------------

    def incremental_update(
        self, owner: str, changes: Iterable[TrustChange]
    ) -> RecomputeResult:
        """Apply a batch of edge changes to ``owner``'s stored tree.

        Falls back to :meth:`full_recompute` when the changes come from
        more than one truster, when the tree was never computed, or when an
        edge that realized some identity's rank stopped being positive.

        The new value of each change is re-read from the store, so a change
        queued before its edge was deleted cannot resurrect the edge.
        """
        with self._store.transaction():
            changes = [self._current(c) for c in changes]
            changes = [c for c in changes if c.is_effective]
            if not changes:
                return RecomputeResult(owner, RecomputeMode.SKIPPED)
            if len({c.truster for c in changes}) > 1:
                return self.full_recompute(owner)

            self._require_owner(owner)
            index = TreeIndex.load(self._store, owner)
            if not index.has_owner_row:
                return self.full_recompute(owner)

            ranks = index.ranks()
            truster_rank = ranks.get(changes[0].truster)
            if truster_rank is None:
                result = RecomputeResult(owner, RecomputeMode.SKIPPED)
                logger.debug(result.summary())
                return result

            for change in changes:
                if (
                    change.was_positive
                    and not change.is_positive
                    and ranks.get(change.trustee) == truster_rank + 1
                    and not has_alternative_support(
                        change.trustee, truster_rank, ranks, self._received_trusts
                    )
                ):
                    logger.debug(
                        "Rank of %s in tree of %s may rise, recomputing fully",
                        change.trustee, owner,
                    )
                    return self.full_recompute(owner)

            rank_changed: set[str] = set()
            for change in changes:
                if change.is_positive and not change.was_positive:
                    rank_changed |= lower_ranks(
                        ranks, change.trustee, truster_rank + 1, self._given_trusts
                    )

            affected = {c.trustee for c in changes} | rank_changed
            for node in rank_changed:
                affected.update(t.trustee for t in self._store.given_trusts(node))

            tree = {t: self._row(owner, t, ranks) for t in affected if t in ranks}
            result = RecomputeResult(owner, RecomputeMode.INCREMENTAL)
            self._sync(result, index.rows, tree, affected)
        logger.debug(result.summary())
        return result

    # -- Dispatch -----------------------------------------------------------

    def recompute(
        self,
        owner: str,
        changes: Iterable[TrustChange] | None = None,
        full: bool = False,
    ) -> RecomputeResult:
        """Run a full pass if ``full`` or no changes are given, else incremental."""
        if full or changes is None:
            return self.full_recompute(owner)
        return self.incremental_update(owner, changes)

    def verify(self, owner: str) -> bool:
        """Compare the stored rows of ``owner`` with a fresh computation.

        Every mismatch is logged. Nothing is written.
        """
        expected = self.compute_tree(owner)
        stored = {s.target: s for s in self._store.scores_of_owner(owner)}
        ok = True
        for target in sorted(expected.keys() | stored.keys()):
            want, have = expected.get(target), stored.get(target)
            if want != have:
                ok = False
                logger.error(
                    "Score mismatch in tree of %s for %s: stored %r, expected %r",
                    owner, target, have, want,
                )
        return ok

    # -- Writes -------------------------------------------------------------

    def _sync(
        self,
        result: RecomputeResult,
        stored: dict[str, Score],
        computed: dict[str, Score],
        targets: Iterable[str],
    ) -> None:
        for target in sorted(targets):
            old, new = stored.get(target), computed.get(target)
            if new is None:
                if old is not None:
                    self._store.delete_score(result.owner, target)
                    result.deleted.append(target)
            elif old is None:
                self._store.put_score(new)
                result.created.append(target)
            elif old != new:
                self._store.put_score(new)
                result.updated.append(target)
