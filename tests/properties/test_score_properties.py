"""Property-based tests for score computation.

Verifies on random graphs:
- Incremental equivalence: an incremental pass leaves the same rows as a
  from-scratch computation
- Order independence: insertion order of edges does not change any row
- Determinism: recomputing an unchanged graph writes nothing
- Reachability: a row exists iff the target is reachable over positive edges
- Score aggregation: every score is the sum of truncated weighted terms
- End to end: after any mutation sequence and a flush, every tree verifies
"""
from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from wotscore.config import ScoreConfig
from wotscore.core.identity import Identity
from wotscore.core.score import ScoreEngine
from wotscore.core.store import TrustGraphStore
from wotscore.core.trust import Trust, TrustChange, TrustListEntry
from wotscore.network import WebOfTrust

OWNER = "n0"
NODES = [f"n{i}" for i in range(6)]


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

trust_values = st.integers(min_value=-100, max_value=100)
node_pairs = st.tuples(st.sampled_from(NODES), st.sampled_from(NODES)).filter(
    lambda pair: pair[0] != pair[1]
)
graphs = st.dictionaries(node_pairs, trust_values, max_size=20)


@st.composite
def truster_batches(draw: st.DrawFn) -> tuple[str, dict[str, int | None]]:
    """One truster and new values (None removes) for some of its edges."""
    truster = draw(st.sampled_from(NODES))
    trustees = [n for n in NODES if n != truster]
    edits = draw(
        st.dictionaries(
            st.sampled_from(trustees), st.none() | trust_values, min_size=1, max_size=4
        )
    )
    return truster, edits


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store(
    edges: dict[tuple[str, str], int], order: list[tuple[str, str]] | None = None
) -> TrustGraphStore:
    store = TrustGraphStore()
    store.open()
    with store.transaction():
        for node in NODES:
            store.put_identity(Identity(node, own=node == OWNER))
        for key in order if order is not None else sorted(edges):
            store.put_trust(Trust(key[0], key[1], edges[key]))
    return store


def _rows(store: TrustGraphStore) -> dict:
    return {s.target: s for s in store.scores_of_owner(OWNER)}


def _reachable(edges: dict[tuple[str, str], int]) -> set[str]:
    seen = {OWNER}
    frontier = [OWNER]
    while frontier:
        node = frontier.pop()
        for (a, b), value in edges.items():
            if a == node and value > 0 and b not in seen:
                seen.add(b)
                frontier.append(b)
    return seen


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


class TestIncrementalEquivalence:
    """An incremental pass matches a full recompute of the edited graph."""

    @given(edges=graphs, batch=truster_batches())
    @settings(max_examples=200, deadline=None)
    def test_incremental_equals_full(
        self, edges: dict, batch: tuple[str, dict[str, int | None]]
    ) -> None:
        store = _store(edges)
        engine = ScoreEngine(store)
        engine.full_recompute(OWNER)

        truster, edits = batch
        changes = []
        with store.transaction():
            for trustee, value in sorted(edits.items()):
                old = store.get_trust(truster, trustee)
                if value is None:
                    if old is not None:
                        store.delete_trust(truster, trustee)
                else:
                    store.put_trust(Trust(truster, trustee, value))
                changes.append(
                    TrustChange(truster, trustee, old.value if old else None, value)
                )

        engine.incremental_update(OWNER, changes)
        assert _rows(store) == engine.compute_tree(OWNER)


class TestGraphProperties:
    @given(edges=graphs, data=st.data())
    def test_insertion_order_does_not_matter(self, edges: dict, data: st.DataObject) -> None:
        order = data.draw(st.permutations(sorted(edges)))
        first, second = _store(edges), _store(edges, list(order))
        ScoreEngine(first).full_recompute(OWNER)
        ScoreEngine(second).full_recompute(OWNER)
        assert first.to_dict() == second.to_dict()

    @given(edges=graphs)
    def test_recompute_is_idempotent(self, edges: dict) -> None:
        store = _store(edges)
        engine = ScoreEngine(store)
        engine.full_recompute(OWNER)
        assert not engine.full_recompute(OWNER).changed

    @given(edges=graphs)
    def test_rows_exist_exactly_for_reachable_targets(self, edges: dict) -> None:
        store = _store(edges)
        ScoreEngine(store).full_recompute(OWNER)
        rows = _rows(store)
        assert set(rows) == _reachable(edges)
        assert (rows[OWNER].rank, rows[OWNER].capacity) == (0, 100)

    @given(edges=graphs)
    def test_score_is_sum_of_weighted_terms(self, edges: dict) -> None:
        config = ScoreConfig()
        store = _store(edges)
        ScoreEngine(store, config).full_recompute(OWNER)
        rows = _rows(store)
        for target, row in rows.items():
            expected = 0
            for (truster, trustee), value in edges.items():
                if trustee != target or truster not in rows:
                    continue
                product = value * config.capacity_for_rank(rows[truster].rank)
                expected += int(product / 100)
            assert row.score == expected
            assert row.capacity == config.capacity_for_rank(row.rank)


# ---------------------------------------------------------------------------
# End to end through the scheduler
# ---------------------------------------------------------------------------

own_edit = st.tuples(st.just("own"), st.sampled_from(NODES[1:]), st.none() | trust_values)
list_edit = st.tuples(
    st.just("list"),
    st.sampled_from(NODES[1:]),
    st.dictionaries(st.sampled_from(NODES), trust_values, max_size=3),
)


class TestMutationSequences:
    @given(ops=st.lists(own_edit | list_edit, max_size=12), flush_every=st.integers(1, 4))
    @settings(max_examples=75, deadline=None)
    def test_every_tree_verifies_after_flush(self, ops: list, flush_every: int) -> None:
        with WebOfTrust(config=ScoreConfig(coalesce_delay=0.0)) as wot:
            wot.create_own_identity(OWNER)
            edition = 0
            for step, (kind, subject, payload) in enumerate(ops, start=1):
                if kind == "own":
                    if payload is None:
                        wot.remove_trust(OWNER, subject)
                    else:
                        wot.set_trust(OWNER, subject, payload)
                else:
                    edition += 1
                    entries = [
                        TrustListEntry(trustee, value)
                        for trustee, value in sorted(payload.items())
                        if trustee != subject
                    ]
                    wot.apply_remote_trust_list(subject, entries, edition)
                if step % flush_every == 0:
                    wot.flush()
            wot.flush()
            assert wot.verify_scores() == []
            assert wot.check_integrity() == []
