"""Tests for the standalone rank and score functions."""

from __future__ import annotations

import pytest

from wotscore.config import ScoreConfig
from wotscore.core.score.propagation import (
    compute_ranks,
    compute_score_value,
    has_alternative_support,
    lower_ranks,
    weighted_trust,
)
from wotscore.core.trust import Trust


def _graph(edges: list[tuple[str, str, int]]):
    given: dict[str, list[Trust]] = {}
    received: dict[str, list[Trust]] = {}
    for a, b, v in edges:
        trust = Trust(a, b, v)
        given.setdefault(a, []).append(trust)
        received.setdefault(b, []).append(trust)
    return (lambda i: given.get(i, [])), (lambda i: received.get(i, []))


class TestWeightedTrust:
    @pytest.mark.parametrize(
        ("value", "capacity", "expected"),
        [(50, 40, 20), (-30, 40, -12), (7, 16, 1), (-7, 16, -1), (-1, 40, 0), (100, 100, 100)],
    )
    def test_truncates_toward_zero(self, value: int, capacity: int, expected: int) -> None:
        assert weighted_trust(value, capacity) == expected


class TestComputeRanks:
    """Breadth-first rank assignment."""

    def test_chain(self) -> None:
        given, _ = _graph([("A", "B", 100), ("B", "C", 50)])
        assert compute_ranks("A", given) == {"A": 0, "B": 1, "C": 2}

    def test_non_positive_edges_do_not_propagate(self) -> None:
        given, _ = _graph([("A", "B", 0), ("A", "C", -5), ("C", "D", 100)])
        assert compute_ranks("A", given) == {"A": 0}

    def test_shortest_path_wins(self) -> None:
        given, _ = _graph([("A", "B", 1), ("B", "C", 1), ("C", "D", 1), ("A", "D", 1)])
        assert compute_ranks("A", given)["D"] == 1

    def test_cycle_through_owner(self) -> None:
        given, _ = _graph([("A", "B", 100), ("B", "C", 100), ("C", "A", 100)])
        assert compute_ranks("A", given) == {"A": 0, "B": 1, "C": 2}


class TestLowerRanks:
    def test_lowering_propagates_downstream(self) -> None:
        edges = [("A", "B", 1), ("B", "C", 1), ("C", "D", 1), ("D", "E", 1)]
        given, _ = _graph(edges)
        ranks = compute_ranks("A", given)
        given2, _ = _graph(edges + [("A", "D", 1)])
        changed = lower_ranks(ranks, "D", 1, given2)
        assert changed == {"D", "E"}
        assert ranks == compute_ranks("A", given2)

    def test_no_change_when_rank_is_already_better(self) -> None:
        ranks = {"A": 0, "B": 1}
        given, _ = _graph([("A", "B", 1)])
        assert lower_ranks(ranks, "B", 3, given) == set()
        assert ranks == {"A": 0, "B": 1}

    def test_owner_is_never_lowered(self) -> None:
        ranks = {"A": 0, "B": 1}
        given, _ = _graph([("A", "B", 1), ("B", "A", 1)])
        assert lower_ranks(ranks, "A", 2, given) == set()


class TestScoreValue:
    def test_sum_over_ranked_trusters(self) -> None:
        config = ScoreConfig()
        _, received = _graph([("A", "B", 100), ("A", "D", 100), ("B", "C", 50), ("D", "C", -30), ("X", "C", 100)])
        ranks = {"A": 0, "B": 1, "D": 1, "C": 2}
        # X is unranked and contributes nothing.
        assert compute_score_value("C", ranks, received, config.capacity_for_rank) == 20 - 12

    def test_alternative_support(self) -> None:
        _, received = _graph([("B", "C", 10), ("D", "C", 10), ("E", "C", -10)])
        assert has_alternative_support("C", 1, {"B": 1, "D": 2, "E": 1}, received)
        assert not has_alternative_support("C", 1, {"B": 2, "D": 2, "E": 1}, received)
