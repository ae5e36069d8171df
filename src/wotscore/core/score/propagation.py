"""Rank propagation and score aggregation.

Standalone graph functions used by :class:`ScoreEngine`. They operate on a
read-only view of the trust table given as a callable returning the trust
edges an identity gives (or receives), so they can be exercised without a
store.

Rank Model:
    rank(owner) = 0
    rank(t)     = 1 + min{ rank(u) : Trust(u, t).value > 0, rank(u) defined }

Rank is the breadth-first distance from the owner over strictly positive
edges. Each node is finalized at first visit, so positive cycles never
cause revisits.

Score Model:
    score(t) = sum over every Trust(u, t) with rank(u) defined of
               trunc(value * capacity(rank(u)) / 100)

All received edges count, negative ones included. Every term is truncated
toward zero on its own before summing.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Iterable

from wotscore.core.trust.models import Trust

TrustLookup = Callable[[str], Iterable[Trust]]
CapacityLookup = Callable[[int], int]


def weighted_trust(value: int, capacity: int) -> int:
    """Return ``value * capacity / 100`` truncated toward zero."""
    product = value * capacity
    magnitude = abs(product) // 100
    return magnitude if product >= 0 else -magnitude


def compute_ranks(owner: str, given_trusts: TrustLookup) -> dict[str, int]:
    """Compute the rank of every identity reachable from ``owner``.

    Args:
        owner: Id of the tree owner.
        given_trusts: Returns the outbound trust edges of an identity.

    Returns:
        Mapping of identity id to rank. Identities that are not reachable
        through strictly positive edges are absent.
    """
    ranks: dict[str, int] = {owner: 0}
    queue: deque[str] = deque([owner])

    while queue:
        truster = queue.popleft()
        trustee_rank = ranks[truster] + 1
        for trust in given_trusts(truster):
            if trust.value <= 0 or trust.trustee in ranks:
                continue
            ranks[trust.trustee] = trustee_rank
            queue.append(trust.trustee)

    return ranks


def lower_ranks(
    ranks: dict[str, int],
    start: str,
    start_rank: int,
    given_trusts: TrustLookup,
) -> set[str]:
    """Propagate a rank decrease that starts at ``start``.

    Used after a positive edge appeared: ``start`` can now be reached with
    ``start_rank``. Ranks only ever go down here, so a breadth-first
    relaxation from ``start`` that stops at nodes which already have an
    equal or better rank yields exact ranks for the new graph, provided
    ``ranks`` was exact before the edge appeared.

    Args:
        ranks: Current ranks, updated in place.
        start: Trustee of the new positive edge.
        start_rank: Rank offered by the new edge (truster rank + 1).
        given_trusts: Returns the outbound trust edges of an identity.

    Returns:
        Ids whose rank was lowered (or became defined).
    """
    changed: set[str] = set()
    current = ranks.get(start)
    if current is not None and current <= start_rank:
        return changed

    ranks[start] = start_rank
    changed.add(start)
    queue: deque[str] = deque([start])

    while queue:
        node = queue.popleft()
        next_rank = ranks[node] + 1
        for trust in given_trusts(node):
            if trust.value <= 0:
                continue
            old = ranks.get(trust.trustee)
            if old is not None and old <= next_rank:
                continue
            ranks[trust.trustee] = next_rank
            changed.add(trust.trustee)
            queue.append(trust.trustee)

    return changed


def has_alternative_support(
    target: str,
    required_rank: int,
    ranks: dict[str, int],
    received_trusts: TrustLookup,
) -> bool:
    """Check whether ``target`` still has a truster that realizes its rank.

    Returns True if some strictly positive edge into ``target`` comes from
    an identity of rank ``required_rank``.
    """
    for trust in received_trusts(target):
        if trust.value > 0 and ranks.get(trust.truster) == required_rank:
            return True
    return False


def compute_score_value(
    target: str,
    ranks: dict[str, int],
    received_trusts: TrustLookup,
    capacity_for_rank: CapacityLookup,
) -> int:
    """Aggregate the weighted trust values ``target`` has received.

    Trusters without a rank have no capacity and contribute nothing.
    """
    total = 0
    for trust in received_trusts(target):
        truster_rank = ranks.get(trust.truster)
        if truster_rank is None:
            continue
        total += weighted_trust(trust.value, capacity_for_rank(truster_rank))
    return total
