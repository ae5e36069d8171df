"""Structural integrity check for the trust graph store.

This module extends ``TrustGraphStore`` (defined in ``store.py``) with the
startup/maintenance integrity check. The functions are attached to the
class in ``__init__.py``.

The check is structural, not numerical: it does not recompute scores, it
validates that the stored rows can be the result of a correct computation.

1. **Unique rows:** one row per identity id, per (truster, trustee), per
   (owner, target); duplicates found while loading are reported.
2. **Keys match rows:** every row is stored under its own key.
3. **No dangling references:** trust endpoints and score owner/target
   exist; score owners are own identities.
4. **Trust edges:** no self-trust, values in [-100, 100].
5. **Owner rows:** the owner's own row has rank 0 and capacity 100, and a
   tree with any rows has its owner row.
6. **Reachability:** a row of rank r > 0 has a strictly positive truster
   with a row of rank r - 1 in the same tree.
7. **Indices:** every secondary index agrees with the rows.
"""

from __future__ import annotations

from typing import Any

from wotscore.core.trust.models import MAX_TRUST_VALUE, MIN_TRUST_VALUE


def _expected_indices(self: Any) -> dict[str, Any]:
    identities = self._tables["identities"]
    trusts = self._tables["trusts"]
    scores = self._tables["scores"]

    def group(pairs: list[tuple[Any, Any]]) -> dict[Any, set[Any]]:
        grouped: dict[Any, set[Any]] = {}
        for key, member in pairs:
            grouped.setdefault(key, set()).add(member)
        return grouped

    return {
        "_own_ids": {key for key, row in identities.items() if row.own},
        "_context_index": group(
            [(c, key) for key, row in identities.items() for c in row.contexts]
        ),
        "_given": group([(row.truster, row.trustee) for row in trusts.values()]),
        "_received": group([(row.trustee, row.truster) for row in trusts.values()]),
        "_trusts_by_sign": group(
            [((row.value > 0) - (row.value < 0), key) for key, row in trusts.items()]
        ),
        "_scores_by_owner": group([(row.owner, row.target) for row in scores.values()]),
        "_scores_by_target": group([(row.target, row.owner) for row in scores.values()]),
    }


def _check_integrity_unlocked(self: Any) -> list[str]:
    """Return the list of integrity problems. Empty means the store is valid.

    The caller must hold the store lock.
    """
    problems: list[str] = list(self._load_problems)
    identities = self._tables["identities"]
    trusts = self._tables["trusts"]
    scores = self._tables["scores"]
    expected = _expected_indices(self)
    # Rebuilt from rows so a corrupt index cannot hide reachability problems.
    received = expected["_received"]

    for key, identity in identities.items():
        if key != identity.id:
            problems.append(f"Identity {identity.id!r} stored under key {key!r}")

    for key, trust in trusts.items():
        if key != trust.key:
            problems.append(f"Trust {trust.key!r} stored under key {key!r}")
        if trust.truster == trust.trustee:
            problems.append(f"Self-referential trust of {trust.truster!r}")
        if trust.truster not in identities:
            problems.append(f"Trust {key!r} references missing truster {trust.truster!r}")
        if trust.trustee not in identities:
            problems.append(f"Trust {key!r} references missing trustee {trust.trustee!r}")
        if not MIN_TRUST_VALUE <= trust.value <= MAX_TRUST_VALUE:
            problems.append(f"Trust {key!r} has out-of-range value {trust.value}")

    owners_with_rows: set[str] = set()
    for key, score in scores.items():
        if key != score.key:
            problems.append(f"Score {score.key!r} stored under key {key!r}")
        owner = identities.get(score.owner)
        if owner is None:
            problems.append(f"Score {key!r} references missing owner {score.owner!r}")
        elif not owner.own:
            problems.append(f"Score {key!r} has owner {score.owner!r} which is not an own identity")
        if score.target not in identities:
            problems.append(f"Score {key!r} references missing target {score.target!r}")
        if not 0 <= score.capacity <= 100:
            problems.append(f"Score {key!r} has out-of-range capacity {score.capacity}")
        if score.rank < 0:
            problems.append(f"Score {key!r} has negative rank {score.rank}")
        owners_with_rows.add(score.owner)

        if score.owner == score.target:
            if score.rank != 0 or score.capacity != 100:
                problems.append(
                    f"Owner row {key!r} must have rank 0 and capacity 100, "
                    f"has rank {score.rank} and capacity {score.capacity}"
                )
        elif score.rank == 0:
            problems.append(f"Score {key!r} has rank 0 but is not the owner's row")
        elif score.rank > 0:
            supported = False
            for truster in received.get(score.target, ()):
                trust = trusts.get((truster, score.target))
                if trust is None or trust.value <= 0:
                    continue
                truster_row = scores.get((score.owner, truster))
                if truster_row is not None and truster_row.rank == score.rank - 1:
                    supported = True
                    break
            if not supported:
                problems.append(
                    f"Score {key!r} has rank {score.rank} but no positive truster "
                    f"of rank {score.rank - 1} in the same tree"
                )

    for owner in sorted(owners_with_rows):
        if (owner, owner) not in scores:
            problems.append(f"Tree of {owner!r} has score rows but no owner row")

    for name, index in expected.items():
        if getattr(self, name) != index:
            problems.append(f"Index {name.lstrip('_')} does not match the stored rows")

    return problems


def _check_integrity(self: Any) -> list[str]:
    """Re-validate the stored rows; see the module docstring for the checks.

    Returns:
        List of problem descriptions. Empty means the store is valid.
    """
    return self._read(lambda: _check_integrity_unlocked(self))
