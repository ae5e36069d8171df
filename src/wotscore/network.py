"""``WebOfTrust``: the context value tying the trust graph together.

Constructed once, it owns the store, identity registry, trust table,
score engine and recomputation scheduler, and exposes the query,
ingestion and maintenance API. Every mutation runs in one store
transaction that also marks the affected tree owners dirty.

Example::

    with WebOfTrust(Path("wot.json")) as wot:
        wot.create_own_identity("alice")
        wot.set_trust("alice", "bob", 100)
        wot.flush()
        wot.get_score("alice", "bob")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from wotscore.config import ScoreConfig
from wotscore.core.identity import Identity, IdentityRegistry
from wotscore.core.scheduler import RecomputationScheduler
from wotscore.core.score import RecomputeResult, Score, ScoreEngine
from wotscore.core.store import TrustGraphStore
from wotscore.core.trust import (
    Trust,
    TrustChange,
    TrustListEntry,
    TrustListImport,
    TrustTable,
)
from wotscore.exceptions import TrustGraphError

logger = logging.getLogger(__name__)


class WebOfTrust:
    """A web of trust over one store.

    Args:
        path: JSON file backing the store, or None for a memory-only graph.
        config: Score configuration. Defaults to ``ScoreConfig()``.
        background: Run recomputation on a background worker thread. When
            False, pending work runs on :meth:`flush`.
    """

    def __init__(
        self,
        path: Path | None = None,
        config: ScoreConfig | None = None,
        background: bool = False,
    ) -> None:
        self.config = config or ScoreConfig()
        self.config.validate()
        self.store = TrustGraphStore(path)
        self.identities = IdentityRegistry(self.store)
        self.trusts = TrustTable(self.store, self.identities)
        self.engine = ScoreEngine(self.store, self.config)
        self.scheduler = RecomputationScheduler(
            self.store, self.engine, self.identities, self.config
        )
        self._background = background

    # -- Lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Open the store and queue a first full pass for uncomputed trees."""
        self.store.open()
        for owner in self.store.own_identities():
            if self.store.get_score(owner.id, owner.id) is None:
                self.scheduler.request_full(owner.id)
        if self._background:
            self.scheduler.start()
        logger.debug("Web of trust started")

    def stop(self) -> None:
        """Finish pending recomputation and close the store."""
        if not self.store.is_open:
            return
        self.scheduler.stop()
        try:
            self.scheduler.process_pending()
        finally:
            self.store.close()
        logger.debug("Web of trust stopped")

    def __enter__(self) -> WebOfTrust:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # -- Identities ---------------------------------------------------------

    def get_identity(self, identity_id: str) -> Identity | None:
        return self.identities.get_identity(identity_id)

    def get_own_identities(self) -> list[Identity]:
        return self.identities.get_own_identities()

    def get_all_identities(self) -> list[Identity]:
        return self.identities.get_all_identities()

    def add_identity(self, identity_id: str, nickname: str | None = None) -> Identity:
        return self.identities.add_identity(identity_id, nickname)

    def create_own_identity(self, identity_id: str, nickname: str | None = None) -> Identity:
        """Create (or promote to) an own identity and queue its first pass."""
        with self.store.transaction():
            identity = self.identities.create_own_identity(identity_id, nickname)
            if self.store.get_score(identity_id, identity_id) is None:
                self.scheduler.request_full(identity_id)
        return identity

    def delete_own_identity(self, identity_id: str) -> Identity:
        """Turn an own identity back into a plain identity.

        Its edges, contexts, properties and edition survive; its tree is
        dropped. Other trees that contain it are recomputed in full.
        """
        with self.store.transaction():
            identity = self.identities.demote_own_identity(identity_id)
            for owner in sorted({s.owner for s in self.store.scores_of_target(identity_id)}):
                self.scheduler.request_full(owner)
        return identity

    def delete_identity(self, identity_id: str) -> None:
        """Delete an identity, its edges and its score rows.

        The removed edges are reported as changes, which cancels any pass
        still queued for them. Every tree that contained the identity is
        recomputed in full.
        """
        with self.store.transaction():
            owners = {s.owner for s in self.store.scores_of_target(identity_id)}
            owners.discard(identity_id)
            removed = self.identities.delete_identity(identity_id)
            self.scheduler.notify_changes(
                TrustChange(t.truster, t.trustee, t.value, None) for t in removed
            )
            self.identities.collect_orphans(
                t.trustee for t in removed if t.truster == identity_id
            )
            for owner in sorted(owners):
                self.scheduler.request_full(owner)

    def add_context(self, identity_id: str, context: str) -> Identity:
        return self.identities.add_context(identity_id, context)

    def remove_context(self, identity_id: str, context: str) -> Identity:
        return self.identities.remove_context(identity_id, context)

    def set_property(self, identity_id: str, name: str, value: str) -> Identity:
        return self.identities.set_property(identity_id, name, value)

    def get_property(self, identity_id: str, name: str) -> str | None:
        return self.identities.get_property(identity_id, name)

    def remove_property(self, identity_id: str, name: str) -> Identity:
        return self.identities.remove_property(identity_id, name)

    # -- Trust --------------------------------------------------------------

    def get_trust(self, truster: str, trustee: str) -> Trust | None:
        return self.trusts.get_trust(truster, trustee)

    def set_trust(
        self, truster: str, trustee: str, value: int, comment: str = ""
    ) -> TrustChange | None:
        with self.store.transaction():
            change = self.trusts.set_trust(truster, trustee, value, comment)
            if change is not None:
                self.scheduler.notify_changes([change])
        return change

    def remove_trust(self, truster: str, trustee: str) -> TrustChange | None:
        with self.store.transaction():
            change = self.trusts.remove_trust(truster, trustee)
            if change is not None:
                self.scheduler.notify_changes([change])
        return change

    def apply_remote_trust_list(
        self, truster: str, entries: Iterable[TrustListEntry], edition: int
    ) -> TrustListImport:
        with self.store.transaction():
            result = self.trusts.apply_remote_trust_list(truster, entries, edition)
            if result.accepted:
                self.scheduler.notify_changes(result.changes)
        return result

    # -- Scores -------------------------------------------------------------

    def get_score(self, owner: str, target: str) -> Score | None:
        return self.store.get_score(owner, target)

    def get_scores(self, target: str) -> list[Score]:
        """The score rows of ``target`` in every tree, ordered by owner."""
        self.identities.require_identity(target)
        return self.store.scores_of_target(target)

    def _require_scores(self, target: str) -> list[Score]:
        scores = self.get_scores(target)
        if not scores:
            raise TrustGraphError.not_found(
                f"{target} is not in the trust tree of any own identity",
                identity=target,
            )
        return scores

    def get_best_score(self, target: str) -> int:
        """The highest score ``target`` has in any tree.

        Raises:
            TrustGraphError: NOT_FOUND if the identity is unknown or is in
                no trust tree.
        """
        return max(s.score for s in self._require_scores(target))

    def get_best_capacity(self, target: str) -> int:
        """The highest capacity ``target`` has in any tree. Raises like :meth:`get_best_score`."""
        return max(s.capacity for s in self._require_scores(target))

    def get_identities_by_score(self, owner: str, sign: int) -> list[Identity]:
        """Identities with a score of the given sign in ``owner``'s tree.

        Args:
            owner: Id of an own identity.
            sign: -1, 0 or 1.

        Returns:
            Identities ordered by score (highest first), then by id.
        """
        if sign not in (-1, 0, 1):
            raise TrustGraphError.validation(
                f"Sign must be -1, 0 or 1, got {sign!r}", sign=sign
            )
        self.identities.require_own_identity(owner)
        scores = sorted(
            self.store.scores_with_sign(owner, sign),
            key=lambda s: (-s.score, s.target),
        )
        return [self.identities.require_identity(s.target) for s in scores]

    # -- Maintenance --------------------------------------------------------

    def flush(self, timeout: float | None = None) -> list[RecomputeResult]:
        """Bring every tree up to date.

        Without a background worker the pending passes run here and their
        results are returned. With one, this waits for the worker to go
        idle and returns an empty list.

        Raises:
            TrustGraphError: UPSTREAM if the store failed during a pass.
        """
        if not self.scheduler.is_running:
            if self.scheduler.failure is not None:
                raise self.scheduler.failure
            return self.scheduler.process_pending()
        self.scheduler.wait_until_idle(timeout)
        if self.scheduler.failure is not None:
            raise self.scheduler.failure
        return []

    def check_integrity(self) -> list[str]:
        return self.store.check_integrity()

    def verify_scores(self) -> list[str]:
        """Return the own identities whose stored tree differs from a fresh one."""
        return [
            owner.id
            for owner in self.store.own_identities()
            if not self.engine.verify(owner.id)
        ]
