"""Recomputation scheduler: decides when and which trees get recomputed.

Trust mutations mark tree owners dirty. Requests are kept per owner in
enqueue order and merged while they wait: a full request absorbs
everything, change requests coalesce per edge (first old value, latest
new value) and drop edges whose value ended up unchanged.

Each request is popped while holding the store write lock and processed
in that same transaction, so a pass always starts from the tree exactly
as the pending changes left it. Marks made inside a mutation transaction
are only queued once it commits.

Passes run either synchronously (``process_pending``) or on a background
daemon thread that waits a coalescing delay before draining the queue.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from wotscore.config import ScoreConfig
from wotscore.core.identity.registry import IdentityRegistry
from wotscore.core.score.engine import ScoreEngine
from wotscore.core.score.models import RecomputeResult
from wotscore.core.trust.models import TrustChange
from wotscore.exceptions import ErrorKind, TrustGraphError

if TYPE_CHECKING:
    from wotscore.core.store import TrustGraphStore

logger = logging.getLogger(__name__)


@dataclass
class RecomputeRequest:
    """Pending work for one tree owner."""

    owner: str
    full: bool = False
    changes: dict[tuple[str, str], TrustChange] = field(default_factory=dict)

    def merge(self, full: bool, changes: Iterable[TrustChange]) -> None:
        """Fold a newer request for the same owner into this one."""
        if self.full or full:
            self.full = True
            self.changes.clear()
            return
        for change in changes:
            earlier = self.changes.get(change.key)
            merged = earlier.merged_with(change) if earlier else change
            if merged.is_effective:
                self.changes[change.key] = merged
            else:
                self.changes.pop(change.key, None)

    @property
    def is_empty(self) -> bool:
        return not self.full and not self.changes


class RecomputationScheduler:
    """Queue of dirty tree owners and the worker that drains it.

    Args:
        store: The backing trust graph store.
        engine: Engine running the passes.
        registry: Registry used for orphan collection after a pass.
        config: Coalescing delay and dirty-owner policy.
    """

    def __init__(
        self,
        store: TrustGraphStore,
        engine: ScoreEngine,
        registry: IdentityRegistry,
        config: ScoreConfig | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._registry = registry
        self._config = config or engine.config
        self._pending: OrderedDict[str, RecomputeRequest] = OrderedDict()
        self._cond = threading.Condition()
        self._active = 0
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self._failure: TrustGraphError | None = None

    # -- Enqueueing ---------------------------------------------------------

    def _enqueue(self, owner: str, full: bool, changes: Iterable[TrustChange] = ()) -> None:
        with self._cond:
            request = self._pending.get(owner)
            if request is None:
                request = RecomputeRequest(owner)
                request.merge(full, changes)
                if request.is_empty:
                    return
                self._pending[owner] = request
            else:
                request.merge(full, changes)
                if request.is_empty:
                    del self._pending[owner]
            self._cond.notify_all()

    def _schedule(self, owner: str, full: bool, changes: list[TrustChange]) -> None:
        if self._store.in_transaction:
            self._store.call_on_commit(lambda: self._enqueue(owner, full, changes))
        else:
            self._enqueue(owner, full, changes)

    def mark_dirty(
        self, owners: Iterable[str], changes: Iterable[TrustChange] | None = None
    ) -> None:
        """Queue ``owners`` for recomputation.

        Args:
            owners: Tree owners to recompute.
            changes: Edge changes that made them dirty. None requests a
                full recompute.
        """
        change_list = list(changes) if changes is not None else []
        for owner in owners:
            self._schedule(owner, changes is None, change_list)

    def request_full(self, owner: str) -> None:
        self._schedule(owner, True, [])

    def dirty_owners(self, truster: str) -> list[str]:
        """Tree owners whose scores may depend on edges given by ``truster``.

        Those are the owners whose tree contains the truster, plus the
        truster itself when it is an own identity.
        """
        if not self._config.restrict_dirty_owners:
            return [i.id for i in self._store.own_identities()]
        owners = {s.owner for s in self._store.scores_of_target(truster)}
        identity = self._store.get_identity(truster)
        if identity is not None and identity.own:
            owners.add(truster)
        return sorted(owners)

    def notify_changes(self, changes: Iterable[TrustChange]) -> None:
        """Mark dirty every owner affected by ``changes``, grouped by truster."""
        by_truster: dict[str, list[TrustChange]] = {}
        for change in changes:
            if change.is_effective:
                by_truster.setdefault(change.truster, []).append(change)
        for truster, group in by_truster.items():
            self.mark_dirty(self.dirty_owners(truster), group)

    def pending_owners(self) -> list[str]:
        with self._cond:
            return list(self._pending)

    def get_pending(self, owner: str) -> RecomputeRequest | None:
        with self._cond:
            return self._pending.get(owner)

    # -- Processing ---------------------------------------------------------

    def _pop(self) -> RecomputeRequest | None:
        with self._cond:
            if not self._pending:
                return None
            _, request = self._pending.popitem(last=False)
            return request

    def _run(self, request: RecomputeRequest) -> RecomputeResult | None:
        identity = self._store.get_identity(request.owner)
        if identity is None or not identity.own:
            logger.debug("Dropping request for %s, no longer a tree owner", request.owner)
            return None
        if request.full:
            result = self._engine.full_recompute(request.owner)
        else:
            result = self._engine.incremental_update(
                request.owner, list(request.changes.values())
            )
        self._registry.collect_orphans(result.deleted)
        return result

    def process_next(self) -> tuple[bool, RecomputeResult | None]:
        """Run one pending request.

        Returns:
            ``(False, None)`` when the queue was empty, otherwise ``(True,
            result)`` where result is None if the request was dropped or
            failed with a consistency error.

        Raises:
            TrustGraphError: UPSTREAM errors of the store. The request is
                put back in the queue.
        """
        request: RecomputeRequest | None = None
        try:
            with self._store.transaction():
                request = self._pop()
                if request is None:
                    return False, None
                return True, self._run(request)
        except TrustGraphError as exc:
            if request is None:
                raise
            if exc.kind is ErrorKind.CONSISTENCY:
                logger.error(
                    "Consistency error in %s pass for %s: %s",
                    "full" if request.full else "incremental", request.owner, exc,
                )
                if not request.full:
                    self._enqueue(request.owner, True)
                return True, None
            if exc.kind is ErrorKind.UPSTREAM:
                self._enqueue(request.owner, request.full, request.changes.values())
            raise

    def process_pending(self) -> list[RecomputeResult]:
        """Drain the queue in the calling thread."""
        results: list[RecomputeResult] = []
        with self._cond:
            self._active += 1
        try:
            while True:
                processed, result = self.process_next()
                if not processed:
                    return results
                if result is not None:
                    results.append(result)
        finally:
            with self._cond:
                self._active -= 1
                self._cond.notify_all()

    # -- Background worker --------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def failure(self) -> TrustGraphError | None:
        """The upstream error that stopped the worker, if any."""
        return self._failure

    def start(self) -> None:
        if self.is_running:
            return
        self._stopping.clear()
        self._failure = None
        self._thread = threading.Thread(
            target=self._work, name="wotscore-recompute", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the worker. A pass in progress is finished first."""
        self._stopping.set()
        with self._cond:
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until the queue is empty and no pass is running."""
        with self._cond:
            return self._cond.wait_for(
                lambda: (not self._pending and not self._active)
                or (self._failure is not None),
                timeout,
            )

    def _work(self) -> None:
        while not self._stopping.is_set():
            with self._cond:
                self._cond.wait_for(
                    lambda: self._pending or self._stopping.is_set()
                )
            if self._stopping.is_set():
                break
            if self._stopping.wait(self._config.coalesce_delay):
                break
            try:
                self.process_pending()
            except TrustGraphError as exc:
                if exc.kind is not ErrorKind.UPSTREAM:
                    logger.exception("Recomputation failed")
                    continue
                logger.error("Recomputation worker stopped: %s", exc)
                with self._cond:
                    self._failure = exc
                    self._cond.notify_all()
                break
            except Exception:
                logger.exception("Recomputation failed")
