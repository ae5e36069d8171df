"""Transactional row store for identities, trust edges and scores.

``TrustGraphStore`` keeps the three entity kinds as immutable rows in
in-memory tables keyed by identity id or ordered id pair, with secondary
indices for the enumerations the rest of the system needs:

- identities: own identities, context membership
- trusts: given (per truster), received (per trustee), value sign
- scores: rows per tree owner, rows per target

Writes happen only inside ``transaction()``. Every row write is journaled;
if the transaction body raises, the journal is replayed backwards so no
partial write survives. Readers use a shared lock, so they observe the
state before or after a whole transaction, never in between.

When constructed with a path the store is persisted as a JSON document.
The file is rewritten atomically after every commit that changed rows,
and re-validated by the integrity check when the store is opened.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

from wotscore.core.identity.models import Identity
from wotscore.core.score.models import Score
from wotscore.core.store.rwlock import ReadWriteLock
from wotscore.core.trust.models import Trust
from wotscore.exceptions import TrustGraphError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_IDENTITIES = "identities"
_TRUSTS = "trusts"
_SCORES = "scores"


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _add(index: dict[Any, set[Any]], key: Any, member: Any) -> None:
    index.setdefault(key, set()).add(member)


def _discard(index: dict[Any, set[Any]], key: Any, member: Any) -> None:
    members = index.get(key)
    if members is None:
        return
    members.discard(member)
    if not members:
        del index[key]


class TrustGraphStore:
    """In-memory, optionally file-backed store of the trust graph.

    Example::

        store = TrustGraphStore(Path("wot.json"))
        store.open()
        with store.transaction():
            store.put_identity(Identity("alice", own=True))
        store.get_identity("alice")
        store.close()

    Args:
        path: JSON file backing the store, or None for a memory-only store.
    """

    FORMAT_VERSION: int = 1

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = ReadWriteLock()
        self._is_open = False
        self._journal: list[tuple[str, Any, Any]] | None = None
        self._on_commit: list[Callable[[], None]] = []
        self._load_problems: list[str] = []
        self._reset()

    def _reset(self) -> None:
        self._tables: dict[str, dict[Any, Any]] = {
            _IDENTITIES: {},
            _TRUSTS: {},
            _SCORES: {},
        }
        self._own_ids: set[str] = set()
        self._context_index: dict[str, set[str]] = {}
        self._given: dict[str, set[str]] = {}
        self._received: dict[str, set[str]] = {}
        self._trusts_by_sign: dict[int, set[tuple[str, str]]] = {}
        self._scores_by_owner: dict[str, set[str]] = {}
        self._scores_by_target: dict[str, set[str]] = {}

    # -- Lifecycle ----------------------------------------------------------

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        """Load the backing file (if any) and run the startup integrity check.

        Raises:
            TrustGraphError: UPSTREAM if the file cannot be read,
                CONSISTENCY if the stored rows violate the store invariants.
                The store stays closed in both cases.
        """
        with self._lock.write():
            if self._is_open:
                return
            self._reset()
            self._load_problems = []
            if self._path is not None and self._path.exists():
                self._load_file(self._path)
            problems = self._check_integrity_unlocked()
            if problems:
                logger.error(
                    "Store %s failed the integrity check with %d problem(s)",
                    self._path or "<memory>", len(problems),
                )
                for problem in problems:
                    logger.error("Integrity problem: %s", problem)
                raise TrustGraphError.consistency(
                    "Trust graph store failed the startup integrity check",
                    problems=problems,
                    path=str(self._path) if self._path else None,
                )
            self._is_open = True
            logger.debug(
                "Opened store %s: %d identities, %d trusts, %d scores",
                self._path or "<memory>",
                len(self._tables[_IDENTITIES]),
                len(self._tables[_TRUSTS]),
                len(self._tables[_SCORES]),
            )

    def close(self) -> None:
        with self._lock.write():
            self._is_open = False

    def _check_open(self) -> None:
        if not self._is_open:
            raise TrustGraphError.upstream(
                "Trust graph store is closed",
                path=str(self._path) if self._path else None,
            )

    # -- Transactions -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[TrustGraphStore]:
        """Run the body as one atomic write transaction.

        A nested call on the thread that already holds the transaction
        joins the outer one. On any exception all writes of the
        transaction are undone and the exception is re-raised.
        """
        self._check_open()
        if self._lock.held_for_writing():
            yield self
            return

        with self._lock.write():
            self._check_open()
            self._journal = []
            self._on_commit = []
            try:
                yield self
                if self._journal and self._path is not None:
                    self._persist(self._path)
            except BaseException:
                self._rollback()
                raise
            else:
                for callback in self._on_commit:
                    callback()
            finally:
                self._journal = None
                self._on_commit = []

    @property
    def in_transaction(self) -> bool:
        return self._lock.held_for_writing()

    def call_on_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once the current transaction has committed.

        Callbacks run in registration order while the write lock is still
        held. They are discarded if the transaction rolls back.
        """
        self._require_transaction()
        self._on_commit.append(callback)

    def _require_transaction(self) -> None:
        if self._journal is None or not self._lock.held_for_writing():
            raise RuntimeError("Store writes must happen inside store.transaction()")

    def _rollback(self) -> None:
        journal = self._journal or []
        if journal:
            logger.debug("Rolling back %d row write(s)", len(journal))
        for table, key, old in reversed(journal):
            current = self._tables[table].get(key)
            self._apply(table, key, current, old)

    # -- Row writes ---------------------------------------------------------

    def _write(self, table: str, key: Any, row: Any) -> None:
        self._require_transaction()
        old = self._tables[table].get(key)
        if old is None and row is None:
            return
        self._journal.append((table, key, old))  # type: ignore[union-attr]
        self._apply(table, key, old, row)

    def _apply(self, table: str, key: Any, old: Any, new: Any) -> None:
        rows = self._tables[table]
        if old is not None:
            self._unindex(table, key, old)
        if new is None:
            rows.pop(key, None)
        else:
            rows[key] = new
            self._index(table, key, new)

    def _index(self, table: str, key: Any, row: Any) -> None:
        if table == _IDENTITIES:
            if row.own:
                self._own_ids.add(key)
            for context in row.contexts:
                _add(self._context_index, context, key)
        elif table == _TRUSTS:
            _add(self._given, row.truster, row.trustee)
            _add(self._received, row.trustee, row.truster)
            _add(self._trusts_by_sign, _sign(row.value), key)
        else:
            _add(self._scores_by_owner, row.owner, row.target)
            _add(self._scores_by_target, row.target, row.owner)

    def _unindex(self, table: str, key: Any, row: Any) -> None:
        if table == _IDENTITIES:
            self._own_ids.discard(key)
            for context in row.contexts:
                _discard(self._context_index, context, key)
        elif table == _TRUSTS:
            _discard(self._given, row.truster, row.trustee)
            _discard(self._received, row.trustee, row.truster)
            _discard(self._trusts_by_sign, _sign(row.value), key)
        else:
            _discard(self._scores_by_owner, row.owner, row.target)
            _discard(self._scores_by_target, row.target, row.owner)

    def put_identity(self, identity: Identity) -> None:
        self._write(_IDENTITIES, identity.id, identity)

    def delete_identity_row(self, identity_id: str) -> None:
        """Remove the identity row only; edges and scores are the caller's job."""
        self._write(_IDENTITIES, identity_id, None)

    def put_trust(self, trust: Trust) -> None:
        self._write(_TRUSTS, trust.key, trust)

    def delete_trust(self, truster: str, trustee: str) -> None:
        self._write(_TRUSTS, (truster, trustee), None)

    def put_score(self, score: Score) -> None:
        self._write(_SCORES, score.key, score)

    def delete_score(self, owner: str, target: str) -> None:
        self._write(_SCORES, (owner, target), None)

    # -- Reads --------------------------------------------------------------

    def _read(self, fn: Callable[[], T]) -> T:
        self._check_open()
        with self._lock.read():
            return fn()

    def get_identity(self, identity_id: str) -> Identity | None:
        return self._read(lambda: self._tables[_IDENTITIES].get(identity_id))

    def all_identities(self) -> list[Identity]:
        rows = self._tables[_IDENTITIES]
        return self._read(lambda: [rows[k] for k in sorted(rows)])

    def own_identities(self) -> list[Identity]:
        rows = self._tables[_IDENTITIES]
        return self._read(lambda: [rows[k] for k in sorted(self._own_ids)])

    def identities_with_context(self, context: str) -> list[Identity]:
        rows = self._tables[_IDENTITIES]
        return self._read(
            lambda: [rows[k] for k in sorted(self._context_index.get(context, ()))]
        )

    def get_trust(self, truster: str, trustee: str) -> Trust | None:
        return self._read(lambda: self._tables[_TRUSTS].get((truster, trustee)))

    def given_trusts(self, truster: str) -> list[Trust]:
        """Return every edge ``truster -> *``, ordered by trustee id."""
        rows = self._tables[_TRUSTS]
        return self._read(
            lambda: [rows[(truster, t)] for t in sorted(self._given.get(truster, ()))]
        )

    def received_trusts(self, trustee: str) -> list[Trust]:
        """Return every edge ``* -> trustee``, ordered by truster id."""
        rows = self._tables[_TRUSTS]
        return self._read(
            lambda: [rows[(t, trustee)] for t in sorted(self._received.get(trustee, ()))]
        )

    def trusts_with_sign(self, sign: int) -> list[Trust]:
        """Return every edge whose value has the given sign (-1, 0 or 1)."""
        rows = self._tables[_TRUSTS]
        return self._read(
            lambda: [rows[k] for k in sorted(self._trusts_by_sign.get(sign, ()))]
        )

    def all_trusts(self) -> list[Trust]:
        rows = self._tables[_TRUSTS]
        return self._read(lambda: [rows[k] for k in sorted(rows)])

    def get_score(self, owner: str, target: str) -> Score | None:
        return self._read(lambda: self._tables[_SCORES].get((owner, target)))

    def scores_of_owner(self, owner: str) -> list[Score]:
        """Return every score row of ``owner``'s tree, ordered by target id."""
        rows = self._tables[_SCORES]
        return self._read(
            lambda: [rows[(owner, t)] for t in sorted(self._scores_by_owner.get(owner, ()))]
        )

    def scores_of_target(self, target: str) -> list[Score]:
        """Return the score rows of ``target`` in every tree, ordered by owner id."""
        rows = self._tables[_SCORES]
        return self._read(
            lambda: [rows[(o, target)] for o in sorted(self._scores_by_target.get(target, ()))]
        )

    def scores_with_sign(self, owner: str, sign: int) -> list[Score]:
        """Return ``owner``'s score rows whose value has the given sign."""
        return [s for s in self.scores_of_owner(owner) if s.sign == sign]

    def all_scores(self) -> list[Score]:
        rows = self._tables[_SCORES]
        return self._read(lambda: [rows[k] for k in sorted(rows)])

    def is_referenced(self, identity_id: str) -> bool:
        """Return True if any trust edge or score row mentions the identity."""
        return self._read(
            lambda: identity_id in self._given
            or identity_id in self._received
            or identity_id in self._scores_by_owner
            or identity_id in self._scores_by_target
        )

    def counts(self) -> dict[str, int]:
        return self._read(
            lambda: {name: len(rows) for name, rows in self._tables.items()}
        )

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize every row. Output is deterministic (rows sorted by key)."""
        def build() -> dict[str, Any]:
            return {
                "format_version": self.FORMAT_VERSION,
                _IDENTITIES: [
                    row.to_dict() for _, row in sorted(self._tables[_IDENTITIES].items())
                ],
                _TRUSTS: [
                    row.to_dict() for _, row in sorted(self._tables[_TRUSTS].items())
                ],
                _SCORES: [
                    row.to_dict() for _, row in sorted(self._tables[_SCORES].items())
                ],
            }
        return self._read(build) if self._is_open else build()

    def _persist(self, path: Path) -> None:
        text = json.dumps(self.to_dict(), indent=2, sort_keys=True)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise TrustGraphError.upstream(
                f"Could not write trust graph store {path}: {exc}",
                path=str(path),
            ) from exc

    def _load_file(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise TrustGraphError.upstream(
                f"Could not read trust graph store {path}: {exc}", path=str(path)
            ) from exc
        except json.JSONDecodeError as exc:
            raise TrustGraphError.consistency(
                f"Trust graph store {path} is not valid JSON: {exc}",
                path=str(path),
            ) from exc
        self._load_rows(data)

    def _load_rows(self, data: dict[str, Any]) -> None:
        """Insert serialized rows, recording duplicates as load problems."""
        loaders: list[tuple[str, Callable[[dict[str, Any]], Any], Callable[[Any], Any]]] = [
            (_IDENTITIES, Identity.from_dict, lambda row: row.id),
            (_TRUSTS, Trust.from_dict, lambda row: row.key),
            (_SCORES, Score.from_dict, lambda row: row.key),
        ]
        for table, from_dict, key_of in loaders:
            for raw in data.get(table, []):
                try:
                    row = from_dict(raw)
                except (KeyError, TypeError, ValueError) as exc:
                    self._load_problems.append(f"Malformed {table} row {raw!r}: {exc}")
                    continue
                key = key_of(row)
                if key in self._tables[table]:
                    self._load_problems.append(f"Duplicate {table} row for {key!r}")
                    continue
                self._apply(table, key, None, row)
