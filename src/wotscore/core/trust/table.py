"""Trust table: validated writes of directed trust edges.

Every write returns the ``TrustChange`` values it produced so the caller
can hand them to the recomputation scheduler. A write that leaves an
edge's value as it was produces no change.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from wotscore.core.identity.models import validate_identity_id
from wotscore.core.identity.registry import IdentityRegistry
from wotscore.core.trust.models import (
    Trust,
    TrustChange,
    TrustListEntry,
    TrustListImport,
    validate_trust_comment,
    validate_trust_value,
)
from wotscore.exceptions import TrustGraphError

if TYPE_CHECKING:
    from wotscore.core.store import TrustGraphStore

logger = logging.getLogger(__name__)


class TrustTable:
    """Directed trust edges between identities.

    Args:
        store: The backing trust graph store.
        registry: Identity registry used to resolve and create endpoints.
    """

    def __init__(self, store: TrustGraphStore, registry: IdentityRegistry) -> None:
        self._store = store
        self._registry = registry

    # -- Reads --------------------------------------------------------------

    def get_trust(self, truster: str, trustee: str) -> Trust | None:
        return self._store.get_trust(truster, trustee)

    def given_trusts(self, truster: str) -> list[Trust]:
        return self._store.given_trusts(truster)

    def received_trusts(self, trustee: str) -> list[Trust]:
        return self._store.received_trusts(trustee)

    # -- Local edits --------------------------------------------------------

    def set_trust(
        self,
        truster: str,
        trustee: str,
        value: int,
        comment: str = "",
    ) -> TrustChange | None:
        """Create or replace the edge ``truster -> trustee``.

        The truster must be an own identity. The trustee is created on
        first reference.

        Returns:
            The effective change, or None if the edge already had ``value``
            (a comment-only edit is written but is not a change).

        Raises:
            TrustGraphError: VALIDATION for an out-of-range value, a bad
                comment, self-trust or a truster that is not own;
                NOT_FOUND if the truster does not exist.
        """
        validate_trust_value(value)
        comment = validate_trust_comment(comment)
        validate_identity_id(trustee)
        if truster == trustee:
            raise TrustGraphError.validation(
                "An identity cannot trust itself", identity=truster
            )

        with self._store.transaction():
            owner = self._registry.require_own_identity(truster)
            self._registry.ensure_identity(trustee)
            existing = self._store.get_trust(truster, trustee)
            trust = Trust(truster, trustee, value, comment, owner.edition)
            if trust != existing:
                self._store.put_trust(trust)

        old_value = existing.value if existing is not None else None
        if old_value == value:
            return None
        return TrustChange(truster, trustee, old_value, value)

    def remove_trust(self, truster: str, trustee: str) -> TrustChange | None:
        """Delete the edge ``truster -> trustee``.

        Returns:
            The change, or None if there was no such edge.
        """
        with self._store.transaction():
            self._registry.require_own_identity(truster)
            existing = self._store.get_trust(truster, trustee)
            if existing is None:
                return None
            self._store.delete_trust(truster, trustee)
            self._registry.delete_if_orphaned(trustee)
        return TrustChange(truster, trustee, existing.value, None)

    # -- Remote lists -------------------------------------------------------

    def _validate_entries(
        self, truster: str, entries: Iterable[TrustListEntry]
    ) -> list[TrustListEntry]:
        validated: list[TrustListEntry] = []
        seen: set[str] = set()
        for entry in entries:
            validate_identity_id(entry.trustee)
            validate_trust_value(entry.value)
            comment = validate_trust_comment(entry.comment)
            if entry.trustee == truster:
                raise TrustGraphError.validation(
                    "A trust list cannot contain its own publisher",
                    identity=truster,
                )
            if entry.trustee in seen:
                raise TrustGraphError.validation(
                    f"Duplicate trustee {entry.trustee!r} in trust list",
                    identity=truster,
                    trustee=entry.trustee,
                )
            seen.add(entry.trustee)
            validated.append(TrustListEntry(entry.trustee, entry.value, comment))
        return validated

    def apply_remote_trust_list(
        self,
        truster: str,
        entries: Iterable[TrustListEntry],
        edition: int,
    ) -> TrustListImport:
        """Replace every edge given by ``truster`` with a published list.

        The list is applied only if ``edition`` is newer than the last
        applied edition of the truster; otherwise nothing is written and
        the result is not accepted. All entries are validated before the
        first write, so an invalid list leaves the table untouched.

        Raises:
            TrustGraphError: VALIDATION for invalid entries or when the
                truster is an own identity.
        """
        validate_identity_id(truster)
        if isinstance(edition, bool) or not isinstance(edition, int) or edition < 0:
            raise TrustGraphError.validation(
                f"Edition must be a non-negative integer, got {edition!r}",
                identity=truster,
            )
        validated = self._validate_entries(truster, entries)

        with self._store.transaction():
            identity = self._registry.ensure_identity(truster)
            if identity.own:
                raise TrustGraphError.validation(
                    "Trust lists of own identities are maintained locally",
                    identity=truster,
                )
            if identity.edition is not None and edition <= identity.edition:
                logger.debug(
                    "Ignoring stale trust list of %s (edition %d, have %d)",
                    truster, edition, identity.edition,
                )
                return TrustListImport(truster, edition, accepted=False)

            self._registry.set_edition(truster, edition)
            previous = {t.trustee: t for t in self._store.given_trusts(truster)}
            changes: list[TrustChange] = []

            for entry in validated:
                self._registry.ensure_identity(entry.trustee)
                old = previous.pop(entry.trustee, None)
                self._store.put_trust(
                    Trust(truster, entry.trustee, entry.value, entry.comment, edition)
                )
                old_value = old.value if old is not None else None
                if old_value != entry.value:
                    changes.append(
                        TrustChange(truster, entry.trustee, old_value, entry.value)
                    )

            for trustee, old in sorted(previous.items()):
                self._store.delete_trust(truster, trustee)
                changes.append(TrustChange(truster, trustee, old.value, None))

            self._registry.collect_orphans(previous)

        logger.debug(
            "Applied trust list of %s edition %d: %d change(s)",
            truster, edition, len(changes),
        )
        return TrustListImport(truster, edition, accepted=True, changes=changes)
