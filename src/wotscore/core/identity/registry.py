"""Identity registry: validated CRUD for identities over the store.

Every mutating method runs inside a store transaction (joining the
caller's transaction when there is one), validates its input before any
write, and stores a new immutable row.

Identities come into existence in two ways: explicitly (``add_identity``,
``create_own_identity``) or on first reference by a trust edge
(``ensure_identity``). An identity that is neither registered, nor own,
nor referenced by any edge or score row is an orphan and gets collected.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable

from wotscore.core.identity.models import (
    MAX_CONTEXT_AMOUNT,
    MAX_PROPERTY_AMOUNT,
    Identity,
    validate_context,
    validate_identity_id,
    validate_nickname,
    validate_property_name,
    validate_property_value,
)
from wotscore.exceptions import TrustGraphError

if TYPE_CHECKING:
    from wotscore.core.store import TrustGraphStore
    from wotscore.core.trust.models import Trust

logger = logging.getLogger(__name__)


class IdentityRegistry:
    """Identity nodes and their mutable attributes.

    Args:
        store: The backing trust graph store.
    """

    def __init__(self, store: TrustGraphStore) -> None:
        self._store = store

    # -- Lookup -------------------------------------------------------------

    def get_identity(self, identity_id: str) -> Identity | None:
        return self._store.get_identity(identity_id)

    def require_identity(self, identity_id: str) -> Identity:
        """Return the identity or raise NOT_FOUND."""
        identity = self._store.get_identity(identity_id)
        if identity is None:
            raise TrustGraphError.not_found(
                f"Unknown identity {identity_id!r}", identity=identity_id
            )
        return identity

    def require_own_identity(self, identity_id: str) -> Identity:
        """Return the own identity or raise NOT_FOUND / VALIDATION."""
        identity = self.require_identity(identity_id)
        if not identity.own:
            raise TrustGraphError.validation(
                f"Identity {identity_id!r} is not an own identity",
                identity=identity_id,
            )
        return identity

    def get_own_identities(self) -> list[Identity]:
        return self._store.own_identities()

    def get_all_identities(self) -> list[Identity]:
        return self._store.all_identities()

    def identities_with_context(self, context: str) -> list[Identity]:
        return self._store.identities_with_context(context)

    # -- Creation -----------------------------------------------------------

    def add_identity(self, identity_id: str, nickname: str | None = None) -> Identity:
        """Register an identity explicitly.

        Registering an identity that already exists keeps its attributes
        and only marks it as registered (and sets the nickname if given).
        """
        validate_identity_id(identity_id)
        if nickname is not None:
            validate_nickname(nickname)
        with self._store.transaction():
            existing = self._store.get_identity(identity_id)
            if existing is None:
                identity = Identity(identity_id, nickname=nickname, registered=True)
            else:
                identity = replace(
                    existing,
                    registered=True,
                    nickname=nickname if nickname is not None else existing.nickname,
                )
            if identity != existing:
                self._store.put_identity(identity)
        return identity

    def create_own_identity(self, identity_id: str, nickname: str | None = None) -> Identity:
        """Create an OwnIdentity, or promote an existing identity to one.

        Promoting keeps the identity's edges, contexts and properties.
        """
        validate_identity_id(identity_id)
        if nickname is not None:
            validate_nickname(nickname)
        with self._store.transaction():
            existing = self._store.get_identity(identity_id)
            if existing is None:
                identity = Identity(identity_id, nickname=nickname, own=True, registered=True)
            else:
                identity = replace(
                    existing,
                    own=True,
                    registered=True,
                    nickname=nickname if nickname is not None else existing.nickname,
                )
            if identity != existing:
                self._store.put_identity(identity)
        logger.debug("Own identity %s is ready", identity_id)
        return identity

    def demote_own_identity(self, identity_id: str) -> Identity:
        """Turn an own identity back into a plain registered identity.

        Its edges, contexts, properties and edition are kept. The score
        rows of its tree are deleted.
        """
        with self._store.transaction():
            identity = replace(self.require_own_identity(identity_id), own=False)
            for score in self._store.scores_of_owner(identity_id):
                self._store.delete_score(score.owner, score.target)
            self._store.put_identity(identity)
        logger.debug("Identity %s is no longer an own identity", identity_id)
        return identity

    def ensure_identity(self, identity_id: str) -> Identity:
        """Return the identity, creating an unregistered one on first reference."""
        validate_identity_id(identity_id)
        with self._store.transaction():
            existing = self._store.get_identity(identity_id)
            if existing is not None:
                return existing
            identity = Identity(identity_id)
            self._store.put_identity(identity)
            return identity

    # -- Attributes ---------------------------------------------------------

    def _update(self, identity_id: str, **changes: object) -> Identity:
        with self._store.transaction():
            identity = replace(self.require_identity(identity_id), **changes)
            self._store.put_identity(identity)
            return identity

    def set_nickname(self, identity_id: str, nickname: str) -> Identity:
        validate_nickname(nickname)
        return self._update(identity_id, nickname=nickname)

    def set_edition(self, identity_id: str, edition: int) -> Identity:
        """Record the last applied trust list edition. Editions never go down."""
        with self._store.transaction():
            identity = self.require_identity(identity_id)
            if identity.edition is not None and edition < identity.edition:
                raise TrustGraphError.validation(
                    "The edition of an identity cannot be lowered",
                    identity=identity_id,
                    edition=edition,
                    current=identity.edition,
                )
            return self._update(identity_id, edition=edition)

    def add_context(self, identity_id: str, context: str) -> Identity:
        context = validate_context(context)
        with self._store.transaction():
            identity = self.require_identity(identity_id)
            if identity.has_context(context):
                return identity
            if len(identity.contexts) >= MAX_CONTEXT_AMOUNT:
                raise TrustGraphError.validation(
                    f"An identity may not have more than {MAX_CONTEXT_AMOUNT} contexts",
                    identity=identity_id,
                )
            return self._update(identity_id, contexts=identity.contexts | {context})

    def remove_context(self, identity_id: str, context: str) -> Identity:
        """Remove a context. Raises NOT_FOUND if the identity does not have it."""
        context = context.strip()
        with self._store.transaction():
            identity = self.require_identity(identity_id)
            if not identity.has_context(context):
                raise TrustGraphError.not_found(
                    f"Identity {identity_id!r} does not have context {context!r}",
                    identity=identity_id,
                    context=context,
                )
            return self._update(identity_id, contexts=identity.contexts - {context})

    def has_context(self, identity_id: str, context: str) -> bool:
        return self.require_identity(identity_id).has_context(context)

    def set_property(self, identity_id: str, name: str, value: str) -> Identity:
        name = validate_property_name(name)
        value = validate_property_value(value)
        with self._store.transaction():
            identity = self.require_identity(identity_id)
            if identity.properties.get(name) == value:
                return identity
            if name not in identity.properties and len(identity.properties) >= MAX_PROPERTY_AMOUNT:
                raise TrustGraphError.validation(
                    f"An identity may not have more than {MAX_PROPERTY_AMOUNT} properties",
                    identity=identity_id,
                )
            properties = dict(identity.properties)
            properties[name] = value
            return self._update(identity_id, properties=properties)

    def get_property(self, identity_id: str, name: str) -> str | None:
        """Return the property value, or None if the property is not set."""
        return self.require_identity(identity_id).properties.get(name.strip())

    def remove_property(self, identity_id: str, name: str) -> Identity:
        """Remove a property. Raises NOT_FOUND if it is not set."""
        name = name.strip()
        with self._store.transaction():
            identity = self.require_identity(identity_id)
            if name not in identity.properties:
                raise TrustGraphError.not_found(
                    f"The property {name!r} isn't set on this identity",
                    identity=identity_id,
                    name=name,
                )
            properties = dict(identity.properties)
            del properties[name]
            return self._update(identity_id, properties=properties)

    # -- Deletion -----------------------------------------------------------

    def delete_identity(self, identity_id: str) -> list[Trust]:
        """Delete an identity with all its edges and score rows.

        Returns:
            The removed trust edges, inbound and outbound, ordered by key.
            The caller reports them to the scheduler as removals and
            schedules full passes for trees that contained the identity.
        """
        with self._store.transaction():
            self.require_identity(identity_id)
            removed = self._store.given_trusts(identity_id)
            removed += [
                t for t in self._store.received_trusts(identity_id)
                if t.truster != identity_id
            ]
            for trust in removed:
                self._store.delete_trust(trust.truster, trust.trustee)
            for score in self._store.scores_of_owner(identity_id):
                self._store.delete_score(score.owner, score.target)
            for score in self._store.scores_of_target(identity_id):
                self._store.delete_score(score.owner, score.target)
            self._store.delete_identity_row(identity_id)
        logger.debug("Deleted identity %s", identity_id)
        return sorted(removed, key=lambda t: t.key)

    def is_orphan(self, identity: Identity) -> bool:
        return (
            not identity.own
            and not identity.registered
            and not self._store.is_referenced(identity.id)
        )

    def delete_if_orphaned(self, identity_id: str) -> bool:
        """Delete the identity if nothing refers to it any more."""
        with self._store.transaction():
            identity = self._store.get_identity(identity_id)
            if identity is None or not self.is_orphan(identity):
                return False
            self._store.delete_identity_row(identity_id)
        logger.debug("Collected orphaned identity %s", identity_id)
        return True

    def collect_orphans(self, identity_ids: Iterable[str]) -> list[str]:
        """Delete every orphan among ``identity_ids``; return the deleted ids."""
        return [i for i in sorted(set(identity_ids)) if self.delete_if_orphaned(i)]
