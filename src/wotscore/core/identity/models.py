"""Identity data model and attribute validation.

An ``Identity`` is a pseudonymous participant of the web of trust, named by
a stable id derived from its public key. An identity with ``own=True`` is an
OwnIdentity: it is controlled locally and is the root (tree owner) of its
own trust tree.

Rows are immutable. Mutating operations in the registry build a new row
with ``dataclasses.replace`` and store it.

Attribute limits follow the Freenet Web of Trust plugin so that identities
imported from that network validate the same way.
"""

from __future__ import annotations

import base64
import hashlib
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Mapping

from wotscore.exceptions import TrustGraphError

MAX_NICKNAME_LENGTH: int = 30
MAX_CONTEXT_NAME_LENGTH: int = 32
MAX_CONTEXT_AMOUNT: int = 32
MAX_PROPERTY_NAME_LENGTH: int = 256
MAX_PROPERTY_VALUE_LENGTH: int = 10 * 1024
MAX_PROPERTY_AMOUNT: int = 64

_LATIN_ALNUM_RE = re.compile(r"^[A-Za-z0-9]+$")


def identity_id_from_public_key(public_key: bytes) -> str:
    """Derive the identity id for a public key.

    The id is the SHA-256 digest of the key, URL-safe base64 encoded
    without padding (43 characters).
    """
    digest = hashlib.sha256(public_key).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def _has_forbidden_characters(text: str) -> bool:
    for char in text:
        category = unicodedata.category(char)
        # Control, formatting, line/paragraph separators, surrogates, unassigned.
        if category in ("Cc", "Cf", "Zl", "Zp", "Cs", "Co", "Cn"):
            return True
    return False


def validate_identity_id(identity_id: str) -> str:
    """Return the id unchanged, or raise VALIDATION if it is malformed."""
    if not isinstance(identity_id, str) or not identity_id.strip():
        raise TrustGraphError.validation("Identity id must be a non-blank string")
    if identity_id != identity_id.strip() or "@" in identity_id:
        raise TrustGraphError.validation(
            f"Identity id {identity_id!r} must not contain '@' or surrounding whitespace",
            identity=identity_id,
        )
    if _has_forbidden_characters(identity_id):
        raise TrustGraphError.validation(
            f"Identity id {identity_id!r} contains control characters",
            identity=identity_id,
        )
    return identity_id


def validate_nickname(nickname: str) -> str:
    """Return the nickname, or raise VALIDATION if it is not acceptable."""
    if not nickname:
        raise TrustGraphError.validation("Nickname cannot be empty")
    if len(nickname) > MAX_NICKNAME_LENGTH:
        raise TrustGraphError.validation(
            f"Nickname is too long, the limit is {MAX_NICKNAME_LENGTH} characters",
            length=len(nickname),
        )
    # '@' is reserved for the "nickname@id" display form.
    if "@" in nickname or _has_forbidden_characters(nickname):
        raise TrustGraphError.validation(
            "Nickname contains invalid characters", nickname=nickname
        )
    return nickname


def validate_context(context: str) -> str:
    """Return the trimmed context name, or raise VALIDATION."""
    context = context.strip()
    if not context:
        raise TrustGraphError.validation("A blank context cannot be added to an identity")
    if len(context) > MAX_CONTEXT_NAME_LENGTH:
        raise TrustGraphError.validation(
            f"Context names must not be longer than {MAX_CONTEXT_NAME_LENGTH} characters",
            context=context,
        )
    if not _LATIN_ALNUM_RE.match(context):
        raise TrustGraphError.validation(
            "Context names must be latin letters and numbers only", context=context
        )
    return context


def validate_property_name(name: str) -> str:
    """Return the trimmed property name, or raise VALIDATION.

    Names are dot-separated tokens of latin letters and digits.
    """
    name = name.strip()
    if not name:
        raise TrustGraphError.validation("Property names must not be empty")
    if len(name) > MAX_PROPERTY_NAME_LENGTH:
        raise TrustGraphError.validation(
            f"Property names must not be longer than {MAX_PROPERTY_NAME_LENGTH} characters",
            name=name,
        )
    for token in name.split("."):
        if not token:
            raise TrustGraphError.validation(
                "Property names which contain periods must have at least one "
                "character before and after each period",
                name=name,
            )
        if not _LATIN_ALNUM_RE.match(token):
            raise TrustGraphError.validation(
                "Property names must contain only latin letters, numbers and periods",
                name=name,
            )
    return name


def validate_property_value(value: str) -> str:
    if not value:
        raise TrustGraphError.validation("Property values must not be empty")
    if len(value) > MAX_PROPERTY_VALUE_LENGTH:
        raise TrustGraphError.validation(
            f"Property values must not be longer than {MAX_PROPERTY_VALUE_LENGTH} characters",
            length=len(value),
        )
    return value


@dataclass(frozen=True)
class Identity:
    """A node of the trust graph.

    Attributes:
        id: Stable identifier derived from the identity's public key.
        nickname: Display name chosen by the identity, if known.
        contexts: Application contexts the identity participates in.
        properties: Free-form named properties.
        edition: Edition of the last trust list applied for this identity,
            or None if no list was applied yet.
        own: True for an OwnIdentity (a tree owner).
        registered: True if the identity was added explicitly rather than
            only referenced by a trust edge.
    """

    id: str
    nickname: str | None = None
    contexts: frozenset[str] = frozenset()
    properties: Mapping[str, str] = field(default_factory=dict)
    edition: int | None = None
    own: bool = False
    registered: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "contexts", frozenset(self.contexts))
        object.__setattr__(self, "properties", dict(self.properties))

    def __hash__(self) -> int:
        return hash(self.id)

    def has_context(self, context: str) -> bool:
        return context in self.contexts

    @property
    def display_name(self) -> str:
        """Return ``nickname@id``, or just the id if the nickname is unknown."""
        if self.nickname:
            return f"{self.nickname}@{self.id}"
        return self.id

    def to_dict(self) -> dict[str, Any]:
        """Serialize deterministically (sorted contexts and properties)."""
        return {
            "id": self.id,
            "nickname": self.nickname,
            "contexts": sorted(self.contexts),
            "properties": dict(sorted(self.properties.items())),
            "edition": self.edition,
            "own": self.own,
            "registered": self.registered,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Identity:
        return cls(
            id=data["id"],
            nickname=data.get("nickname"),
            contexts=frozenset(data.get("contexts", [])),
            properties=dict(data.get("properties", {})),
            edition=data.get("edition"),
            own=bool(data.get("own", False)),
            registered=bool(data.get("registered", False)),
        )
