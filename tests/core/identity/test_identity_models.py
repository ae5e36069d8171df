"""Tests for Identity, id derivation and attribute validators."""

from __future__ import annotations

import pytest

from wotscore.core.identity import Identity, identity_id_from_public_key
from wotscore.core.identity.models import (
    MAX_NICKNAME_LENGTH,
    validate_context,
    validate_identity_id,
    validate_nickname,
    validate_property_name,
    validate_property_value,
)
from wotscore.exceptions import ErrorKind, TrustGraphError


class TestIdentityId:
    """Identity ids and their derivation from public keys."""

    def test_id_from_public_key_is_43_urlsafe_chars(self) -> None:
        """SHA-256 in unpadded URL-safe base64 is 43 characters."""
        identity_id = identity_id_from_public_key(b"some public key")
        assert len(identity_id) == 43
        assert "=" not in identity_id
        assert "+" not in identity_id and "/" not in identity_id

    def test_id_from_public_key_is_deterministic(self) -> None:
        assert identity_id_from_public_key(b"k") == identity_id_from_public_key(b"k")
        assert identity_id_from_public_key(b"k") != identity_id_from_public_key(b"j")

    @pytest.mark.parametrize("bad", ["", "   ", "a@b", " padded", "line\nbreak"])
    def test_invalid_ids_are_rejected(self, bad: str) -> None:
        with pytest.raises(TrustGraphError) as exc_info:
            validate_identity_id(bad)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_non_string_id_is_rejected(self) -> None:
        with pytest.raises(TrustGraphError):
            validate_identity_id(42)  # type: ignore[arg-type]


class TestValidators:
    """Nickname, context and property validation."""

    def test_nickname_limits(self) -> None:
        assert validate_nickname("alice") == "alice"
        with pytest.raises(TrustGraphError):
            validate_nickname("x" * (MAX_NICKNAME_LENGTH + 1))
        with pytest.raises(TrustGraphError):
            validate_nickname("al@ice")
        with pytest.raises(TrustGraphError):
            validate_nickname("")

    def test_context_is_trimmed_and_latin_only(self) -> None:
        assert validate_context("  Freetalk ") == "Freetalk"
        with pytest.raises(TrustGraphError):
            validate_context("free talk")
        with pytest.raises(TrustGraphError):
            validate_context("x" * 33)

    def test_property_names_are_dot_separated_tokens(self) -> None:
        assert validate_property_name("IntroductionPuzzle.Type") == "IntroductionPuzzle.Type"
        for bad in ["", ".leading", "trailing.", "double..dot", "sp ace"]:
            with pytest.raises(TrustGraphError):
                validate_property_name(bad)

    def test_property_value_must_not_be_empty(self) -> None:
        assert validate_property_value("v") == "v"
        with pytest.raises(TrustGraphError):
            validate_property_value("")


class TestIdentity:
    """The Identity dataclass."""

    def test_contexts_are_frozen(self) -> None:
        identity = Identity("a", contexts={"X"})  # type: ignore[arg-type]
        assert isinstance(identity.contexts, frozenset)
        assert identity.has_context("X")

    def test_display_name(self) -> None:
        assert Identity("abc").display_name == "abc"
        assert Identity("abc", nickname="alice").display_name == "alice@abc"

    def test_dict_round_trip_preserves_every_field(self) -> None:
        identity = Identity(
            "abc",
            nickname="alice",
            contexts=frozenset({"B", "A"}),
            properties={"k": "v"},
            edition=3,
            own=True,
            registered=True,
        )
        assert Identity.from_dict(identity.to_dict()) == identity

    def test_to_dict_is_deterministic(self) -> None:
        one = Identity("abc", contexts=frozenset({"B", "A", "C"}))
        two = Identity("abc", contexts=frozenset({"C", "A", "B"}))
        assert one.to_dict() == two.to_dict()
        assert one.to_dict()["contexts"] == ["A", "B", "C"]
