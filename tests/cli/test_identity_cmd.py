"""Tests for ``wotscore identity`` commands.

Verifies:
    - Own and remote identities are created and listed.
    - ``show`` reports attributes and scores, exit 2 when unknown.
    - Contexts and properties round through the store file.
    - Invalid input exits with code 2.
"""

from __future__ import annotations

import json
from pathlib import Path


class TestCreate:
    def test_own_identity(self, invoke, store_file: Path) -> None:
        result = invoke("identity", "own", "alice", "--nickname", "Alice")
        assert result.exit_code == 0
        assert "Alice@alice" in result.output
        assert store_file.exists()

        listed = invoke("identity", "list", "--own", "--format", "json")
        assert listed.exit_code == 0
        data = json.loads(listed.output)
        assert [d["id"] for d in data] == ["alice"]
        assert data[0]["own"] is True

    def test_add_remote_identity(self, invoke) -> None:
        assert invoke("identity", "add", "bob").exit_code == 0
        data = json.loads(invoke("identity", "show", "bob", "--format", "json").output)
        assert data["own"] is False
        assert data["registered"] is True
        assert data["scores"] == []

    def test_invalid_nickname(self, invoke) -> None:
        result = invoke("identity", "own", "alice", "--nickname", "a@b")
        assert result.exit_code == 2
        assert "Error" in result.output

    def test_list_empty_store(self, invoke) -> None:
        result = invoke("identity", "list")
        assert result.exit_code == 0
        assert "No identities" in result.output


class TestShow:
    def test_scores_in_every_tree(self, populated) -> None:
        result = populated("identity", "show", "carol", "--format", "json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["scores"] == [
            {"owner": "alice", "target": "carol", "score": 20, "rank": 2, "capacity": 16}
        ]

    def test_text_output(self, populated) -> None:
        result = populated("identity", "show", "bob")
        assert result.exit_code == 0
        assert "bob" in result.output
        assert "Edition:  1" in result.output

    def test_unknown_identity(self, invoke) -> None:
        result = invoke("identity", "show", "nobody")
        assert result.exit_code == 2
        assert "Unknown identity" in result.output


class TestAttributes:
    def test_contexts(self, invoke) -> None:
        invoke("identity", "add", "bob")
        assert invoke("identity", "context", "add", "bob", "Forum").exit_code == 0

        data = json.loads(invoke("identity", "list", "--context", "Forum", "--format", "json").output)
        assert [d["id"] for d in data] == ["bob"]

        assert invoke("identity", "context", "remove", "bob", "Forum").exit_code == 0
        data = json.loads(invoke("identity", "list", "--context", "Forum", "--format", "json").output)
        assert data == []

    def test_bad_context_name(self, invoke) -> None:
        invoke("identity", "add", "bob")
        result = invoke("identity", "context", "add", "bob", "no spaces")
        assert result.exit_code == 2

    def test_remove_missing_context(self, invoke) -> None:
        invoke("identity", "add", "bob")
        result = invoke("identity", "context", "remove", "bob", "Forum")
        assert result.exit_code == 2

    def test_properties(self, invoke) -> None:
        invoke("identity", "add", "bob")
        assert invoke("identity", "property", "set", "bob", "avatar.url", "x.png").exit_code == 0

        result = invoke("identity", "property", "get", "bob", "avatar.url")
        assert result.exit_code == 0
        assert result.output.strip() == "x.png"

        assert invoke("identity", "property", "remove", "bob", "avatar.url").exit_code == 0
        result = invoke("identity", "property", "get", "bob", "avatar.url")
        assert result.exit_code == 2
        assert "not set" in result.output

    def test_attribute_of_unknown_identity(self, invoke) -> None:
        result = invoke("identity", "property", "set", "nobody", "a", "b")
        assert result.exit_code == 2


class TestDelete:
    def test_delete_recomputes_tree(self, populated) -> None:
        assert populated("identity", "delete", "bob").exit_code == 0
        data = json.loads(populated("identity", "list", "--format", "json").output)
        assert [d["id"] for d in data] == ["alice"]
        assert populated("check").exit_code == 0

    def test_delete_unknown(self, invoke) -> None:
        assert invoke("identity", "delete", "nobody").exit_code == 2

    def test_disown_keeps_identity(self, populated) -> None:
        result = populated("identity", "disown", "alice")
        assert result.exit_code == 0
        assert "no longer an own identity" in result.output
        data = json.loads(populated("identity", "show", "alice", "--format", "json").output)
        assert data["own"] is False
        assert [t["trustee"] for t in json.loads(
            populated("trust", "list", "alice", "--format", "json").output
        )] == ["bob"]

    def test_disown_requires_own(self, populated) -> None:
        assert populated("identity", "disown", "bob").exit_code == 2
