"""Shared fixtures for CLI tests.

Every command runs against a temporary store file. ``populated`` builds
the chain alice -> bob (100), bob -> carol (50) through the CLI itself.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from click.testing import CliRunner, Result

from wotscore.cli.main import cli

Invoke = Callable[..., Result]


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def store_file(tmp_path: Path) -> Path:
    return tmp_path / "wot.json"


@pytest.fixture
def invoke(runner: CliRunner, store_file: Path) -> Invoke:
    """Run ``wotscore --store <tmp> ARGS...``."""

    def run(*args: str) -> Result:
        return runner.invoke(cli, ["--store", str(store_file), *args])

    return run


def write_trust_list(path: Path, edition: int, entries: list[tuple[str, int]]) -> Path:
    lines = [f"edition: {edition}", "trust:"]
    for identity, value in entries:
        lines.append(f"  - identity: {identity}")
        lines.append(f"    value: {value}")
    if not entries:
        lines[-1] = "trust: []"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def trust_list(tmp_path: Path) -> Callable[[str, int, list[tuple[str, int]]], Path]:
    """Write a trust list YAML file named ``<name>.yaml`` under tmp_path."""

    def make(name: str, edition: int, entries: list[tuple[str, int]]) -> Path:
        return write_trust_list(tmp_path / f"{name}.yaml", edition, entries)

    return make


@pytest.fixture
def populated(invoke: Invoke, trust_list) -> Invoke:
    """A store where alice (own) trusts bob, and bob's list trusts carol."""
    assert invoke("identity", "own", "alice").exit_code == 0
    assert invoke("trust", "set", "alice", "bob", "100").exit_code == 0
    bob_list = trust_list("bob", 1, [("carol", 50)])
    assert invoke("trust", "import", "bob", str(bob_list)).exit_code == 0
    return invoke
