"""Shared fixtures for wotscore tests."""

from __future__ import annotations

import pathlib
from typing import Callable, Iterator

import pytest

from wotscore.config import ScoreConfig
from wotscore.core.store import TrustGraphStore
from wotscore.core.trust import Trust
from wotscore.core.identity import Identity
from wotscore.network import WebOfTrust


@pytest.fixture
def store() -> Iterator[TrustGraphStore]:
    """An open, memory-only store."""
    s = TrustGraphStore()
    s.open()
    yield s
    s.close()


@pytest.fixture
def store_path(tmp_path: pathlib.Path) -> pathlib.Path:
    return tmp_path / "wot.json"


@pytest.fixture
def wot() -> Iterator[WebOfTrust]:
    """A started, memory-only web of trust without background worker."""
    network = WebOfTrust(config=ScoreConfig(coalesce_delay=0.0))
    network.start()
    yield network
    network.stop()


GraphBuilder = Callable[..., None]


@pytest.fixture
def build_graph(store: TrustGraphStore) -> GraphBuilder:
    """Write identities and edges straight into ``store``.

    Usage: ``build_graph([("A", "B", 100), ...], owners=["A"])``. Every
    endpoint is created as a plain identity; ``owners`` become own
    identities.
    """

    def build(edges: list[tuple[str, str, int]], owners: list[str] = ()) -> None:
        with store.transaction():
            ids = {i for a, b, _ in edges for i in (a, b)} | set(owners)
            for identity_id in sorted(ids):
                store.put_identity(Identity(identity_id, own=identity_id in owners))
            for truster, trustee, value in edges:
                store.put_trust(Trust(truster, trustee, value))

    return build
