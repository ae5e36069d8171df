"""Tests for ScoreConfig validation, capacity lookup and YAML loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from wotscore.config import DEFAULT_CAPACITIES, ScoreConfig
from wotscore.exceptions import ErrorKind, TrustGraphError


class TestCapacityForRank:
    def test_default_table(self) -> None:
        config = ScoreConfig()
        assert [config.capacity_for_rank(r) for r in range(8)] == [100, 40, 16, 6, 2, 1, 1, 1]

    def test_max_rank_cuts_off(self) -> None:
        config = ScoreConfig(max_rank=3)
        assert config.capacity_for_rank(2) == 16
        assert config.capacity_for_rank(3) == 0
        assert config.capacity_for_rank(50) == 0

    def test_owner_rank_is_always_full(self) -> None:
        assert ScoreConfig(capacities=(100, 0)).capacity_for_rank(0) == 100

    def test_negative_rank(self) -> None:
        with pytest.raises(ValueError):
            ScoreConfig().capacity_for_rank(-1)


class TestValidate:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"capacities": ()},
            {"capacities": (90, 40)},
            {"capacities": (100, 40, 50)},
            {"capacities": (100, 101)},
            {"capacities": (100, -1)},
            {"capacities": (100, 4.5)},
            {"capacities": (100, True)},
            {"max_rank": 0},
            {"max_rank": True},
            {"coalesce_delay": -0.1},
        ],
    )
    def test_rejects(self, kwargs: dict) -> None:
        with pytest.raises(TrustGraphError) as exc_info:
            ScoreConfig(**kwargs).validate()
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_defaults_are_valid(self) -> None:
        config = ScoreConfig()
        config.validate()
        assert config.capacities == DEFAULT_CAPACITIES
        assert config.restrict_dirty_owners

    def test_list_is_stored_as_tuple(self) -> None:
        config = ScoreConfig(capacities=[100, 50])
        assert config.capacities == (100, 50)
        hash(config)


class TestLoad:
    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "wot.yaml"
        path.write_text("capacities: [100, 50, 10]\nmax_rank: 4\ncoalesce_delay: 0.25\n")
        config = ScoreConfig.load(path)
        assert config == ScoreConfig(capacities=(100, 50, 10), max_rank=4, coalesce_delay=0.25)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "wot.yaml"
        path.write_text("")
        assert ScoreConfig.load(path) == ScoreConfig()

    @pytest.mark.parametrize(
        "text",
        ["- 1\n- 2\n", "capacities: [100\n", "colour: blue\n", "capacities: [50]\n"],
    )
    def test_bad_files(self, tmp_path: Path, text: str) -> None:
        path = tmp_path / "wot.yaml"
        path.write_text(text)
        with pytest.raises(TrustGraphError) as exc_info:
            ScoreConfig.load(path)
        assert exc_info.value.kind is ErrorKind.VALIDATION
