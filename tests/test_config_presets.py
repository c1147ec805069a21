from pathlib import Path

import pytest

from tier_engine.config_presets import (
    PresetConfigError,
    closed_form_config,
    list_presets,
    load_all_presets,
    load_preset,
    parse_preset,
    to_algorithm_preset,
    validate_preset,
)
from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import ClosedFormConfig
from tier_engine.domain.tier import TierPreset
from tier_engine.services.boundaries import closed_form_boundaries

_TOML = """\
[presets.draft]
algorithm = "pyramid"
tier_count = 4
ratio = 2.0
labels = ["Elite", "Good", "Okay", "Rest"]
description = "Draft board"

[presets.quartiles]
algorithm = "percentile"
tier_count = 4
percentiles = [25, 50, 75]
"""


def _write(tmp_path: Path, text: str = _TOML) -> Path:
    (tmp_path / "tiers.toml").write_text(text)
    return tmp_path


# -- Parsing -----------------------------------------------------------------


class TestParsePreset:
    def test_full_preset(self) -> None:
        preset = parse_preset("draft", {"algorithm": "pyramid", "tier_count": 3, "ratio": 2, "labels": ["a", "b", "c"]})
        assert preset == TierPreset(name="draft", algorithm=Algorithm.PYRAMID, tier_count=3, labels=("a", "b", "c"), ratio=2.0)

    def test_missing_field(self) -> None:
        with pytest.raises(PresetConfigError, match="Preset 'x': missing required field 'tier_count'"):
            parse_preset("x", {"algorithm": "equal"})

    def test_invalid_algorithm(self) -> None:
        with pytest.raises(PresetConfigError, match="invalid algorithm 'magic'"):
            parse_preset("x", {"algorithm": "magic", "tier_count": 3})

    @pytest.mark.parametrize("algorithm", ["elo", "kmeans", "jenks", "hybrid", "custom"])
    def test_data_algorithms_rejected(self, algorithm: str) -> None:
        with pytest.raises(PresetConfigError, match="cannot be a preset"):
            parse_preset("x", {"algorithm": algorithm, "tier_count": 3})


class TestValidatePreset:
    @pytest.mark.parametrize(
        ("preset", "message"),
        [
            (TierPreset(name="p", algorithm=Algorithm.EQUAL, tier_count=0), "tier_count must be >= 1"),
            (TierPreset(name="p", algorithm=Algorithm.EQUAL, tier_count=2, labels=("a",)), "expected 2 labels"),
            (TierPreset(name="p", algorithm=Algorithm.PYRAMID, tier_count=2, ratio=0.0), "ratio must be > 0"),
            (
                TierPreset(name="p", algorithm=Algorithm.PERCENTILE, tier_count=3, percentiles=(50.0, 120.0)),
                "between 0 and 100",
            ),
            (
                TierPreset(name="p", algorithm=Algorithm.PERCENTILE, tier_count=3, percentiles=(60.0, 40.0)),
                "strictly increasing",
            ),
            (
                TierPreset(name="p", algorithm=Algorithm.PERCENTILE, tier_count=4, percentiles=(50.0,)),
                "expected 3 percentiles",
            ),
        ],
    )
    def test_rejects(self, preset: TierPreset, message: str) -> None:
        with pytest.raises(PresetConfigError, match=message):
            validate_preset(preset)

    def test_accepts_valid(self) -> None:
        validate_preset(TierPreset(name="p", algorithm=Algorithm.PERCENTILE, tier_count=3, percentiles=(20.0, 60.0)))


class TestConversions:
    def test_closed_form_config_keeps_default_ratio(self) -> None:
        preset = TierPreset(name="p", algorithm=Algorithm.PYRAMID, tier_count=3)
        assert closed_form_config(preset) == ClosedFormConfig(tier_count=3)

    def test_percentile_boundaries(self) -> None:
        preset = TierPreset(name="p", algorithm=Algorithm.PERCENTILE, tier_count=4, percentiles=(25.0, 50.0, 75.0))
        config = closed_form_config(preset)
        assert closed_form_boundaries(preset.algorithm, 100, preset.tier_count, config) == [0, 25, 50, 75, 100]

    def test_algorithm_preset(self) -> None:
        preset = TierPreset(name="mine", algorithm=Algorithm.BELL, tier_count=5, description="d")
        converted = to_algorithm_preset(preset)
        assert (converted.id, converted.name, converted.algorithm, converted.description) == (
            "mine",
            "mine",
            Algorithm.BELL,
            "d",
        )


# -- TOML loading ------------------------------------------------------------


class TestLoadPreset:
    def test_load(self, tmp_path: Path) -> None:
        preset = load_preset("draft", _write(tmp_path))
        assert preset.ratio == 2.0
        assert preset.labels == ("Elite", "Good", "Okay", "Rest")
        assert preset.description == "Draft board"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PresetConfigError, match="tiers.toml not found"):
            load_preset("draft", tmp_path)

    def test_missing_section(self, tmp_path: Path) -> None:
        with pytest.raises(PresetConfigError, match=r"No \[presets\] section"):
            load_preset("draft", _write(tmp_path, "[other]\nx = 1\n"))

    def test_unknown_name(self, tmp_path: Path) -> None:
        with pytest.raises(PresetConfigError, match="Preset 'nope' not found"):
            load_preset("nope", _write(tmp_path))

    def test_load_all_sorted(self, tmp_path: Path) -> None:
        assert [p.name for p in load_all_presets(_write(tmp_path))] == ["draft", "quartiles"]

    def test_load_all_without_file(self, tmp_path: Path) -> None:
        assert load_all_presets(tmp_path) == []


class TestListPresets:
    def test_lists_sorted(self, tmp_path: Path) -> None:
        assert list_presets(_write(tmp_path)) == ["draft", "quartiles"]

    def test_missing_file(self, tmp_path: Path) -> None:
        assert list_presets(tmp_path) == []

    def test_missing_section(self, tmp_path: Path) -> None:
        assert list_presets(_write(tmp_path, "[other]\nx = 1\n")) == []
