from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from config import ConfigurationSet

from tier_engine.config import create_config, load_engine_settings
from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import (
    ClosedFormConfig,
    EloBinning,
    EloConfig,
    HybridConfig,
    InitMethod,
    KMeansConfig,
)
from tier_engine.services.confidence_scorer import ConfidenceScorer

if TYPE_CHECKING:
    from pathlib import Path

MISSING_YAML = "/nonexistent/tiers.yaml"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all TIERS__ env vars so tests are isolated from the shell."""
    for key in list(os.environ):
        if key.startswith("TIERS__"):
            monkeypatch.delenv(key)


def test_create_config_returns_defaults() -> None:
    cfg = create_config(yaml_path=MISSING_YAML)
    assert isinstance(cfg, ConfigurationSet)
    assert cfg["engine.tier_count"] == 5
    assert cfg["elo.k_factor"] == 32.0
    assert cfg["kmeans.init_method"] == "kmeans++"
    assert cfg["hybrid.weights.elo"] == 0.30


def test_yaml_overrides_defaults(tmp_path: Path) -> None:
    yaml_file = tmp_path / "tiers.yaml"
    yaml_file.write_text("engine:\n  tier_count: 7\nelo:\n  k_factor: 16\n")
    cfg = create_config(yaml_path=str(yaml_file))
    assert cfg["engine.tier_count"] == 7
    assert cfg["elo.k_factor"] == 16
    # Defaults still apply for unset keys
    assert cfg["elo.initial_rating"] == 1500.0


def test_env_overrides_yaml(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    yaml_file = tmp_path / "tiers.yaml"
    yaml_file.write_text("engine:\n  tier_count: 7\n")
    monkeypatch.setenv("TIERS__ENGINE__TIER_COUNT", "3")

    cfg = create_config(yaml_path=str(yaml_file))
    assert cfg["engine.tier_count"] == "3"  # env vars are strings


def test_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIERS__ENGINE__TIER_COUNT", "3")
    cfg = create_config(yaml_path=MISSING_YAML, overrides={"engine": {"tier_count": 9}})
    assert cfg["engine.tier_count"] == 9


class TestLoadEngineSettings:
    def test_defaults(self) -> None:
        settings = load_engine_settings(create_config(yaml_path=MISSING_YAML))
        assert settings.tier_count == 5
        assert settings.deadline_seconds == 0.0
        assert settings.deadline() is None
        assert settings.elo == EloConfig()
        assert settings.kmeans == KMeansConfig()
        assert settings.hybrid == HybridConfig()

    def test_env_strings_are_converted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TIERS__ENGINE__TIER_COUNT", "4")
        monkeypatch.setenv("TIERS__ELO__ADAPTIVE_K", "true")
        monkeypatch.setenv("TIERS__ELO__BINNING", "rating_range")
        monkeypatch.setenv("TIERS__KMEANS__INIT_METHOD", "quantile")
        monkeypatch.setenv("TIERS__HYBRID__WEIGHTS__ELO", "0.5")
        monkeypatch.setenv("TIERS__ENGINE__MAX_WORKERS", "4")

        settings = load_engine_settings(create_config(yaml_path=MISSING_YAML))
        assert settings.tier_count == 4
        assert settings.elo.adaptive_k is True
        assert settings.elo.binning is EloBinning.RATING_RANGE
        assert settings.kmeans.init_method is InitMethod.QUANTILE
        assert settings.hybrid.weights.elo == 0.5
        assert settings.hybrid.weights.jenks == 0.25
        assert settings.hybrid.max_workers == 4
        assert settings.hybrid.kmeans.tier_count == 4

    def test_false_string_is_false(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TIERS__ELO__ADAPTIVE_K", "false")
        assert load_engine_settings(create_config(yaml_path=MISSING_YAML)).elo.adaptive_k is False

    def test_unknown_algorithm(self) -> None:
        cfg = create_config(yaml_path=MISSING_YAML, overrides={"hybrid": {"fallback": "astrology"}})
        with pytest.raises(ValueError, match="astrology"):
            load_engine_settings(cfg)

    def test_positive_deadline(self) -> None:
        cfg = create_config(yaml_path=MISSING_YAML, overrides={"engine": {"deadline_seconds": 5}})
        deadline = load_engine_settings(cfg).deadline()
        assert deadline is not None
        assert not deadline.expired

    def test_config_for(self) -> None:
        settings = load_engine_settings(create_config(yaml_path=MISSING_YAML))
        assert settings.config_for(Algorithm.KMEANS, 3) == KMeansConfig(tier_count=3)
        assert settings.config_for(Algorithm.PYRAMID) == ClosedFormConfig(tier_count=5)

    def test_confidence_scorer(self) -> None:
        settings = load_engine_settings(create_config(yaml_path=MISSING_YAML))
        assert isinstance(settings.confidence.scorer(), ConfidenceScorer)
        assert settings.confidence.low_confidence_threshold == 60
