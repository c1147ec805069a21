from __future__ import annotations

from dataclasses import dataclass, field, fields, replace

from config import ConfigurationSet, config_from_dict, config_from_env, config_from_yaml

from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import (
    DEFAULT_TIER_COUNT,
    AlgorithmConfig,
    AlgorithmWeights,
    ClosedFormConfig,
    EloBinning,
    EloConfig,
    HybridConfig,
    InitMethod,
    JenksConfig,
    KMeansConfig,
)
from tier_engine.domain.confidence import ConfidenceWeights
from tier_engine.services.confidence_scorer import BOUNDARY_THRESHOLD, LOW_CONFIDENCE_THRESHOLD, ConfidenceScorer
from tier_engine.services.deadline import Deadline

_TRUTHY = {"1", "true", "yes", "on"}

_DEFAULTS: dict[str, object] = {
    "engine": {
        "tier_count": DEFAULT_TIER_COUNT,
        "deadline_seconds": 0.0,
        "max_workers": 1,
    },
    "elo": {
        "k_factor": 32.0,
        "initial_rating": 1500.0,
        "min_comparisons": 3,
        "decay_factor": 1.0,
        "adaptive_k": False,
        "boundary_algorithm": "pyramid",
        "binning": "sequence",
    },
    "kmeans": {
        "max_iterations": 100,
        "convergence_threshold": 0.001,
        "init_method": "kmeans++",
        "seed": 42,
    },
    "jenks": {
        "min_gvf": 0.8,
    },
    "hybrid": {
        "agreement_threshold": 60.0,
        "fallback": "percentile",
        "weights": {"elo": 0.30, "kmeans": 0.25, "jenks": 0.25, "percentile": 0.20},
    },
    "confidence": {
        "low_threshold": LOW_CONFIDENCE_THRESHOLD,
        "boundary_threshold": BOUNDARY_THRESHOLD,
        "weights": {
            "data_points": 0.25,
            "consistency": 0.20,
            "proximity": 0.20,
            "separation": 0.15,
            "algorithm_agreement": 0.20,
        },
    },
}


@dataclass(frozen=True)
class ConfidenceSettings:
    weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    low_confidence_threshold: int = LOW_CONFIDENCE_THRESHOLD
    boundary_threshold: int = BOUNDARY_THRESHOLD

    def scorer(self) -> ConfidenceScorer:
        return ConfidenceScorer(self.weights, self.low_confidence_threshold, self.boundary_threshold)


@dataclass(frozen=True)
class EngineSettings:
    tier_count: int = DEFAULT_TIER_COUNT
    deadline_seconds: float = 0.0
    max_workers: int = 1
    elo: EloConfig = field(default_factory=EloConfig)
    kmeans: KMeansConfig = field(default_factory=KMeansConfig)
    jenks: JenksConfig = field(default_factory=JenksConfig)
    hybrid: HybridConfig = field(default_factory=HybridConfig)
    confidence: ConfidenceSettings = field(default_factory=ConfidenceSettings)

    def deadline(self) -> Deadline | None:
        """A fresh deadline, or None when ``deadline_seconds`` is not positive."""
        return Deadline(self.deadline_seconds) if self.deadline_seconds > 0 else None

    def config_for(self, algorithm: Algorithm, tier_count: int | None = None) -> AlgorithmConfig:
        count = tier_count if tier_count is not None else self.tier_count
        match algorithm:
            case Algorithm.ELO:
                return replace(self.elo, tier_count=count)
            case Algorithm.KMEANS:
                return replace(self.kmeans, tier_count=count)
            case Algorithm.JENKS:
                return replace(self.jenks, tier_count=count)
            case Algorithm.HYBRID:
                return replace(self.hybrid, tier_count=count)
            case _:
                return ClosedFormConfig(tier_count=count)


def create_config(
    yaml_path: str = "tiers.yaml",
    env_prefix: str = "TIERS",
    defaults: dict[str, object] | None = None,
    overrides: dict[str, object] | None = None,
) -> ConfigurationSet:
    """Create a layered configuration.

    Priority (highest to lowest): explicit overrides > env vars > YAML file > defaults dict.

    Args:
        yaml_path: Path to the YAML config file; a missing file is skipped.
        env_prefix: Prefix for environment variables, e.g. ``TIERS__ELO__K_FACTOR``.
        defaults: Default configuration values.
        overrides: Values that win over every other layer.
    """
    if defaults is None:
        defaults = _DEFAULTS

    layers = [
        config_from_env(env_prefix, separator="__", lowercase_keys=True),
        config_from_yaml(yaml_path, read_from_file=True, ignore_missing_paths=True),
        config_from_dict(defaults),
    ]
    if overrides:
        layers.insert(0, config_from_dict(overrides))

    return ConfigurationSet(*layers)


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _float(cfg: ConfigurationSet, key: str) -> float:
    return float(str(cfg[key]))


def _int(cfg: ConfigurationSet, key: str) -> int:
    return int(str(cfg[key]))


def _section_floats(cfg: ConfigurationSet, section: str, record: type) -> dict[str, float]:
    return {f.name: _float(cfg, f"{section}.{f.name}") for f in fields(record)}


def load_engine_settings(cfg: ConfigurationSet | None = None) -> EngineSettings:
    """Convert a layered configuration into typed engine settings.

    Raises:
        ValueError: If a value cannot be converted or names an unknown algorithm.
    """
    if cfg is None:
        cfg = create_config()

    tier_count = _int(cfg, "engine.tier_count")
    max_workers = _int(cfg, "engine.max_workers")

    elo = EloConfig(
        tier_count=tier_count,
        k_factor=_float(cfg, "elo.k_factor"),
        initial_rating=_float(cfg, "elo.initial_rating"),
        min_comparisons=_int(cfg, "elo.min_comparisons"),
        decay_factor=_float(cfg, "elo.decay_factor"),
        adaptive_k=_as_bool(cfg["elo.adaptive_k"]),
        boundary_algorithm=Algorithm(str(cfg["elo.boundary_algorithm"])),
        binning=EloBinning(str(cfg["elo.binning"])),
    )
    kmeans = KMeansConfig(
        tier_count=tier_count,
        max_iterations=_int(cfg, "kmeans.max_iterations"),
        convergence_threshold=_float(cfg, "kmeans.convergence_threshold"),
        init_method=InitMethod(str(cfg["kmeans.init_method"])),
        seed=_int(cfg, "kmeans.seed"),
    )
    jenks = JenksConfig(tier_count=tier_count, min_gvf=_float(cfg, "jenks.min_gvf"))

    hybrid = HybridConfig(
        tier_count=tier_count,
        weights=AlgorithmWeights(**_section_floats(cfg, "hybrid.weights", AlgorithmWeights)),
        fallback=Algorithm(str(cfg["hybrid.fallback"])),
        agreement_threshold=_float(cfg, "hybrid.agreement_threshold"),
        max_workers=max_workers,
        elo=elo,
        kmeans=kmeans,
        jenks=jenks,
    )

    confidence = ConfidenceSettings(
        weights=ConfidenceWeights(**_section_floats(cfg, "confidence.weights", ConfidenceWeights)),
        low_confidence_threshold=_int(cfg, "confidence.low_threshold"),
        boundary_threshold=_int(cfg, "confidence.boundary_threshold"),
    )

    return EngineSettings(
        tier_count=tier_count,
        deadline_seconds=_float(cfg, "engine.deadline_seconds"),
        max_workers=max_workers,
        elo=elo,
        kmeans=kmeans,
        jenks=jenks,
        hybrid=hybrid,
        confidence=confidence,
    )
