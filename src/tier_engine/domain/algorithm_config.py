"""Per-algorithm configuration records.

Each algorithm takes its own frozen config type; ``AlgorithmConfig`` is the
union the runner matches on. Defaults mirror the engine defaults in
``tier_engine.config``.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from tier_engine.domain.algorithm import Algorithm

DEFAULT_TIER_COUNT: int = 5
PYRAMID_RATIO: float = 1.6


class InitMethod(StrEnum):
    KMEANS_PLUS_PLUS = "kmeans++"
    QUANTILE = "quantile"
    RANDOM = "random"


class EloBinning(StrEnum):
    SEQUENCE = "sequence"
    RATING_RANGE = "rating_range"


@dataclass(frozen=True)
class ClosedFormConfig:
    tier_count: int = DEFAULT_TIER_COUNT
    ratio: float = PYRAMID_RATIO
    percentiles: tuple[float, ...] | None = None
    boundaries: tuple[int, ...] | None = None


@dataclass(frozen=True)
class KMeansConfig:
    tier_count: int = DEFAULT_TIER_COUNT
    max_iterations: int = 100
    convergence_threshold: float = 0.001
    init_method: InitMethod = InitMethod.KMEANS_PLUS_PLUS
    seed: int | None = 42


@dataclass(frozen=True)
class JenksConfig:
    tier_count: int = DEFAULT_TIER_COUNT
    min_gvf: float = 0.8


@dataclass(frozen=True)
class EloConfig:
    tier_count: int = DEFAULT_TIER_COUNT
    k_factor: float = 32.0
    initial_rating: float = 1500.0
    min_comparisons: int = 3
    decay_factor: float = 1.0
    adaptive_k: bool = False
    boundary_algorithm: Algorithm = Algorithm.PYRAMID
    binning: EloBinning = EloBinning.SEQUENCE


@dataclass(frozen=True)
class AlgorithmWeights:
    elo: float = 0.30
    kmeans: float = 0.25
    jenks: float = 0.25
    percentile: float = 0.20

    def weight_for(self, algorithm: Algorithm) -> float:
        match algorithm:
            case Algorithm.ELO:
                return self.elo
            case Algorithm.KMEANS:
                return self.kmeans
            case Algorithm.JENKS:
                return self.jenks
            case Algorithm.PERCENTILE:
                return self.percentile
            case _:
                return 0.1

    def as_dict(self) -> dict[Algorithm, float]:
        return {
            Algorithm.ELO: self.elo,
            Algorithm.KMEANS: self.kmeans,
            Algorithm.JENKS: self.jenks,
            Algorithm.PERCENTILE: self.percentile,
        }


@dataclass(frozen=True)
class HybridConfig:
    tier_count: int = DEFAULT_TIER_COUNT
    weights: AlgorithmWeights = field(default_factory=AlgorithmWeights)
    fallback: Algorithm = Algorithm.PERCENTILE
    agreement_threshold: float = 60.0
    max_workers: int = 1
    elo: EloConfig = field(default_factory=EloConfig)
    kmeans: KMeansConfig = field(default_factory=KMeansConfig)
    jenks: JenksConfig = field(default_factory=JenksConfig)


type AlgorithmConfig = ClosedFormConfig | KMeansConfig | JenksConfig | EloConfig | HybridConfig
