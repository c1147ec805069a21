from dataclasses import dataclass, field
from enum import StrEnum

from tier_engine.domain.algorithm import Algorithm


class DistributionSkew(StrEnum):
    TOP_HEAVY = "top-heavy"
    BOTTOM_HEAVY = "bottom-heavy"
    BALANCED = "balanced"
    CLUSTERED = "clustered"


@dataclass(frozen=True)
class ListCharacteristics:
    list_size: int
    filled_positions: tuple[int, ...]
    tier_count: int


@dataclass(frozen=True)
class DistributionAnalysis:
    skew: DistributionSkew
    density: float
    cluster_count: int


@dataclass(frozen=True)
class AlgorithmPreset:
    id: str
    name: str
    algorithm: Algorithm
    description: str = ""
    ratio: float | None = None
    percentiles: tuple[float, ...] | None = None
    top_share: float | None = None  # fraction of the list held by the top tier


@dataclass(frozen=True)
class ThresholdRecommendation:
    preset: AlgorithmPreset
    boundaries: tuple[int, ...]
    confidence: int
    reasoning: str
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    best_for: tuple[str, ...] = ()


@dataclass(frozen=True)
class RecommendationComparison:
    recommendations: tuple[ThresholdRecommendation, ...]
    top_recommendation: ThresholdRecommendation
    comparison_notes: tuple[str, ...]


@dataclass(frozen=True)
class ThresholdValidation:
    valid: bool
    warnings: tuple[str, ...] = field(default_factory=tuple)
    suggestions: tuple[str, ...] = field(default_factory=tuple)
