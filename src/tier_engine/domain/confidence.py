from dataclasses import dataclass

from tier_engine.domain.tier import TierDefinition


@dataclass(frozen=True)
class ConfidenceWeights:
    data_points: float = 0.25
    consistency: float = 0.20
    proximity: float = 0.20
    separation: float = 0.15
    algorithm_agreement: float = 0.20


@dataclass(frozen=True)
class ConfidenceFactors:
    data_points: float
    consistency: float
    proximity: float
    separation: float
    algorithm_agreement: float


@dataclass(frozen=True)
class TierConfidence:
    item_id: str
    tier: TierDefinition
    confidence: int  # 0-100
    factors: ConfidenceFactors
    alternative_tier: TierDefinition | None = None
    alternative_confidence: int | None = None


@dataclass(frozen=True)
class ConfidenceReport:
    overall_confidence: int
    tier_confidences: dict[str, int]
    low_confidence_count: int
    boundary_item_count: int
    recommendations: tuple[str, ...]
    confidences: tuple[TierConfidence, ...]
