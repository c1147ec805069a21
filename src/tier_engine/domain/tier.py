from dataclasses import dataclass

from tier_engine.domain.algorithm import Algorithm


@dataclass(frozen=True)
class TierDefinition:
    id: str
    label: str
    start_position: int  # inclusive
    end_position: int  # exclusive

    @property
    def size(self) -> int:
        return self.end_position - self.start_position

    def contains(self, position: int) -> bool:
        return self.start_position <= position < self.end_position


@dataclass(frozen=True)
class RankedItem:
    item_id: str
    position: int


@dataclass(frozen=True)
class TieredItem:
    item_id: str
    position: int
    tier: TierDefinition
    percentile: int
    tier_rank: int  # 1 = best within tier


@dataclass(frozen=True)
class TierStats:
    tier: TierDefinition
    item_count: int
    filled_count: int
    empty_count: int
    percentage: int
    average_position: float


@dataclass(frozen=True)
class TierSummary:
    total_items: int
    tiered_items: int
    tier_stats: tuple[TierStats, ...]
    distribution: dict[str, int]
    dominant_tier: TierDefinition | None
    balance_score: int  # 0-100, 100 = perfectly even


@dataclass(frozen=True)
class TierSuggestion:
    boundaries: tuple[int, ...]
    confidence: int
    reasoning: str
    algorithm: Algorithm


@dataclass(frozen=True)
class TierPreset:
    name: str
    algorithm: Algorithm
    tier_count: int
    labels: tuple[str, ...] = ()
    percentiles: tuple[float, ...] | None = None
    ratio: float | None = None
    description: str = ""


@dataclass(frozen=True)
class SmartTierResult:
    tier_count: int
    tiers: tuple[TierDefinition, ...]
    tiered_items: tuple[TieredItem, ...]
    summary: TierSummary
    suggestions: tuple[TierSuggestion, ...]
