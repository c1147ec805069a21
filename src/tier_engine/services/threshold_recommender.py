"""Rank boundary presets against the shape of a partially filled list."""

import logging
import math
from collections.abc import Sequence
from itertools import pairwise

from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import PYRAMID_RATIO, ClosedFormConfig
from tier_engine.domain.recommendation import (
    AlgorithmPreset,
    DistributionAnalysis,
    DistributionSkew,
    ListCharacteristics,
    RecommendationComparison,
    ThresholdRecommendation,
    ThresholdValidation,
)
from tier_engine.domain.tier import TierSuggestion
from tier_engine.services.boundaries import (
    closed_form_boundaries,
    effective_tier_count,
    reconcile_boundaries,
    round_half_up,
    tier_sizes,
)

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 70
ELITE_TOP_SHARE = 0.05

ALGORITHM_PRESETS: tuple[AlgorithmPreset, ...] = (
    AlgorithmPreset(
        id="equal",
        name="Equal Distribution",
        algorithm=Algorithm.EQUAL,
        description="Every tier holds the same number of items",
    ),
    AlgorithmPreset(
        id="pyramid",
        name="Pyramid",
        algorithm=Algorithm.PYRAMID,
        description="Small top tiers that widen towards the bottom",
        ratio=PYRAMID_RATIO,
    ),
    AlgorithmPreset(
        id="bell",
        name="Bell Curve",
        algorithm=Algorithm.BELL,
        description="Most items land in the middle tiers",
    ),
    AlgorithmPreset(
        id="percentile",
        name="Percentile",
        algorithm=Algorithm.PERCENTILE,
        description="Fixed percentile cut points",
    ),
    AlgorithmPreset(
        id="elite",
        name="Elite Focus",
        algorithm=Algorithm.CUSTOM,
        description="Top 5% in the first tier, the rest split evenly",
        top_share=ELITE_TOP_SHARE,
    ),
    AlgorithmPreset(
        id="balanced",
        name="Balanced Pyramid",
        algorithm=Algorithm.PYRAMID,
        description="A gentler pyramid",
        ratio=1.3,
    ),
)


def recommend_tier_count(list_size: int) -> int:
    if list_size <= 5:
        return 3
    if list_size <= 10:
        return 4
    if list_size <= 25:
        return 5
    if list_size <= 50:
        return 6
    if list_size <= 100:
        return 7
    return 9


def elite_boundaries(list_size: int, tier_count: int, top_share: float = ELITE_TOP_SHARE) -> list[int]:
    """First tier holds ``top_share`` of the list (at least one item), the rest split evenly."""
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)
    if k == 1:
        return [0, list_size]
    top = max(1, round_half_up(list_size * top_share))
    step = math.ceil(max(list_size - top, 0) / (k - 1))
    raw = [0, top, *(min(top + i * step, list_size) for i in range(1, k - 1)), list_size]
    return reconcile_boundaries(raw, list_size, k)


def preset_boundaries(preset: AlgorithmPreset, list_size: int, tier_count: int) -> list[int]:
    if preset.top_share is not None:
        return elite_boundaries(list_size, tier_count, preset.top_share)
    config = ClosedFormConfig(
        tier_count=tier_count,
        ratio=preset.ratio if preset.ratio is not None else PYRAMID_RATIO,
        percentiles=preset.percentiles,
    )
    return closed_form_boundaries(preset.algorithm, list_size, tier_count, config)


def count_clusters(positions: Sequence[int], list_size: int) -> int:
    """Runs of positions separated by gaps wider than a tenth of the list."""
    if len(positions) < 2:
        return len(positions)
    gap_threshold = list_size / 10
    ordered = sorted(positions)
    return 1 + sum(1 for a, b in pairwise(ordered) if b - a > gap_threshold)


class ThresholdRecommender:
    """Scores each preset for a list and explains the ranking."""

    def __init__(
        self,
        characteristics: ListCharacteristics,
        presets: Sequence[AlgorithmPreset] = ALGORITHM_PRESETS,
    ) -> None:
        self._characteristics = characteristics
        self._presets = tuple(presets)

    @property
    def characteristics(self) -> ListCharacteristics:
        return self._characteristics

    @property
    def presets(self) -> tuple[AlgorithmPreset, ...]:
        return self._presets

    def set_characteristics(self, characteristics: ListCharacteristics) -> None:
        self._characteristics = characteristics

    def _completeness(self) -> float:
        c = self._characteristics
        if c.list_size <= 0:
            return 0.0
        return len(c.filled_positions) / c.list_size

    def analyze_distribution(self) -> DistributionAnalysis:
        c = self._characteristics
        filled = c.filled_positions
        if not filled or c.list_size <= 0:
            return DistributionAnalysis(skew=DistributionSkew.BALANCED, density=0.0, cluster_count=0)

        density = len(filled) / c.list_size
        skew_ratio = (sum(filled) / len(filled)) / (c.list_size / 2)
        if skew_ratio < 0.7:
            skew = DistributionSkew.TOP_HEAVY
        elif skew_ratio > 1.3:
            skew = DistributionSkew.BOTTOM_HEAVY
        else:
            wide_gaps = sum(1 for a, b in pairwise(sorted(filled)) if b - a > c.list_size / 5)
            skew = DistributionSkew.CLUSTERED if wide_gaps >= 2 else DistributionSkew.BALANCED

        return DistributionAnalysis(
            skew=skew,
            density=density,
            cluster_count=count_clusters(filled, c.list_size),
        )

    def generate_recommendation(self, preset: AlgorithmPreset) -> ThresholdRecommendation:
        c = self._characteristics
        boundaries = preset_boundaries(preset, c.list_size, c.tier_count)
        skew = self.analyze_distribution().skew
        size = c.list_size

        confidence = BASE_CONFIDENCE
        reasoning = preset.description
        pros: list[str] = []
        cons: list[str] = []
        best_for: list[str] = []

        match preset.id:
            case "equal":
                reasoning = "Equal distribution provides consistent tier sizes"
                pros += ["Simple and predictable", "Fair representation for all tiers"]
                cons.append("May not reflect natural quality differences")
                if skew == DistributionSkew.BALANCED:
                    confidence += 15
                    pros.append("Matches your balanced item distribution")
                best_for += ["Small lists (up to 10 items)", "When you want equal representation"]
                if size <= 10:
                    confidence += 10
            case "pyramid":
                reasoning = "Pyramid creates exclusive top tiers with larger lower tiers"
                pros += ["Makes top tier feel exclusive", "Natural ranking progression"]
                cons.append("Top tiers may be too small for large lists")
                if skew == DistributionSkew.TOP_HEAVY:
                    confidence += 10
                    pros.append("Complements your top-heavy distribution")
                best_for += ["Medium lists (10-50 items)", "Traditional tier lists", "When quality varies significantly"]
                if 10 <= size <= 50:
                    confidence += 10
                if skew == DistributionSkew.TOP_HEAVY:
                    confidence += 5
            case "bell":
                reasoning = "Bell curve places most items in middle tiers"
                pros += ["Realistic quality distribution", "Small elite and bottom groups"]
                cons.append("May feel less decisive")
                if skew == DistributionSkew.BALANCED:
                    confidence += 15
                    pros.append("Matches your balanced distribution")
                best_for += ["Larger lists (25+ items)", 'When most items are "average"', "Academic-style grading"]
                if size >= 25:
                    confidence += 10
            case "percentile":
                reasoning = "Percentile-based ensures top % are in top tiers"
                pros += ['Intuitive "top 10%" concept', "Statistical basis"]
                cons.append("Fixed percentages may not fit all lists")
                best_for += ["Any list size", "When percentile ranking matters"]
                confidence += 5
            case "elite":
                reasoning = "Elite focus keeps top tier very exclusive (5%)"
                pros += ["Extremely selective top tier", 'Clear "best of the best"']
                cons.append("Very few items can be top tier")
                best_for += ["Large lists (50+ items)", "Competitive rankings"]
                if size >= 50:
                    confidence += 15
                if len(c.filled_positions) >= size * 0.8:
                    confidence += 10
            case "balanced":
                reasoning = "Balanced pyramid offers moderate distribution"
                pros += ["Good middle ground", "Flexible for various uses"]
                cons.append("Not distinctive")
                best_for += ["When unsure which to pick", "General purpose tier lists"]
                confidence += 5

        if self._completeness() < 0.5:
            confidence -= 10
            cons.append("List is less than 50% complete")

        return ThresholdRecommendation(
            preset=preset,
            boundaries=tuple(boundaries),
            confidence=min(100, max(0, confidence)),
            reasoning=reasoning,
            pros=tuple(pros),
            cons=tuple(cons),
            best_for=tuple(best_for),
        )

    def get_all_recommendations(self) -> list[ThresholdRecommendation]:
        """Every preset's recommendation, most confident first (preset order on ties)."""
        recommendations = [self.generate_recommendation(p) for p in self._presets]
        recommendations.sort(key=lambda r: r.confidence, reverse=True)
        logger.debug("Ranked %d presets for list_size=%d", len(recommendations), self._characteristics.list_size)
        return recommendations

    def get_top_recommendation(self) -> ThresholdRecommendation:
        recommendations = self.get_all_recommendations()
        if not recommendations:
            msg = "No presets to recommend from"
            raise ValueError(msg)
        return recommendations[0]

    def compare_recommendations(self) -> RecommendationComparison:
        recommendations = self.get_all_recommendations()
        if not recommendations:
            msg = "No presets to recommend from"
            raise ValueError(msg)
        top = recommendations[0]
        analysis = self.analyze_distribution()

        notes = [
            f"List size: {self._characteristics.list_size} items",
            f"Completion: {round_half_up(self._completeness() * 100)}%",
            f"Distribution pattern: {analysis.skew.value}",
        ]
        if analysis.cluster_count > 2:
            notes.append(f"Detected {analysis.cluster_count} natural clusters")
        if top.confidence - recommendations[-1].confidence < 15:
            notes.append("Multiple algorithms work well for your list")
        else:
            notes.append(f"{top.preset.name} is clearly best for your data")

        return RecommendationComparison(
            recommendations=tuple(recommendations),
            top_recommendation=top,
            comparison_notes=tuple(notes),
        )

    def quick_suggestion(self) -> TierSuggestion:
        top = self.get_top_recommendation()
        return TierSuggestion(
            boundaries=top.boundaries,
            confidence=top.confidence,
            reasoning=top.reasoning,
            algorithm=top.preset.algorithm,
        )

    def validate_custom_thresholds(self, boundaries: Sequence[int]) -> ThresholdValidation:
        """Sanity-check hand-picked boundaries against the list size.

        Structural problems (wrong endpoints, non-increasing values) are
        reported on their own; otherwise the tier sizes are checked for tiny
        top tiers, oversized tiers, near-empty tiers and uneven spread.
        """
        list_size = self._characteristics.list_size
        structural: list[str] = []
        if len(boundaries) < 2:
            structural.append("At least two boundaries are required")
        else:
            if boundaries[0] != 0:
                structural.append("Boundaries must start at 0")
            if boundaries[-1] != list_size:
                structural.append(f"Boundaries must end at the list size ({list_size})")
            if any(b <= a for a, b in pairwise(boundaries)):
                structural.append("Boundaries must be strictly increasing")
        if structural:
            return ThresholdValidation(
                valid=False,
                warnings=tuple(structural),
                suggestions=("Use a built-in algorithm to generate valid boundaries",),
            )

        warnings: list[str] = []
        suggestions: list[str] = []
        sizes = tier_sizes(boundaries)
        for number, size in enumerate(sizes, start=1):
            share = size / list_size * 100
            percentage = round_half_up(share)
            if share < 3 and list_size > 20:
                name = "Top tier" if number == 1 else f"Tier {number}"
                warnings.append(f"{name} ({percentage}%) may be too small")
                suggestions.append("Consider increasing to at least 5%")
            if share > 50:
                warnings.append(f"Tier {number} has {percentage}% of items - may be too large")
                suggestions.append("Consider splitting this tier")
            if size < 2 and list_size > 10:
                warnings.append(f"Tier {number} may end up with 0-1 items")

        mean = sum(sizes) / len(sizes)
        std_dev = math.sqrt(sum((s - mean) ** 2 for s in sizes) / len(sizes))
        if std_dev > mean * 1.5:
            warnings.append("Tier sizes vary significantly")
            suggestions.append("Consider using a built-in algorithm for more balanced distribution")

        return ThresholdValidation(valid=not warnings, warnings=tuple(warnings), suggestions=tuple(suggestions))


def quick_recommendation(
    list_size: int,
    filled_positions: Sequence[int] = (),
    tier_count: int | None = None,
) -> ThresholdRecommendation:
    characteristics = ListCharacteristics(
        list_size=list_size,
        filled_positions=tuple(filled_positions),
        tier_count=tier_count or recommend_tier_count(list_size),
    )
    return ThresholdRecommender(characteristics).get_top_recommendation()
