"""Per-item and per-tier confidence for tier assignments.

Each item is scored on five factors normalised to ``[0, 1]``: how much
comparison data it has, whether that data agrees with its rank, how central it
sits in its tier, whether it borders another tier, and how well the supplied
algorithm results agree at its position.
"""

import itertools
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence

from tier_engine.domain.algorithm import AlgorithmResult
from tier_engine.domain.comparison import Comparison
from tier_engine.domain.confidence import ConfidenceFactors, ConfidenceReport, ConfidenceWeights, TierConfidence
from tier_engine.domain.tier import TierDefinition, TieredItem
from tier_engine.services.boundaries import round_half_up, tier_for_position

logger = logging.getLogger(__name__)

MIN_COMPARISONS = 3
OPTIMAL_COMPARISONS = 15
LOW_CONFIDENCE_THRESHOLD = 60
BOUNDARY_THRESHOLD = 30


class ConfidenceScorer:
    def __init__(
        self,
        weights: ConfidenceWeights | None = None,
        low_confidence_threshold: int = LOW_CONFIDENCE_THRESHOLD,
        boundary_threshold: int = BOUNDARY_THRESHOLD,
    ) -> None:
        self._weights = weights or ConfidenceWeights()
        self._low_confidence_threshold = low_confidence_threshold
        self._boundary_threshold = boundary_threshold
        self._comparisons: list[Comparison] = []
        self._by_item: dict[str, list[Comparison]] = {}
        self._algorithm_results: list[AlgorithmResult] = []

    def set_comparisons(self, comparisons: Iterable[Comparison]) -> None:
        self._comparisons = list(comparisons)
        by_item: dict[str, list[Comparison]] = defaultdict(list)
        for comparison in self._comparisons:
            by_item[comparison.item_a].append(comparison)
            if comparison.item_b != comparison.item_a:
                by_item[comparison.item_b].append(comparison)
        self._by_item = dict(by_item)

    def set_algorithm_results(self, results: Iterable[AlgorithmResult]) -> None:
        self._algorithm_results = list(results)

    # -- Factors -------------------------------------------------------------

    def _data_points(self, item_id: str) -> float:
        count = len(self._by_item.get(item_id, []))
        if count >= OPTIMAL_COMPARISONS:
            return 1.0
        if count < MIN_COMPARISONS:
            return count / MIN_COMPARISONS * 0.5
        return 0.5 + (count - MIN_COMPARISONS) / (OPTIMAL_COMPARISONS - MIN_COMPARISONS) * 0.5

    def _consistency(self, item: TieredItem, positions: dict[str, int]) -> float:
        comparisons = self._by_item.get(item.item_id, [])
        if not comparisons:
            return 0.5

        consistent = 0.0
        for comparison in comparisons:
            other_position = positions.get(comparison.opponent_of(item.item_id))
            if other_position is None:
                continue
            if comparison.is_draw:
                consistent += 0.8 if abs(item.position - other_position) <= 3 else 0.4
            elif (comparison.winner == item.item_id) == (item.position < other_position):
                consistent += 1.0
        return consistent / len(comparisons)

    @staticmethod
    def _proximity(item: TieredItem) -> float:
        tier = item.tier
        if tier.size <= 1:
            return 1.0
        center = (tier.start_position + tier.end_position) / 2
        return 1.0 - abs(item.position - center) / (tier.size / 2) * 0.5

    @staticmethod
    def _separation(index: int, ordered: Sequence[TieredItem]) -> float:
        item = ordered[index]
        separation = 1.0
        if index > 0 and ordered[index - 1].tier.id != item.tier.id:
            separation *= 0.9
        if index + 1 < len(ordered) and ordered[index + 1].tier.id != item.tier.id:
            separation *= 0.9
        return separation

    def _algorithm_agreement(self, position: int) -> float:
        if len(self._algorithm_results) < 2:
            return 0.8
        pairs = list(itertools.combinations(self._algorithm_results, 2))
        agreement = 0.0
        for first, second in pairs:
            diff = abs(tier_for_position(position, first.boundaries) - tier_for_position(position, second.boundaries))
            if diff == 0:
                agreement += 1.0
            elif diff == 1:
                agreement += 0.5
        return agreement / len(pairs)

    def _alternative(
        self, item: TieredItem, tiers: Sequence[TierDefinition]
    ) -> tuple[TierDefinition | None, int | None]:
        """Adjacent tier on the nearer edge and how strongly the item leans into it."""
        index = next((i for i, t in enumerate(tiers) if t.id == item.tier.id), None)
        if index is None:
            return None, None

        to_start = item.position - item.tier.start_position
        to_end = item.tier.end_position - item.position - 1
        if to_start <= to_end:
            neighbour_index, distance = index - 1, to_start
        else:
            neighbour_index, distance = index + 1, to_end
        if not 0 <= neighbour_index < len(tiers):
            return None, None

        half_width = item.tier.size / 2
        closeness = 1.0 - distance / half_width if half_width > 0 else 1.0
        return tiers[neighbour_index], min(100, max(0, round_half_up(closeness * 100)))

    # -- Scoring -------------------------------------------------------------

    def _score(self, factors: ConfidenceFactors) -> int:
        w = self._weights
        total = (
            factors.data_points * w.data_points
            + factors.consistency * w.consistency
            + factors.proximity * w.proximity
            + factors.separation * w.separation
            + factors.algorithm_agreement * w.algorithm_agreement
        )
        return min(100, max(0, round_half_up(total * 100)))

    def all_confidences(self, items: Sequence[TieredItem], tiers: Sequence[TierDefinition]) -> list[TierConfidence]:
        """Score every item, returned in input order."""
        positions = {item.item_id: item.position for item in items}
        ordered = sorted(items, key=lambda i: i.position)
        separations = {item.item_id: self._separation(idx, ordered) for idx, item in enumerate(ordered)}

        confidences: list[TierConfidence] = []
        for item in items:
            factors = ConfidenceFactors(
                data_points=self._data_points(item.item_id),
                consistency=self._consistency(item, positions),
                proximity=self._proximity(item),
                separation=separations[item.item_id],
                algorithm_agreement=self._algorithm_agreement(item.position),
            )
            alternative_tier, alternative_confidence = self._alternative(item, tiers)
            confidences.append(
                TierConfidence(
                    item_id=item.item_id,
                    tier=item.tier,
                    confidence=self._score(factors),
                    factors=factors,
                    alternative_tier=alternative_tier,
                    alternative_confidence=alternative_confidence,
                )
            )
        return confidences

    def item_confidence(
        self, item: TieredItem, items: Sequence[TieredItem], tiers: Sequence[TierDefinition]
    ) -> TierConfidence:
        for confidence in self.all_confidences(items, tiers):
            if confidence.item_id == item.item_id:
                return confidence
        msg = f"Item {item.item_id!r} is not among the scored items"
        raise ValueError(msg)

    @staticmethod
    def overall_confidence(confidences: Sequence[TierConfidence]) -> int:
        if not confidences:
            return 0
        return round_half_up(sum(c.confidence for c in confidences) / len(confidences))

    def low_confidence_items(
        self, confidences: Sequence[TierConfidence], threshold: int | None = None
    ) -> list[TierConfidence]:
        limit = self._low_confidence_threshold if threshold is None else threshold
        return [c for c in confidences if c.confidence < limit]

    def boundary_items(self, confidences: Sequence[TierConfidence], threshold: int | None = None) -> list[TierConfidence]:
        limit = self._boundary_threshold if threshold is None else threshold
        return [
            c
            for c in confidences
            if c.alternative_tier is not None
            and c.alternative_confidence is not None
            and c.alternative_confidence >= limit
        ]

    def generate_report(self, items: Sequence[TieredItem], tiers: Sequence[TierDefinition]) -> ConfidenceReport:
        confidences = self.all_confidences(items, tiers)
        overall = self.overall_confidence(confidences)
        low = self.low_confidence_items(confidences)
        boundary = self.boundary_items(confidences)

        tier_confidences: dict[str, int] = {}
        for tier in tiers:
            scores = [c.confidence for c in confidences if c.tier.id == tier.id]
            if scores:
                tier_confidences[tier.id] = round_half_up(sum(scores) / len(scores))

        recommendations: list[str] = []
        if low:
            recommendations.append(f"{len(low)} item(s) have low confidence scores. Consider more comparisons.")
        if boundary:
            recommendations.append(
                f"{len(boundary)} item(s) are near tier boundaries and could shift with more data."
            )
        recommended = len(items) * 3
        if len(self._comparisons) < recommended:
            recommendations.append(
                "More comparisons would improve confidence. "
                f"Current: {len(self._comparisons)}, Recommended: {recommended}+"
            )
        if overall < 70:
            recommendations.append("Overall confidence is below 70%. Results may change with additional data.")

        logger.debug("Scored %d items, overall confidence %d", len(confidences), overall)
        return ConfidenceReport(
            overall_confidence=overall,
            tier_confidences=tier_confidences,
            low_confidence_count=len(low),
            boundary_item_count=len(boundary),
            recommendations=tuple(recommendations),
            confidences=tuple(confidences),
        )

    def reset(self) -> None:
        self._comparisons = []
        self._by_item = {}
        self._algorithm_results = []
