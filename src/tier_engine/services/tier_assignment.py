"""Turn boundaries into labelled tiers and place ranked items into them."""

import logging
import math
import string
from collections.abc import Iterable, Sequence
from itertools import pairwise

from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import KMeansConfig
from tier_engine.domain.tier import (
    RankedItem,
    SmartTierResult,
    TierDefinition,
    TieredItem,
    TierStats,
    TierSuggestion,
    TierSummary,
)
from tier_engine.services.boundaries import (
    effective_tier_count,
    equal_boundaries,
    percentile_boundaries,
    pyramid_boundaries,
    round_half_up,
)
from tier_engine.services.clustering import ClusteringEngine
from tier_engine.services.threshold_recommender import recommend_tier_count

logger = logging.getLogger(__name__)

STANDARD_LABELS: tuple[str, ...] = ("S", "A", "B", "C", "D", "F")
DETAILED_LABELS: tuple[str, ...] = ("S", "A+", "A", "A-", "B+", "B", "B-", "C", "D")
SUGGESTION_KMEANS_ITERATIONS = 15


def default_labels(count: int) -> list[str]:
    """Conventional tier labels for ``count`` tiers."""
    if count <= len(STANDARD_LABELS):
        return list(STANDARD_LABELS[: max(count, 0)])
    if count == len(DETAILED_LABELS):
        return list(DETAILED_LABELS)
    if count <= len(string.ascii_uppercase) + 1:
        return ["S", *string.ascii_uppercase[: count - 1]]
    return [f"Tier {i + 1}" for i in range(count)]


def create_tiers_from_boundaries(boundaries: Sequence[int], labels: Sequence[str] | None = None) -> list[TierDefinition]:
    count = max(len(boundaries) - 1, 0)
    names = list(labels) if labels is not None else default_labels(count)
    if len(names) < count:
        names += [f"Tier {i + 1}" for i in range(len(names), count)]
    return [
        TierDefinition(id=f"tier-{i}", label=names[i], start_position=start, end_position=end)
        for i, (start, end) in enumerate(pairwise(boundaries))
    ]


def tier_definition_for_position(position: int, tiers: Sequence[TierDefinition]) -> TierDefinition | None:
    """Tier containing ``position``; positions past the end land in the last tier."""
    for tier in tiers:
        if tier.contains(position):
            return tier
    return tiers[-1] if tiers else None


def assign_tiers_to_items(items: Iterable[RankedItem], tiers: Sequence[TierDefinition]) -> list[TieredItem]:
    """Place items in their tiers, ordered by position.

    ``tier_rank`` counts from 1 within each tier. The percentile is relative to
    the number of ranked items, clamped to ``[0, 100]``.
    """
    ordered = sorted(items, key=lambda i: i.position)
    total = len(ordered)
    counts: dict[str, int] = {}
    tiered: list[TieredItem] = []
    for item in ordered:
        tier = tier_definition_for_position(item.position, tiers)
        if tier is None:
            continue
        counts[tier.id] = counts.get(tier.id, 0) + 1
        percentile = round_half_up((total - item.position - 1) / total * 100)
        tiered.append(
            TieredItem(
                item_id=item.item_id,
                position=item.position,
                tier=tier,
                percentile=min(100, max(0, percentile)),
                tier_rank=counts[tier.id],
            )
        )
    return tiered


def calculate_tier_stats(tiers: Sequence[TierDefinition], tiered_items: Sequence[TieredItem]) -> list[TierStats]:
    stats: list[TierStats] = []
    for tier in tiers:
        positions = [item.position for item in tiered_items if item.tier.id == tier.id]
        filled = len(positions)
        stats.append(
            TierStats(
                tier=tier,
                item_count=tier.size,
                filled_count=filled,
                empty_count=tier.size - filled,
                percentage=round_half_up(filled / tier.size * 100) if tier.size > 0 else 0,
                average_position=(
                    sum(positions) / filled if filled else (tier.start_position + tier.end_position) / 2
                ),
            )
        )
    return stats


def calculate_tier_summary(
    tiers: Sequence[TierDefinition], tiered_items: Sequence[TieredItem], list_size: int
) -> TierSummary:
    """Per-tier stats plus the dominant tier and an entropy balance score.

    The balance score is the Shannon entropy of the filled counts divided by
    its maximum ``log2(len(tiers))``, as a 0-100 integer.
    """
    stats = calculate_tier_stats(tiers, tiered_items)

    distribution: dict[str, int] = {}
    for item in tiered_items:
        distribution[item.tier.id] = distribution.get(item.tier.id, 0) + 1

    dominant: TierDefinition | None = None
    most = 0
    for stat in stats:
        if stat.filled_count > most:
            most = stat.filled_count
            dominant = stat.tier

    total = sum(s.filled_count for s in stats)
    balance = 0.0
    if total > 0:
        entropy = -sum(s.filled_count / total * math.log2(s.filled_count / total) for s in stats if s.filled_count)
        max_entropy = math.log2(len(tiers))
        balance = entropy / max_entropy * 100 if max_entropy > 0 else 0.0

    return TierSummary(
        total_items=list_size,
        tiered_items=len(tiered_items),
        tier_stats=tuple(stats),
        distribution=distribution,
        dominant_tier=dominant,
        balance_score=round_half_up(balance),
    )


def generate_tier_suggestions(
    list_size: int, filled_positions: Sequence[int], tier_count: int = 5
) -> list[TierSuggestion]:
    """Candidate boundaries from several algorithms, most confident first.

    The k-means candidate is only offered once there are at least as many
    filled positions as tiers.
    """
    k = effective_tier_count(list_size, tier_count)
    suggestions = [
        TierSuggestion(
            boundaries=tuple(equal_boundaries(list_size, k)),
            confidence=70,
            reasoning="Equal distribution ensures balanced tier sizes",
            algorithm=Algorithm.EQUAL,
        ),
        TierSuggestion(
            boundaries=tuple(pyramid_boundaries(list_size, k)),
            confidence=85,
            reasoning="Pyramid structure reflects natural ranking distributions where elite items are rare",
            algorithm=Algorithm.PYRAMID,
        ),
    ]
    if len(filled_positions) >= k:
        engine = ClusteringEngine(KMeansConfig(tier_count=k, max_iterations=SUGGESTION_KMEANS_ITERATIONS))
        engine.set_data(filled_positions)
        suggestions.append(
            TierSuggestion(
                boundaries=tuple(engine.calculate_boundaries(list_size)),
                confidence=80,
                reasoning="K-means finds natural groupings based on position clusters",
                algorithm=Algorithm.KMEANS,
            )
        )
    suggestions.append(
        TierSuggestion(
            boundaries=tuple(percentile_boundaries(list_size, k)),
            confidence=75,
            reasoning="Percentile-based ensures top percentages in top tiers",
            algorithm=Algorithm.PERCENTILE,
        )
    )
    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    return suggestions


def smart_calculate_tiers(list_size: int, items: Sequence[RankedItem]) -> SmartTierResult:
    """Pick a tier count for the list size and tier it with the best suggestion."""
    tier_count = effective_tier_count(list_size, recommend_tier_count(list_size))
    suggestions = generate_tier_suggestions(list_size, [item.position for item in items], tier_count)
    best = suggestions[0]
    tiers = create_tiers_from_boundaries(best.boundaries)
    tiered = assign_tiers_to_items(items, tiers)
    logger.debug("Smart tiering chose %s with %d tiers for %d items", best.algorithm.value, tier_count, len(items))
    return SmartTierResult(
        tier_count=tier_count,
        tiers=tuple(tiers),
        tiered_items=tuple(tiered),
        summary=calculate_tier_summary(tiers, tiered, list_size),
        suggestions=tuple(suggestions),
    )
