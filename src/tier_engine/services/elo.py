"""ELO ratings from pairwise comparisons, binned into tiers."""

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from tier_engine.domain.algorithm import (
    CLOSED_FORM_ALGORITHMS,
    Algorithm,
    AlgorithmResult,
    EloMetadata,
    FallbackMetadata,
)
from tier_engine.domain.algorithm_config import PYRAMID_RATIO, ClosedFormConfig, EloBinning, EloConfig
from tier_engine.domain.comparison import Comparison, EloRatedItem
from tier_engine.domain.tier import TierDefinition
from tier_engine.services.boundaries import (
    closed_form_boundaries,
    effective_tier_count,
    equal_boundaries,
    fallback_boundaries,
    reconcile_boundaries,
    round_half_up,
    scale_boundaries,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86_400.0


@dataclass
class _RatingState:
    item_id: str
    rating: float
    comparisons: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0


def expected_score(rating: float, opponent_rating: float) -> float:
    return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / 400))


class EloRatingEngine:
    """Turns a comparison history into ratings and a tiering of the rated items."""

    def __init__(self, config: EloConfig | None = None) -> None:
        self._config = config or EloConfig()
        if self._config.boundary_algorithm not in CLOSED_FORM_ALGORITHMS:
            msg = f"ELO boundary algorithm must be closed-form, got {self._config.boundary_algorithm.value!r}"
            raise ValueError(msg)
        self._items: dict[str, _RatingState] = {}
        self._processed = 0

    @property
    def config(self) -> EloConfig:
        return self._config

    @property
    def total_comparisons(self) -> int:
        return self._processed

    def initialize_items(self, item_ids: Iterable[str]) -> None:
        for item_id in item_ids:
            if item_id not in self._items:
                self._items[item_id] = _RatingState(item_id=item_id, rating=self._config.initial_rating)

    def _k_factor(self, comparisons: int) -> float:
        k = self._config.k_factor
        if not self._config.adaptive_k:
            return k
        if comparisons < 10:
            return k * 1.5
        if comparisons >= 30:
            return k * 0.75
        return k

    def process_comparison(self, comparison: Comparison, weight: float = 1.0) -> None:
        """Apply one comparison to both items' ratings.

        ``weight`` scales the update on top of the comparison's own confidence.
        """
        if comparison.item_a == comparison.item_b:
            logger.warning("Ignoring comparison of %r with itself", comparison.item_a)
            return
        self.initialize_items([comparison.item_a, comparison.item_b])
        item_a = self._items[comparison.item_a]
        item_b = self._items[comparison.item_b]

        expected_a = expected_score(item_a.rating, item_b.rating)
        expected_b = 1.0 - expected_a
        score_a = comparison.score_for(comparison.item_a)
        score_b = 1.0 - score_a

        if comparison.is_draw:
            item_a.draws += 1
            item_b.draws += 1
        elif score_a == 1.0:
            item_a.wins += 1
            item_b.losses += 1
        else:
            item_a.losses += 1
            item_b.wins += 1

        w = (comparison.confidence if comparison.confidence is not None else 1.0) * weight
        k_a = self._k_factor(item_a.comparisons)
        k_b = self._k_factor(item_b.comparisons)
        item_a.rating += k_a * w * (score_a - expected_a)
        item_b.rating += k_b * w * (score_b - expected_b)
        item_a.comparisons += 1
        item_b.comparisons += 1
        self._processed += 1

    def _decay_weights(self, ordered: Sequence[Comparison]) -> list[float]:
        decay = self._config.decay_factor
        if decay >= 1.0 or not ordered:
            return [1.0] * len(ordered)
        newest = ordered[-1].timestamp
        return [decay ** ((newest - c.timestamp) / SECONDS_PER_DAY / 7) for c in ordered]

    def process_comparisons(self, comparisons: Iterable[Comparison]) -> None:
        """Process comparisons oldest first; ties keep their input order."""
        ordered = sorted(comparisons, key=lambda c: c.timestamp)
        for comparison, weight in zip(ordered, self._decay_weights(ordered), strict=True):
            self.process_comparison(comparison, weight)
        logger.debug("Processed %d comparisons across %d items", len(ordered), len(self._items))

    def _confidence(self, state: _RatingState) -> float:
        minimum = max(self._config.min_comparisons, 1)
        count_score = min(100.0, state.comparisons / minimum * 50)
        decisive = state.wins + state.losses
        consistency = abs(state.wins - state.losses) / decisive * 30 if decisive else 0.0
        stability = 20.0 if state.comparisons > 10 else state.comparisons / 10 * 20
        confidence = min(100.0, count_score + consistency + stability)
        if state.comparisons < self._config.min_comparisons:
            confidence *= 0.5 + 0.5 * state.comparisons / minimum
        return confidence

    def _snapshot(self, state: _RatingState) -> EloRatedItem:
        return EloRatedItem(
            item_id=state.item_id,
            rating=state.rating,
            comparisons=state.comparisons,
            wins=state.wins,
            losses=state.losses,
            draws=state.draws,
            confidence=self._confidence(state),
        )

    def sorted_items(self) -> list[EloRatedItem]:
        """Items by rating, highest first; equal ratings order by item id."""
        ordered = sorted(self._items.values(), key=lambda s: (-s.rating, s.item_id))
        return [self._snapshot(s) for s in ordered]

    def rating(self, item_id: str) -> float | None:
        state = self._items.get(item_id)
        return state.rating if state is not None else None

    def ratings(self) -> dict[str, float]:
        return {item_id: state.rating for item_id, state in self._items.items()}

    def _sequence_boundaries(self, item_count: int) -> list[int]:
        config = ClosedFormConfig(tier_count=self._config.tier_count)
        return closed_form_boundaries(self._config.boundary_algorithm, item_count, self._config.tier_count, config)

    def _rating_range_boundaries(self, ratings: Sequence[float]) -> list[int]:
        n = len(ratings)
        k = effective_tier_count(n, self._config.tier_count)
        top, bottom = ratings[0], ratings[-1]
        spread = top - bottom
        if spread == 0:
            return equal_boundaries(n, k)

        weights = [PYRAMID_RATIO**i for i in range(k)]
        total = sum(weights)
        raw = [0]
        cumulative = 0.0
        for weight in weights[:-1]:
            cumulative += weight
            threshold = top - spread * cumulative / total
            raw.append(sum(1 for r in ratings if r >= threshold))
        raw.append(n)
        return reconcile_boundaries(raw, n, k)

    def calculate_boundaries(self, list_size: int | None = None) -> list[int]:
        """Partition the rating-ordered items, then map onto ``list_size`` positions."""
        items = self.sorted_items()
        size = len(items) if list_size is None else list_size
        if not items:
            return fallback_boundaries(size, self._config.tier_count)

        match self._config.binning:
            case EloBinning.SEQUENCE:
                boundaries = self._sequence_boundaries(len(items))
            case EloBinning.RATING_RANGE:
                boundaries = self._rating_range_boundaries([item.rating for item in items])

        return reconcile_boundaries(scale_boundaries(boundaries, len(items), size), size, self._config.tier_count)

    def assign_tiers(self, tiers: Sequence[TierDefinition]) -> dict[str, TierDefinition]:
        """Assign each item the tier covering its rank in the rating order."""
        assignments: dict[str, TierDefinition] = {}
        for index, item in enumerate(self.sorted_items()):
            for tier in tiers:
                if tier.contains(index):
                    assignments[item.item_id] = tier
                    break
        return assignments

    def calculate(self, list_size: int) -> AlgorithmResult:
        start = time.perf_counter()
        items = self.sorted_items()
        if not items:
            logger.info("ELO has no rated items, using evenly spaced boundaries")
            return AlgorithmResult(
                algorithm=Algorithm.ELO,
                boundaries=tuple(fallback_boundaries(list_size, self._config.tier_count)),
                confidence=0,
                execution_time=time.perf_counter() - start,
                metadata=FallbackMetadata(reason="no rated items"),
            )

        boundaries = self.calculate_boundaries(list_size)
        ratings = [item.rating for item in items]
        average_confidence = sum(item.confidence for item in items) / len(items)

        return AlgorithmResult(
            algorithm=Algorithm.ELO,
            boundaries=tuple(boundaries),
            confidence=min(100, max(0, round_half_up(average_confidence))),
            execution_time=time.perf_counter() - start,
            metadata=EloMetadata(
                item_count=len(items),
                total_comparisons=self._processed,
                average_rating=sum(ratings) / len(ratings),
                rating_range=max(ratings) - min(ratings),
                has_enough_data=all(item.comparisons >= self._config.min_comparisons for item in items),
                ratings=tuple((item.item_id, item.rating) for item in items),
            ),
        )

    def reset(self) -> None:
        self._items.clear()
        self._processed = 0
