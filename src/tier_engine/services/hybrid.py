"""Ensemble of tiering algorithms with agreement-based selection.

The combiner runs ELO, k-means, Jenks and percentile, measures how much their
tierings agree, and returns either a weighted-vote ensemble or the single most
confident result.
"""

import itertools
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from enum import StrEnum

import numpy as np

from tier_engine.domain.algorithm import (
    Algorithm,
    AlgorithmComparison,
    AlgorithmResult,
    ClosedFormMetadata,
    HybridMetadata,
)
from tier_engine.domain.algorithm_config import AlgorithmWeights, HybridConfig
from tier_engine.domain.comparison import Comparison
from tier_engine.domain.errors import AlgorithmError
from tier_engine.domain.result import Err, Ok, Result, partition_results
from tier_engine.services.boundaries import (
    fallback_boundaries,
    percentile_boundaries,
    reconcile_boundaries,
    round_half_up,
    tier_sizes,
)
from tier_engine.services.clustering import ClusteringEngine
from tier_engine.services.deadline import Deadline, DeadlineExceededError, check_deadline
from tier_engine.services.elo import EloRatingEngine
from tier_engine.services.jenks import JenksNaturalBreaks

logger = logging.getLogger(__name__)

PERCENTILE_CONFIDENCE = 75


class VarianceLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def tiers_for_positions(boundaries: Sequence[int], list_size: int) -> np.ndarray:
    """Tier index of every position in ``[0, list_size)``."""
    edges = np.asarray(boundaries)
    tiers = np.searchsorted(edges, np.arange(list_size), side="right") - 1
    return np.clip(tiers, 0, max(len(edges) - 2, 0))


def calculate_agreement(first: Sequence[int], second: Sequence[int], list_size: int) -> float:
    """Percent of positions placed in the same tier; adjacent tiers earn half credit."""
    if list_size <= 0:
        return 100.0
    diff = np.abs(tiers_for_positions(first, list_size) - tiers_for_positions(second, list_size))
    credit = np.where(diff == 0, 1.0, np.where(diff == 1, 0.5, 0.0))
    return float(credit.mean() * 100)


def overall_agreement(results: Sequence[AlgorithmResult], list_size: int) -> float:
    """Mean pairwise agreement; 0 with fewer than two results."""
    pairs = list(itertools.combinations(results, 2))
    if not pairs:
        return 0.0
    return sum(calculate_agreement(a.boundaries, b.boundaries, list_size) for a, b in pairs) / len(pairs)


def agreement_recommendation(agreement: float, best: Algorithm) -> str:
    if agreement > 80:
        return "High agreement between algorithms. Results are reliable."
    if agreement > 60:
        return f"Moderate agreement. {best.value} shows highest confidence."
    if agreement > 40:
        return "Low agreement. Consider using hybrid results or more data."
    return "Very low agreement. Results may be unreliable. More comparisons needed."


def select_best_result(results: Sequence[AlgorithmResult], fallback: Algorithm) -> AlgorithmResult | None:
    """Highest-confidence result, earliest on ties.

    When every result has zero confidence the fallback algorithm's result wins
    if present.
    """
    if not results:
        return None
    best = max(results, key=lambda r: r.confidence)  # max keeps the first on ties
    if best.confidence > 0:
        return best
    for result in results:
        if result.algorithm is fallback:
            return result
    return best


def percentile_result(list_size: int, tier_count: int) -> AlgorithmResult:
    start = time.perf_counter()
    boundaries = percentile_boundaries(list_size, tier_count)
    return AlgorithmResult(
        algorithm=Algorithm.PERCENTILE,
        boundaries=tuple(boundaries),
        confidence=PERCENTILE_CONFIDENCE,
        execution_time=time.perf_counter() - start,
        metadata=ClosedFormMetadata(tier_sizes=tuple(tier_sizes(boundaries))),
    )


def weighted_vote_boundaries(
    results: Sequence[AlgorithmResult],
    list_size: int,
    tier_count: int,
    weights: AlgorithmWeights,
) -> list[int]:
    """Boundaries from a per-position vote weighted by algorithm weight and confidence.

    Each position takes the rounded weighted mean of the tiers the results put
    it in (tier 0 when no result carries weight). A boundary is emitted
    wherever the voted tier rises, then the count is reconciled.
    """
    if list_size <= 0:
        return [0, 0]

    votes = np.zeros(list_size)
    total = 0.0
    for result in results:
        effective = weights.weight_for(result.algorithm) * result.confidence / 100
        votes += tiers_for_positions(result.boundaries, list_size) * effective
        total += effective
    voted = np.floor(votes / total + 0.5).astype(int) if total > 0 else np.zeros(list_size, dtype=int)

    raw = [0]
    current = 0
    for position in range(1, list_size):
        if voted[position] > current:
            raw.append(position)
            current = int(voted[position])
    raw.append(list_size)
    return reconcile_boundaries(raw, list_size, tier_count)


def weighted_confidence(results: Sequence[AlgorithmResult], weights: AlgorithmWeights) -> int:
    weight_sum = sum(weights.weight_for(r.algorithm) for r in results)
    if weight_sum <= 0:
        return 0
    confidence = sum(r.confidence * weights.weight_for(r.algorithm) for r in results) / weight_sum
    return min(100, max(0, round_half_up(confidence)))


def run_safely(algorithm: Algorithm, task: Callable[[], AlgorithmResult]) -> Result[AlgorithmResult, AlgorithmError]:
    try:
        return Ok(task())
    except DeadlineExceededError:
        raise
    except Exception as e:
        logger.warning("%s algorithm failed: %s", algorithm.value, e)
        return Err(AlgorithmError(message=str(e), algorithm=algorithm, exception_type=type(e).__name__))


def run_tasks(
    tasks: Sequence[tuple[Algorithm, Callable[[], AlgorithmResult]]], max_workers: int = 1
) -> list[Result[AlgorithmResult, AlgorithmError]]:
    """Run each task through ``run_safely``, on a thread pool when ``max_workers > 1``.

    Outcomes keep the task order either way.
    """
    effective_workers = min(max_workers, len(tasks))
    if effective_workers <= 1:
        return [run_safely(algorithm, task) for algorithm, task in tasks]
    with ThreadPoolExecutor(max_workers=effective_workers) as executor:
        futures = [executor.submit(run_safely, algorithm, task) for algorithm, task in tasks]
        return [f.result() for f in futures]


class HybridCombiner:
    """Runs every data-driven algorithm and reconciles their boundaries."""

    def __init__(self, config: HybridConfig | None = None, deadline: Deadline | None = None) -> None:
        self._config = config or HybridConfig()
        self._deadline = deadline
        tier_count = self._config.tier_count
        self._elo = EloRatingEngine(replace(self._config.elo, tier_count=tier_count))
        self._clustering = ClusteringEngine(replace(self._config.kmeans, tier_count=tier_count), deadline=deadline)
        self._jenks = JenksNaturalBreaks(replace(self._config.jenks, tier_count=tier_count), deadline=deadline)
        self._results: list[AlgorithmResult] = []
        self._failures: list[AlgorithmError] = []

    @property
    def config(self) -> HybridConfig:
        return self._config

    @property
    def results(self) -> tuple[AlgorithmResult, ...]:
        return tuple(self._results)

    @property
    def failures(self) -> tuple[AlgorithmError, ...]:
        return tuple(self._failures)

    def set_comparisons(self, comparisons: Iterable[Comparison]) -> None:
        comparisons = list(comparisons)
        self._elo.initialize_items(dict.fromkeys(item for c in comparisons for item in (c.item_a, c.item_b)))
        self._elo.process_comparisons(comparisons)

    def set_positions(self, positions: Sequence[float]) -> None:
        self._clustering.set_data(positions)
        self._jenks.set_data(positions)

    def run_all(self, list_size: int) -> list[AlgorithmResult]:
        """Run each algorithm, keeping survivors and recording failures.

        With ``max_workers > 1`` the algorithms run on a thread pool; results
        keep the ELO, k-means, Jenks, percentile order either way.
        """
        tasks: list[tuple[Algorithm, Callable[[], AlgorithmResult]]] = [
            (Algorithm.ELO, lambda: self._elo.calculate(list_size)),
            (Algorithm.KMEANS, lambda: self._clustering.calculate(list_size)),
            (Algorithm.JENKS, lambda: self._jenks.calculate(list_size)),
            (Algorithm.PERCENTILE, lambda: percentile_result(list_size, self._config.tier_count)),
        ]

        self._results, self._failures = partition_results(run_tasks(tasks, self._config.max_workers))
        logger.debug(
            "Hybrid ran %d algorithms, %d failed", len(self._results) + len(self._failures), len(self._failures)
        )
        return list(self._results)

    def _metadata(self, list_size: int) -> HybridMetadata:
        return HybridMetadata(
            algorithms=tuple(r.algorithm for r in self._results),
            weights={r.algorithm: self._config.weights.weight_for(r.algorithm) for r in self._results},
            agreement=overall_agreement(self._results, list_size),
            individual_results=tuple(self._results),
            failures=tuple(f"{f.algorithm.value}: {f.message}" for f in self._failures),
        )

    def combine(self, list_size: int) -> AlgorithmResult:
        """Weighted per-position vote over the current results."""
        if not self._results:
            self.run_all(list_size)
        check_deadline(self._deadline, "hybrid combine")
        start = time.perf_counter()
        weights = self._config.weights
        boundaries = weighted_vote_boundaries(self._results, list_size, self._config.tier_count, weights)
        return AlgorithmResult(
            algorithm=Algorithm.HYBRID,
            boundaries=tuple(boundaries),
            confidence=weighted_confidence(self._results, weights),
            execution_time=time.perf_counter() - start,
            metadata=self._metadata(list_size),
        )

    def compare(self, list_size: int) -> AlgorithmComparison:
        if not self._results:
            self.run_all(list_size)
        agreement = overall_agreement(self._results, list_size)
        best = select_best_result(self._results, self._config.fallback)
        best_algorithm = best.algorithm if best is not None else self._config.fallback
        return AlgorithmComparison(
            results=tuple(self._results),
            agreement=agreement,
            best=best_algorithm,
            recommendation=agreement_recommendation(agreement, best_algorithm),
            failures=tuple(f"{f.algorithm.value}: {f.message}" for f in self._failures),
        )

    def calculate(self, list_size: int) -> AlgorithmResult:
        """Ensemble when the algorithms agree, otherwise the most confident single result."""
        start = time.perf_counter()
        self.run_all(list_size)

        if not self._results:
            logger.warning("Every hybrid algorithm failed, using evenly spaced boundaries")
            return AlgorithmResult(
                algorithm=Algorithm.HYBRID,
                boundaries=tuple(fallback_boundaries(list_size, self._config.tier_count)),
                confidence=0,
                execution_time=time.perf_counter() - start,
                metadata=self._metadata(list_size),
            )

        agreement = overall_agreement(self._results, list_size)
        if agreement > self._config.agreement_threshold:
            logger.debug("Agreement %.1f above threshold, combining results", agreement)
            return self.combine(list_size)

        best = select_best_result(self._results, self._config.fallback)
        assert best is not None
        logger.debug("Agreement %.1f at or below threshold, using %s", agreement, best.algorithm.value)
        return best

    def recommend_algorithm(self, has_comparisons: bool, data_size: int, variance_level: VarianceLevel) -> Algorithm:
        if has_comparisons and self._elo.sorted_items():
            return Algorithm.ELO
        if variance_level == VarianceLevel.HIGH:
            return Algorithm.JENKS
        if variance_level == VarianceLevel.MEDIUM and data_size >= 10:
            return Algorithm.KMEANS
        return Algorithm.PERCENTILE

    def reset(self) -> None:
        self._elo.reset()
        self._clustering.reset()
        self._jenks.reset()
        self._results = []
        self._failures = []
