"""Per-call entry points for running tier algorithms.

Calculators are built fresh for every call; nothing here keeps state between
calls.
"""

import logging
import time
from collections.abc import Callable, Sequence

from tier_engine.domain.algorithm import (
    Algorithm,
    AlgorithmComparison,
    AlgorithmResult,
    ClosedFormMetadata,
)
from tier_engine.domain.algorithm_config import (
    DEFAULT_TIER_COUNT,
    AlgorithmConfig,
    ClosedFormConfig,
    EloConfig,
    HybridConfig,
    JenksConfig,
    KMeansConfig,
)
from tier_engine.domain.comparison import Comparison
from tier_engine.domain.errors import AlgorithmError
from tier_engine.domain.result import Result, partition_results
from tier_engine.services.boundaries import closed_form_boundaries, equal_boundaries, tier_sizes
from tier_engine.services.clustering import ClusteringEngine
from tier_engine.services.deadline import Deadline, check_deadline
from tier_engine.services.elo import EloRatingEngine
from tier_engine.services.hybrid import (
    HybridCombiner,
    agreement_recommendation,
    overall_agreement,
    run_safely,
    run_tasks,
    select_best_result,
)
from tier_engine.services.jenks import JenksNaturalBreaks

logger = logging.getLogger(__name__)

type Calculator = EloRatingEngine | ClusteringEngine | JenksNaturalBreaks | HybridCombiner

CLOSED_FORM_CONFIDENCE = 75
POSITION_KMEANS_ITERATIONS = 10
COMPARED_ALGORITHMS: tuple[Algorithm, ...] = (
    Algorithm.ELO,
    Algorithm.KMEANS,
    Algorithm.JENKS,
    Algorithm.PERCENTILE,
    Algorithm.PYRAMID,
)


def default_config(algorithm: Algorithm, tier_count: int = DEFAULT_TIER_COUNT) -> AlgorithmConfig:
    match algorithm:
        case Algorithm.ELO:
            return EloConfig(tier_count=tier_count)
        case Algorithm.KMEANS:
            return KMeansConfig(tier_count=tier_count)
        case Algorithm.JENKS:
            return JenksConfig(tier_count=tier_count)
        case Algorithm.HYBRID:
            return HybridConfig(tier_count=tier_count)
        case _:
            return ClosedFormConfig(tier_count=tier_count)


def create_calculator(
    algorithm: Algorithm,
    config: AlgorithmConfig | None = None,
    deadline: Deadline | None = None,
    tier_count: int = DEFAULT_TIER_COUNT,
) -> Calculator:
    """Build a fresh calculator for a data-driven algorithm.

    Args:
        algorithm: One of ELO, k-means, Jenks or hybrid.
        config: Config matching the algorithm; defaults are used when omitted.
        deadline: Optional deadline checked by the iterative algorithms.
        tier_count: Tier count for the default config.

    Raises:
        ValueError: If the algorithm is closed-form or the config type does
            not belong to it.
    """
    config = config if config is not None else default_config(algorithm, tier_count)
    match algorithm, config:
        case Algorithm.ELO, EloConfig():
            return EloRatingEngine(config)
        case Algorithm.KMEANS, KMeansConfig():
            return ClusteringEngine(config, deadline=deadline)
        case Algorithm.JENKS, JenksConfig():
            return JenksNaturalBreaks(config, deadline=deadline)
        case Algorithm.HYBRID, HybridConfig():
            return HybridCombiner(config, deadline=deadline)
    msg = f"No calculator for {algorithm.value!r} with {type(config).__name__}"
    raise ValueError(msg)


def calculate_boundaries(
    list_size: int,
    tier_count: int = DEFAULT_TIER_COUNT,
    algorithm: Algorithm = Algorithm.EQUAL,
    params: AlgorithmConfig | None = None,
) -> list[int]:
    """Boundaries from list size alone.

    Closed-form algorithms use ``params`` when it is a ``ClosedFormConfig``.
    k-means clusters the positions ``0..list_size-1``. Algorithms that need
    comparison or score data fall back to equal boundaries.
    """
    match algorithm:
        case Algorithm.EQUAL | Algorithm.PYRAMID | Algorithm.BELL | Algorithm.PERCENTILE | Algorithm.CUSTOM:
            config = params if isinstance(params, ClosedFormConfig) else None
            return closed_form_boundaries(algorithm, list_size, tier_count, config)
        case Algorithm.KMEANS:
            config = (
                params
                if isinstance(params, KMeansConfig)
                else KMeansConfig(tier_count=tier_count, max_iterations=POSITION_KMEANS_ITERATIONS)
            )
            engine = ClusteringEngine(config)
            engine.set_data(range(list_size))
            return engine.calculate_boundaries(list_size)
        case _:
            logger.warning("%s needs input data, using equal boundaries", algorithm.value)
            return equal_boundaries(list_size, tier_count)


def _closed_form_result(
    algorithm: Algorithm, list_size: int, tier_count: int, config: AlgorithmConfig | None
) -> AlgorithmResult:
    start = time.perf_counter()
    boundaries = calculate_boundaries(list_size, tier_count, algorithm, config)
    return AlgorithmResult(
        algorithm=algorithm,
        boundaries=tuple(boundaries),
        confidence=CLOSED_FORM_CONFIDENCE,
        execution_time=time.perf_counter() - start,
        metadata=ClosedFormMetadata(tier_sizes=tuple(tier_sizes(boundaries))),
    )


def run_algorithm(
    algorithm: Algorithm,
    list_size: int,
    *,
    comparisons: Sequence[Comparison] | None = None,
    positions: Sequence[float] | None = None,
    tier_count: int = DEFAULT_TIER_COUNT,
    config: AlgorithmConfig | None = None,
    deadline: Deadline | None = None,
) -> AlgorithmResult:
    """Run one algorithm against freshly built state.

    ``tier_count`` only applies when ``config`` is omitted. Comparisons feed
    ELO and hybrid; positions feed k-means, Jenks and hybrid.

    Raises:
        DeadlineExceededError: If the deadline expires before or during the run.
    """
    check_deadline(deadline, f"{algorithm.value} run")
    if algorithm not in (Algorithm.ELO, Algorithm.KMEANS, Algorithm.JENKS, Algorithm.HYBRID):
        return _closed_form_result(algorithm, list_size, tier_count, config)

    calculator = create_calculator(algorithm, config, deadline, tier_count)
    match calculator:
        case EloRatingEngine():
            if comparisons:
                calculator.initialize_items(dict.fromkeys(i for c in comparisons for i in (c.item_a, c.item_b)))
                calculator.process_comparisons(comparisons)
        case ClusteringEngine() | JenksNaturalBreaks():
            if positions:
                calculator.set_data(positions)
        case HybridCombiner():
            if comparisons:
                calculator.set_comparisons(comparisons)
            if positions:
                calculator.set_positions(positions)
    return calculator.calculate(list_size)


def try_run_algorithm(
    algorithm: Algorithm,
    list_size: int,
    *,
    comparisons: Sequence[Comparison] | None = None,
    positions: Sequence[float] | None = None,
    tier_count: int = DEFAULT_TIER_COUNT,
    config: AlgorithmConfig | None = None,
    deadline: Deadline | None = None,
) -> Result[AlgorithmResult, AlgorithmError]:
    """``run_algorithm`` with failures returned as ``Err`` instead of raised.

    Deadline expiry still raises.
    """
    return run_safely(
        algorithm,
        lambda: run_algorithm(
            algorithm,
            list_size,
            comparisons=comparisons,
            positions=positions,
            tier_count=tier_count,
            config=config,
            deadline=deadline,
        ),
    )


def compare_all_algorithms(
    list_size: int,
    *,
    comparisons: Sequence[Comparison] | None = None,
    positions: Sequence[float] | None = None,
    tier_count: int = DEFAULT_TIER_COUNT,
    deadline: Deadline | None = None,
    max_workers: int = 1,
) -> AlgorithmComparison:
    """Run ELO, k-means, Jenks, percentile and pyramid and compare their tierings."""

    def task(algorithm: Algorithm) -> Callable[[], AlgorithmResult]:
        return lambda: run_algorithm(
            algorithm,
            list_size,
            comparisons=comparisons,
            positions=positions,
            tier_count=tier_count,
            deadline=deadline,
        )

    outcomes = run_tasks([(algorithm, task(algorithm)) for algorithm in COMPARED_ALGORITHMS], max_workers)
    results, failures = partition_results(outcomes)

    agreement = overall_agreement(results, list_size)
    best = select_best_result(results, Algorithm.PERCENTILE)
    best_algorithm = best.algorithm if best is not None else Algorithm.PERCENTILE
    logger.info(
        "Compared %d algorithms (%d failed), agreement %.1f, best %s",
        len(results),
        len(failures),
        agreement,
        best_algorithm.value,
    )
    return AlgorithmComparison(
        results=tuple(results),
        agreement=agreement,
        best=best_algorithm,
        recommendation=agreement_recommendation(agreement, best_algorithm),
        failures=tuple(f"{f.algorithm.value}: {f.message}" for f in failures),
    )
