from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from tier_engine.domain.cluster import ClassStats, Cluster


class Algorithm(StrEnum):
    EQUAL = "equal"
    PYRAMID = "pyramid"
    BELL = "bell"
    PERCENTILE = "percentile"
    CUSTOM = "custom"
    KMEANS = "kmeans"
    JENKS = "jenks"
    ELO = "elo"
    HYBRID = "hybrid"


CLOSED_FORM_ALGORITHMS: frozenset[Algorithm] = frozenset(
    {Algorithm.EQUAL, Algorithm.PYRAMID, Algorithm.BELL, Algorithm.PERCENTILE}
)


@dataclass(frozen=True)
class ClosedFormMetadata:
    tier_sizes: tuple[int, ...]


@dataclass(frozen=True)
class KMeansMetadata:
    clusters: tuple[Cluster, ...]
    silhouette_score: float
    wcss: float
    iterations: int
    converged: bool
    cluster_sizes: tuple[int, ...]


@dataclass(frozen=True)
class JenksMetadata:
    gvf: float
    break_values: tuple[float, ...]
    data_points: int
    class_count: int
    class_stats: tuple[ClassStats, ...] = ()


@dataclass(frozen=True)
class EloMetadata:
    item_count: int
    total_comparisons: int
    average_rating: float
    rating_range: float
    has_enough_data: bool
    ratings: tuple[tuple[str, float], ...] = ()


@dataclass(frozen=True)
class FallbackMetadata:
    reason: str


@dataclass(frozen=True)
class HybridMetadata:
    algorithms: tuple[Algorithm, ...]
    weights: dict[Algorithm, float]
    agreement: float
    individual_results: tuple[AlgorithmResult, ...]
    failures: tuple[str, ...] = ()


type AlgorithmMetadata = (
    ClosedFormMetadata | KMeansMetadata | JenksMetadata | EloMetadata | HybridMetadata | FallbackMetadata
)


@dataclass(frozen=True)
class AlgorithmResult:
    algorithm: Algorithm
    boundaries: tuple[int, ...]
    confidence: int  # 0-100
    execution_time: float  # seconds
    metadata: AlgorithmMetadata


@dataclass(frozen=True)
class AlgorithmComparison:
    results: tuple[AlgorithmResult, ...]
    agreement: float
    best: Algorithm
    recommendation: str
    failures: tuple[str, ...] = field(default_factory=tuple)

    @property
    def algorithms(self) -> tuple[Algorithm, ...]:
        return tuple(r.algorithm for r in self.results)

    def result_for(self, algorithm: Algorithm) -> AlgorithmResult | None:
        for result in self.results:
            if result.algorithm is algorithm:
                return result
        return None
