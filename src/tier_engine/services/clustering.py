"""One-dimensional k-means clustering for tier boundary detection.

Groups a list of numeric values (positions or scores) into ``k`` clusters and
turns the sorted cluster sizes into list boundaries.
"""

import logging
import time
from collections.abc import Sequence

import numpy as np

from tier_engine.domain.algorithm import Algorithm, AlgorithmResult, FallbackMetadata, KMeansMetadata
from tier_engine.domain.algorithm_config import InitMethod, KMeansConfig
from tier_engine.domain.cluster import Cluster
from tier_engine.services.boundaries import (
    fallback_boundaries,
    reconcile_boundaries,
    round_half_up,
    scale_boundaries,
)
from tier_engine.services.deadline import Deadline, check_deadline

logger = logging.getLogger(__name__)


class ClusteringEngine:
    """K-means over sorted 1-D data with seeded, reproducible initialization."""

    def __init__(self, config: KMeansConfig | None = None, deadline: Deadline | None = None) -> None:
        self._config = config or KMeansConfig()
        self._deadline = deadline
        self._data: np.ndarray = np.empty(0, dtype=float)
        self._clusters: list[Cluster] = []
        self._iterations = 0
        self._converged = False

    @property
    def config(self) -> KMeansConfig:
        return self._config

    @property
    def data(self) -> tuple[float, ...]:
        return tuple(float(x) for x in self._data)

    @property
    def clusters(self) -> tuple[Cluster, ...]:
        return tuple(self._clusters)

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def converged(self) -> bool:
        return self._converged

    def set_data(self, data: Sequence[float]) -> None:
        self._data = np.sort(np.asarray(data, dtype=float))
        self._clusters = []
        self._iterations = 0
        self._converged = False

    def reset(self) -> None:
        self.set_data([])

    # -- Initialization ------------------------------------------------------

    def _initialize(self, k: int, rng: np.random.Generator) -> np.ndarray:
        n = len(self._data)
        match self._config.init_method:
            case InitMethod.KMEANS_PLUS_PLUS:
                return self._initialize_kmeans_plus_plus(k, rng)
            case InitMethod.QUANTILE:
                indices = [min(int((i + 0.5) / k * n), n - 1) for i in range(k)]
                return self._data[indices].copy()
            case InitMethod.RANDOM:
                indices = rng.choice(n, size=min(k, n), replace=False)
                return np.sort(self._data[indices])

    def _initialize_kmeans_plus_plus(self, k: int, rng: np.random.Generator) -> np.ndarray:
        centroids = [float(self._data[rng.integers(len(self._data))])]
        while len(centroids) < k:
            distances = np.min((self._data[:, None] - np.asarray(centroids)[None, :]) ** 2, axis=1)
            total = float(distances.sum())
            if total == 0:
                # Every point already sits on a centroid.
                break
            target = rng.random() * total
            idx = int(np.searchsorted(np.cumsum(distances), target, side="right"))
            centroids.append(float(self._data[min(idx, len(self._data) - 1)]))
        return np.sort(np.asarray(centroids))

    # -- Iteration -----------------------------------------------------------

    def _assign(self, centroids: np.ndarray) -> np.ndarray:
        # argmin keeps the lowest centroid index on ties
        return np.argmin(np.abs(self._data[:, None] - centroids[None, :]), axis=1)

    def _update(self, centroids: np.ndarray, labels: np.ndarray) -> np.ndarray:
        updated = centroids.copy()
        for c in range(len(centroids)):
            members = self._data[labels == c]
            if len(members) > 0:
                updated[c] = members.mean()
        return updated

    def _has_converged(self, old: np.ndarray, new: np.ndarray) -> bool:
        spread = float(self._data.max() - self._data.min())
        if spread == 0:
            return True
        return bool(np.all(np.abs(old - new) < self._config.convergence_threshold * spread))

    def cluster(self, k: int | None = None) -> list[Cluster]:
        """Run k-means on the current data.

        Args:
            k: Number of clusters; defaults to the configured tier count.

        Returns:
            Clusters in ascending centroid order. With no more data points than
            clusters, each point becomes its own zero-variance cluster.
        """
        num_clusters = max(k if k is not None else self._config.tier_count, 1)
        n = len(self._data)
        self._iterations = 0
        self._converged = True

        if n == 0:
            self._clusters = []
            return []

        if n <= num_clusters:
            self._clusters = [Cluster(centroid=float(x), members=(float(x),), variance=0.0) for x in self._data]
            return list(self._clusters)

        rng = np.random.default_rng(self._config.seed)
        centroids = self._initialize(num_clusters, rng)

        converged = False
        iterations = 0
        while not converged and iterations < self._config.max_iterations:
            check_deadline(self._deadline, "k-means clustering")
            labels = self._assign(centroids)
            updated = self._update(centroids, labels)
            converged = self._has_converged(centroids, updated)
            centroids = updated
            iterations += 1

        self._iterations = iterations
        self._converged = converged
        if not converged:
            logger.debug("k-means stopped after %d iterations without converging", iterations)

        labels = self._assign(centroids)
        clusters: list[Cluster] = []
        for c, centroid in enumerate(centroids):
            members = self._data[labels == c]
            variance = float(np.mean((members - centroid) ** 2)) if len(members) else 0.0
            clusters.append(
                Cluster(centroid=float(centroid), members=tuple(float(m) for m in members), variance=variance)
            )
        self._clusters = sorted(clusters, key=lambda cl: cl.centroid)
        return list(self._clusters)

    # -- Results -------------------------------------------------------------

    def calculate_boundaries(self, list_size: int) -> list[int]:
        """Map cumulative cluster sizes onto ``[0, list_size]``."""
        if not self._clusters:
            self.cluster()
        if not self._clusters:
            return fallback_boundaries(list_size, self._config.tier_count)

        n = len(self._data)
        cumulative = np.cumsum([c.size for c in self._clusters]).tolist()
        raw = scale_boundaries([0, *cumulative], n, list_size)
        return reconcile_boundaries(raw, list_size, self._config.tier_count)

    def silhouette_score(self) -> float:
        """Mean silhouette coefficient in ``[-1, 1]``; 0 with fewer than two clusters."""
        populated = [c for c in self._clusters if c.size > 0]
        if len(populated) < 2 or len(self._data) < 2:
            return 0.0

        points = np.concatenate([np.asarray(c.members) for c in populated])
        labels = np.repeat(np.arange(len(populated)), [c.size for c in populated])
        counts = np.asarray([c.size for c in populated], dtype=float)

        distances = np.abs(points[:, None] - points[None, :])
        one_hot = labels[:, None] == np.arange(len(populated))[None, :]
        sums = distances @ one_hot.astype(float)

        rows = np.arange(len(points))
        own_counts = counts[labels]
        own_sums = sums[rows, labels]
        a = np.divide(own_sums, own_counts - 1, out=np.zeros_like(own_sums), where=own_counts > 1)

        means = sums / counts[None, :]
        means[rows, labels] = np.inf
        b = means.min(axis=1)

        denom = np.maximum(a, b)
        s = np.divide(b - a, denom, out=np.zeros_like(a), where=denom > 0)
        return float(s.mean())

    def wcss(self) -> float:
        """Total within-cluster sum of squares."""
        return float(sum(sum((m - c.centroid) ** 2 for m in c.members) for c in self._clusters))

    def calculate(self, list_size: int) -> AlgorithmResult:
        start = time.perf_counter()
        if len(self._data) == 0:
            logger.info("k-means has no data, using evenly spaced boundaries")
            return AlgorithmResult(
                algorithm=Algorithm.KMEANS,
                boundaries=tuple(fallback_boundaries(list_size, self._config.tier_count)),
                confidence=0,
                execution_time=time.perf_counter() - start,
                metadata=FallbackMetadata(reason="no data to cluster"),
            )

        self.cluster()
        boundaries = self.calculate_boundaries(list_size)
        silhouette = self.silhouette_score()
        confidence = round_half_up(min(100.0, max(0.0, (silhouette + 1) / 2 * 100)))

        return AlgorithmResult(
            algorithm=Algorithm.KMEANS,
            boundaries=tuple(boundaries),
            confidence=confidence,
            execution_time=time.perf_counter() - start,
            metadata=KMeansMetadata(
                clusters=tuple(self._clusters),
                silhouette_score=silhouette,
                wcss=self.wcss(),
                iterations=self._iterations,
                converged=self._converged,
                cluster_sizes=tuple(c.size for c in self._clusters),
            ),
        )

    def find_optimal_k(self, max_k: int = 10) -> int:
        """Pick a cluster count with the elbow method.

        The elbow is the ``k`` with the largest positive second difference of
        WCSS. Current clusters are restored afterwards.
        """
        saved = (self._clusters, self._iterations, self._converged)
        wcss_values: list[float] = []
        for k in range(1, min(max_k, len(self._data)) + 1):
            self.cluster(k)
            wcss_values.append(self.wcss())
        self._clusters, self._iterations, self._converged = saved

        if len(wcss_values) < 3:
            return min(self._config.tier_count, len(wcss_values))

        best_curvature = 0.0
        optimal_k = 1
        for i in range(1, len(wcss_values) - 1):
            curvature = wcss_values[i - 1] - 2 * wcss_values[i] + wcss_values[i + 1]
            if curvature > best_curvature:
                best_curvature = curvature
                optimal_k = i + 1
        return optimal_k

    def cluster_for_value(self, value: float) -> Cluster | None:
        """Return the cluster holding ``value``, else the one with the nearest centroid."""
        for cluster in self._clusters:
            if value in cluster.members:
                return cluster
        if not self._clusters:
            return None
        return min(self._clusters, key=lambda c: abs(value - c.centroid))
