"""Jenks natural breaks (Fisher-Jenks) optimal 1-D classification."""

import logging
import time
from bisect import bisect_right
from collections.abc import Sequence

import numpy as np

from tier_engine.domain.algorithm import Algorithm, AlgorithmResult, JenksMetadata
from tier_engine.domain.algorithm_config import JenksConfig
from tier_engine.domain.cluster import ClassStats
from tier_engine.services.boundaries import (
    fallback_boundaries,
    reconcile_boundaries,
    round_half_up,
    scale_boundaries,
)
from tier_engine.services.deadline import Deadline, check_deadline

logger = logging.getLogger(__name__)


class JenksNaturalBreaks:
    """Minimise within-class squared deviation over sorted data.

    Breaks are stored as exclusive class end indices into the sorted data, so
    ``[3, 6]`` over six values means classes ``data[0:3]`` and ``data[3:6]``.
    """

    def __init__(self, config: JenksConfig | None = None, deadline: Deadline | None = None) -> None:
        self._config = config or JenksConfig()
        self._deadline = deadline
        self._data: np.ndarray = np.empty(0, dtype=float)
        self._breaks: list[int] = []
        self._gvf = 0.0

    @property
    def config(self) -> JenksConfig:
        return self._config

    @property
    def data(self) -> tuple[float, ...]:
        return tuple(float(x) for x in self._data)

    @property
    def breaks(self) -> tuple[int, ...]:
        return tuple(self._breaks)

    @property
    def gvf(self) -> float:
        return self._gvf

    def set_data(self, data: Sequence[float]) -> None:
        self._data = np.sort(np.asarray(data, dtype=float))
        self._breaks = []
        self._gvf = 0.0

    def reset(self) -> None:
        self.set_data([])

    def _total_deviation(self) -> float:
        return float(np.sum((self._data - self._data.mean()) ** 2)) if len(self._data) else 0.0

    def _solve(self, k: int) -> tuple[list[int], float]:
        """Run the Fisher-Jenks dynamic program for ``k`` classes.

        Args:
            k: Number of classes, already clamped to ``[2, n - 1]``.

        Returns:
            Tuple of (class end indices, minimum total SDCM).
        """
        values = self._data
        n = len(values)
        s1 = np.concatenate(([0.0], np.cumsum(values)))
        s2 = np.concatenate(([0.0], np.cumsum(values**2)))

        # cost[j, i] = minimum SDCM using j classes over values[0:i]
        # back[j, i] = start index of the last of those j classes
        cost = np.full((k + 1, n + 1), np.inf)
        back = np.zeros((k + 1, n + 1), dtype=int)
        ends = np.arange(1, n + 1)
        cost[1, 1:] = np.maximum(s2[1:] - s1[1:] ** 2 / ends, 0.0)

        for j in range(2, k + 1):
            check_deadline(self._deadline, "jenks natural breaks")
            for i in range(j, n + 1):
                starts = np.arange(j - 1, i)
                counts = i - starts
                segment = np.maximum((s2[i] - s2[starts]) - (s1[i] - s1[starts]) ** 2 / counts, 0.0)
                candidates = cost[j - 1, starts] + segment
                # argmin keeps the smallest start on ties
                best = int(np.argmin(candidates))
                cost[j, i] = candidates[best]
                back[j, i] = starts[best]

        breaks = [n]
        i = n
        for j in range(k, 1, -1):
            i = int(back[j, i])
            breaks.append(i)
        breaks.reverse()
        return breaks, float(cost[k, n])

    def _gvf_for(self, sdcm: float) -> float:
        total = self._total_deviation()
        if total == 0:
            return 1.0
        return min(1.0, max(0.0, (total - sdcm) / total))

    def find_breaks(self, k: int | None = None) -> list[int]:
        """Compute and store the optimal class end indices for ``k`` classes."""
        num_classes = k if k is not None else self._config.tier_count
        n = len(self._data)

        if n == 0:
            self._breaks, self._gvf = [], 0.0
        elif num_classes <= 1:
            self._breaks, self._gvf = [n], 1.0 if self._total_deviation() == 0 else 0.0
        elif num_classes >= n:
            self._breaks, self._gvf = list(range(1, n + 1)), 1.0
        else:
            breaks, sdcm = self._solve(num_classes)
            self._breaks, self._gvf = breaks, self._gvf_for(sdcm)
        return list(self._breaks)

    def calculate_boundaries(self, list_size: int) -> list[int]:
        if len(self._data) == 0:
            return fallback_boundaries(list_size, self._config.tier_count)
        if not self._breaks:
            self.find_breaks()
        raw = scale_boundaries([0, *self._breaks], len(self._data), list_size)
        return reconcile_boundaries(raw, list_size, self._config.tier_count)

    def break_values(self) -> list[float]:
        """Midpoints between the last value of each class and the first of the next."""
        n = len(self._data)
        return [float((self._data[b - 1] + self._data[b]) / 2) for b in self._breaks[:-1] if 0 < b < n]

    def class_assignments(self) -> list[int]:
        if not self._breaks:
            self.find_breaks()
        return [bisect_right(self._breaks, i) for i in range(len(self._data))]

    def class_stats(self) -> list[ClassStats]:
        if not self._breaks:
            self.find_breaks()
        stats: list[ClassStats] = []
        start = 0
        for class_index, end in enumerate(self._breaks):
            values = self._data[start:end]
            stats.append(
                ClassStats(
                    class_index=class_index,
                    count=len(values),
                    min_value=float(values.min()),
                    max_value=float(values.max()),
                    mean=float(values.mean()),
                    variance=float(values.var()),
                )
            )
            start = end
        return stats

    def find_optimal_classes(self, max_classes: int = 10) -> int:
        """Smallest class count reaching ``min_gvf``, stopping early on marginal gains.

        Stored breaks are left untouched.
        """
        optimal = 2
        previous_gvf: float | None = None
        for k in range(2, min(max_classes, len(self._data)) + 1):
            if k >= len(self._data):
                gvf = 1.0
            else:
                _, sdcm = self._solve(k)
                gvf = self._gvf_for(sdcm)
            if gvf >= self._config.min_gvf:
                return k
            if previous_gvf is not None and gvf - previous_gvf < 0.05:
                return k - 1
            previous_gvf = gvf
            optimal = k
        return optimal

    def calculate(self, list_size: int) -> AlgorithmResult:
        start = time.perf_counter()
        if len(self._data) == 0:
            logger.info("Jenks has no data, using evenly spaced boundaries")
            boundaries = fallback_boundaries(list_size, self._config.tier_count)
            return AlgorithmResult(
                algorithm=Algorithm.JENKS,
                boundaries=tuple(boundaries),
                confidence=0,
                execution_time=time.perf_counter() - start,
                metadata=JenksMetadata(gvf=0.0, break_values=(), data_points=0, class_count=len(boundaries) - 1),
            )

        self.find_breaks()
        boundaries = self.calculate_boundaries(list_size)
        return AlgorithmResult(
            algorithm=Algorithm.JENKS,
            boundaries=tuple(boundaries),
            confidence=round_half_up(self._gvf * 100),
            execution_time=time.perf_counter() - start,
            metadata=JenksMetadata(
                gvf=self._gvf,
                break_values=tuple(self.break_values()),
                data_points=len(self._data),
                class_count=len(self._breaks),
                class_stats=tuple(self.class_stats()),
            ),
        )
