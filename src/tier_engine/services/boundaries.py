"""Closed-form tier boundary calculators and shared boundary helpers.

Boundaries are a strictly increasing list ``[0, b1, ..., b(k-1), list_size]``
where tier ``i`` covers positions ``[b[i], b[i+1])``. Every calculator here is a
pure function of ``list_size`` and ``tier_count`` and returns a fresh list.
"""

import logging
import math
from bisect import bisect_right
from collections.abc import Sequence
from itertools import accumulate, pairwise

from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.algorithm_config import PYRAMID_RATIO, ClosedFormConfig

logger = logging.getLogger(__name__)

# Hand-tuned cut points (percent of the list above each boundary) per tier count.
PERCENTILE_TABLE: dict[int, tuple[float, ...]] = {
    3: (10, 40),
    4: (10, 30, 60),
    5: (5, 15, 35, 65),
    6: (5, 12, 25, 45, 70),
    7: (4, 10, 20, 35, 55, 75),
    8: (3, 8, 16, 28, 42, 58, 78),
    9: (3, 8, 15, 25, 40, 55, 70, 85),
}


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def effective_tier_count(list_size: int, tier_count: int) -> int:
    """Clamp a requested tier count into ``[1, list_size]``."""
    if tier_count < 1:
        logger.warning("tier_count=%d is below 1, using a single tier", tier_count)
        return 1
    if 0 < list_size < tier_count:
        logger.warning("tier_count=%d exceeds list_size=%d, clamping", tier_count, list_size)
        return list_size
    return tier_count


def tier_for_position(position: int, boundaries: Sequence[int]) -> int:
    """Return the 0-based tier index containing ``position``.

    Positions outside ``[0, list_size)`` map to the nearest end tier.
    """
    last_tier = max(len(boundaries) - 2, 0)
    idx = bisect_right(boundaries, position) - 1
    return min(max(idx, 0), last_tier)


def tier_sizes(boundaries: Sequence[int]) -> list[int]:
    return [end - start for start, end in pairwise(boundaries)]


def is_valid_boundaries(boundaries: Sequence[int], list_size: int, tier_count: int | None = None) -> bool:
    if len(boundaries) < 2 or boundaries[0] != 0 or boundaries[-1] != list_size:
        return False
    if tier_count is not None and len(boundaries) != tier_count + 1:
        return False
    return all(a < b for a, b in pairwise(boundaries))


def reconcile_boundaries(raw: Sequence[int], list_size: int, tier_count: int) -> list[int]:
    """Force ``raw`` into exactly ``tier_count + 1`` strictly increasing boundaries.

    Interior values are clipped to ``(0, list_size)`` and de-duplicated. While
    there are too few tiers the largest tier (lowest index on ties) is split at
    its midpoint; while there are too many, the interior boundary whose two
    neighbouring tiers have the smallest combined size (lowest index on ties)
    is removed.
    """
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)

    interior = sorted({int(b) for b in raw if 0 < b < list_size})
    boundaries = [0, *interior, list_size]

    while len(boundaries) < k + 1:
        sizes = tier_sizes(boundaries)
        idx = max(range(len(sizes)), key=lambda i: (sizes[i], -i))
        boundaries.insert(idx + 1, boundaries[idx] + round_half_up(sizes[idx] / 2))

    while len(boundaries) > k + 1:
        j = min(range(1, len(boundaries) - 1), key=lambda j: (boundaries[j + 1] - boundaries[j - 1], j))
        del boundaries[j]

    return boundaries


def scale_boundaries(boundaries: Sequence[int], source_size: int, list_size: int) -> list[int]:
    """Map boundaries over ``source_size`` elements proportionally onto ``list_size``."""
    if source_size <= 0 or source_size == list_size:
        return list(boundaries)
    return [min(round_half_up(b / source_size * list_size), list_size) for b in boundaries]


def _accumulate(list_size: int, weights: Sequence[float]) -> list[int]:
    total = sum(weights)
    boundaries = [0]
    accumulated = 0.0
    for weight in weights[:-1]:
        accumulated += weight
        boundaries.append(min(round_half_up(accumulated / total * list_size), list_size))
    boundaries.append(list_size)
    return boundaries


def _monotone_sizes(sizes: Sequence[int], list_size: int, *, descending: bool = False) -> list[int]:
    """Give every tier at least one item, trim the surplus from the largest tiers and order the sizes."""
    repaired = [max(size, 1) for size in sizes]
    for _ in range(sum(repaired) - list_size):
        idx = max(range(len(repaired)), key=lambda i: (repaired[i], i))
        repaired[idx] -= 1
    return sorted(repaired, reverse=descending)


def equal_boundaries(list_size: int, tier_count: int) -> list[int]:
    """Equal division: ``boundary(i) = min(i * ceil(N/K), N)``."""
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)
    tier_size = math.ceil(list_size / k)
    raw = [0, *(min(i * tier_size, list_size) for i in range(1, k)), list_size]
    return reconcile_boundaries(raw, list_size, k)


def fallback_boundaries(list_size: int, tier_count: int) -> list[int]:
    """Deterministic evenly spaced boundaries used for degenerate inputs."""
    return equal_boundaries(list_size, tier_count)


def pyramid_boundaries(list_size: int, tier_count: int, ratio: float = PYRAMID_RATIO) -> list[int]:
    """Pyramid distribution: tier ``i`` weighs ``ratio ** i`` so lower tiers grow."""
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)
    raw = _accumulate(list_size, [ratio**i for i in range(k)])
    sizes = _monotone_sizes(tier_sizes(raw), list_size, descending=ratio < 1)
    return list(accumulate(sizes, initial=0))


def bell_boundaries(list_size: int, tier_count: int) -> list[int]:
    """Bell curve: Gaussian weights centred on ``K/2`` with std ``K/3``."""
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)
    midpoint = k / 2
    spread = k / 3
    raw = _accumulate(list_size, [math.exp(-0.5 * ((i - midpoint) / spread) ** 2) for i in range(k)])
    return reconcile_boundaries(raw, list_size, k)


def percentile_boundaries(
    list_size: int,
    tier_count: int,
    percentiles: Sequence[float] | None = None,
) -> list[int]:
    """Percentile cut points; tier counts without a table entry fall back to equal."""
    if list_size <= 0:
        return [0, 0]
    k = effective_tier_count(list_size, tier_count)
    cuts = tuple(percentiles) if percentiles is not None else PERCENTILE_TABLE.get(k)
    if cuts is None:
        return equal_boundaries(list_size, k)
    if len(cuts) != k - 1:
        logger.warning("Expected %d percentile cuts for %d tiers, got %d", k - 1, k, len(cuts))
    raw = [0, *(min(round_half_up(p / 100 * list_size), list_size) for p in sorted(cuts)), list_size]
    return reconcile_boundaries(raw, list_size, k)


def custom_boundaries(list_size: int, tier_count: int, boundaries: Sequence[int]) -> list[int]:
    if list_size <= 0:
        return [0, 0]
    if not is_valid_boundaries(boundaries, list_size, tier_count):
        logger.info("Reconciling custom boundaries %s for list_size=%d", list(boundaries), list_size)
    return reconcile_boundaries(boundaries, list_size, tier_count)


def closed_form_boundaries(
    algorithm: Algorithm,
    list_size: int,
    tier_count: int,
    config: ClosedFormConfig | None = None,
) -> list[int]:
    """Dispatch to a closed-form calculator.

    Raises ``ValueError`` for data-driven algorithms, which need the runner.
    """
    config = config or ClosedFormConfig(tier_count=tier_count)
    match algorithm:
        case Algorithm.EQUAL:
            return equal_boundaries(list_size, tier_count)
        case Algorithm.PYRAMID:
            return pyramid_boundaries(list_size, tier_count, config.ratio)
        case Algorithm.BELL:
            return bell_boundaries(list_size, tier_count)
        case Algorithm.PERCENTILE:
            return percentile_boundaries(list_size, tier_count, config.percentiles)
        case Algorithm.CUSTOM:
            if config.boundaries is None:
                return equal_boundaries(list_size, tier_count)
            return custom_boundaries(list_size, tier_count, config.boundaries)
        case _:
            msg = f"{algorithm.value!r} is not a closed-form algorithm"
            raise ValueError(msg)
