"""Tier boundary algorithms and the services built on them."""

from tier_engine.services.confidence_scorer import ConfidenceScorer
from tier_engine.services.deadline import Deadline, DeadlineExceededError
from tier_engine.services.hybrid import HybridCombiner
from tier_engine.services.runner import (
    calculate_boundaries,
    compare_all_algorithms,
    create_calculator,
    run_algorithm,
    try_run_algorithm,
)
from tier_engine.services.threshold_recommender import ThresholdRecommender, recommend_tier_count
from tier_engine.services.tier_assignment import (
    assign_tiers_to_items,
    create_tiers_from_boundaries,
    smart_calculate_tiers,
)
from tier_engine.services.tier_converter import TierConverter

__all__ = [
    "ConfidenceScorer",
    "Deadline",
    "DeadlineExceededError",
    "HybridCombiner",
    "ThresholdRecommender",
    "TierConverter",
    "assign_tiers_to_items",
    "calculate_boundaries",
    "compare_all_algorithms",
    "create_calculator",
    "create_tiers_from_boundaries",
    "recommend_tier_count",
    "run_algorithm",
    "smart_calculate_tiers",
    "try_run_algorithm",
]
