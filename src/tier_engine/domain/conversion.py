from dataclasses import dataclass
from enum import StrEnum


class ConversionStrategy(StrEnum):
    EVEN_DISTRIBUTE = "even-distribute"
    TOP_PACK = "top-pack"
    BOTTOM_PACK = "bottom-pack"
    PRESERVE_ORDER = "preserve-order"


@dataclass(frozen=True)
class TierItem:
    item_id: str
    tier_id: str
    order_in_tier: int  # 0-indexed


@dataclass(frozen=True)
class TierAssignment:
    tier_id: str
    tier_label: str
    tier_index: int  # 0 = top tier
    items: tuple[TierItem, ...]
    capacity: int | None = None


@dataclass(frozen=True)
class TierToPositionResult:
    positions: tuple[tuple[str, int], ...]
    tier_assignments: tuple[TierAssignment, ...]
    unmapped_items: tuple[str, ...]


@dataclass(frozen=True)
class PositionToTierResult:
    tier_assignments: tuple[TierAssignment, ...]
    items_per_tier: dict[str, tuple[str, ...]]


@dataclass(frozen=True)
class AssignmentValidation:
    valid: bool
    errors: tuple[str, ...]
    warnings: tuple[str, ...]


@dataclass(frozen=True)
class TierCapacity:
    has_capacity: bool
    current_count: int
    max_capacity: int
    remaining_slots: int
