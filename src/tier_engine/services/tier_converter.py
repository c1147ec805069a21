"""Convert between positional rankings and tier assignments."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from tier_engine.domain.conversion import (
    AssignmentValidation,
    ConversionStrategy,
    PositionToTierResult,
    TierAssignment,
    TierCapacity,
    TierItem,
    TierToPositionResult,
)
from tier_engine.domain.tier import RankedItem, TierDefinition

logger = logging.getLogger(__name__)


def _renumber(items: Iterable[TierItem], tier_id: str | None = None) -> tuple[TierItem, ...]:
    return tuple(
        replace(item, order_in_tier=i, tier_id=tier_id if tier_id is not None else item.tier_id)
        for i, item in enumerate(items)
    )


class TierConverter:
    def __init__(
        self,
        tiers: Sequence[TierDefinition],
        strategy: ConversionStrategy = ConversionStrategy.PRESERVE_ORDER,
    ) -> None:
        self._tiers = tuple(tiers)
        self._by_id = {tier.id: tier for tier in self._tiers}
        self._strategy = strategy

    @property
    def tiers(self) -> tuple[TierDefinition, ...]:
        return self._tiers

    @property
    def strategy(self) -> ConversionStrategy:
        return self._strategy

    def set_strategy(self, strategy: ConversionStrategy) -> None:
        self._strategy = strategy

    def _tier_for_position(self, position: int) -> TierDefinition | None:
        for tier in self._tiers:
            if tier.contains(position):
                return tier
        if self._tiers and position == self._tiers[-1].end_position:
            return self._tiers[-1]
        return None

    def _place(self, tier: TierDefinition, items: Sequence[TierItem]) -> tuple[list[tuple[str, int]], list[str]]:
        """Positions for ``items`` (sorted by order) inside ``tier`` and the items that did not fit."""
        placed: list[tuple[str, int]] = []
        unmapped: list[str] = []
        start, size = tier.start_position, tier.size

        match self._strategy:
            case ConversionStrategy.EVEN_DISTRIBUTE:
                fitting = items[:size]
                spacing = (size - 1) / (len(fitting) - 1) if len(fitting) > 1 else 0.0
                placed = [(item.item_id, start + int(i * spacing + 0.5)) for i, item in enumerate(fitting)]
                unmapped = [item.item_id for item in items[size:]]
            case ConversionStrategy.TOP_PACK:
                placed = [(item.item_id, start + i) for i, item in enumerate(items[:size])]
                unmapped = [item.item_id for item in items[size:]]
            case ConversionStrategy.BOTTOM_PACK:
                offset = max(0, size - len(items))
                placed = [(item.item_id, start + offset + i) for i, item in enumerate(items[:size])]
                unmapped = [item.item_id for item in items[size:]]
            case ConversionStrategy.PRESERVE_ORDER:
                taken: set[int] = set()
                for item in items:
                    if 0 <= item.order_in_tier < size and item.order_in_tier not in taken:
                        taken.add(item.order_in_tier)
                        placed.append((item.item_id, start + item.order_in_tier))
                    else:
                        unmapped.append(item.item_id)
        return placed, unmapped

    def tiers_to_positions(self, assignments: Sequence[TierAssignment]) -> TierToPositionResult:
        """Lay tier assignments out as absolute positions using the current strategy.

        Items whose tier is unknown, or that do not fit in their tier, are
        reported in ``unmapped_items``.
        """
        positions: list[tuple[str, int]] = []
        unmapped: list[str] = []
        for assignment in assignments:
            tier = self._by_id.get(assignment.tier_id)
            if tier is None:
                unmapped.extend(item.item_id for item in assignment.items)
                continue
            items = sorted(assignment.items, key=lambda i: i.order_in_tier)
            placed, leftover = self._place(tier, items)
            positions.extend(placed)
            unmapped.extend(leftover)

        positions.sort(key=lambda p: p[1])
        if unmapped:
            logger.debug("%d item(s) could not be positioned", len(unmapped))
        return TierToPositionResult(
            positions=tuple(positions),
            tier_assignments=tuple(assignments),
            unmapped_items=tuple(unmapped),
        )

    def positions_to_tiers(self, positions: Iterable[RankedItem]) -> PositionToTierResult:
        grouped: dict[str, list[str]] = {tier.id: [] for tier in self._tiers}
        for item in sorted(positions, key=lambda i: i.position):
            tier = self._tier_for_position(item.position)
            if tier is None:
                logger.debug("Position %d of %r is outside every tier", item.position, item.item_id)
                continue
            grouped[tier.id].append(item.item_id)

        assignments = tuple(
            TierAssignment(
                tier_id=tier.id,
                tier_label=tier.label,
                tier_index=index,
                items=tuple(
                    TierItem(item_id=item_id, tier_id=tier.id, order_in_tier=order)
                    for order, item_id in enumerate(grouped[tier.id])
                ),
            )
            for index, tier in enumerate(self._tiers)
        )
        return PositionToTierResult(
            tier_assignments=assignments,
            items_per_tier={tier_id: tuple(ids) for tier_id, ids in grouped.items()},
        )

    @staticmethod
    def reorder_within_tier(assignment: TierAssignment, item_id: str, new_order: int) -> TierAssignment:
        items = list(assignment.items)
        index = next((i for i, item in enumerate(items) if item.item_id == item_id), None)
        if index is None:
            return assignment
        moved = items.pop(index)
        items.insert(max(0, min(len(items), new_order)), moved)
        return replace(assignment, items=_renumber(items))

    @staticmethod
    def move_between_tiers(
        assignments: Sequence[TierAssignment],
        item_id: str,
        target_tier_id: str,
        target_order: int | None = None,
    ) -> list[TierAssignment]:
        """Move an item into another tier, renumbering both tiers.

        Returns the assignments unchanged when the item is not found. An
        unknown target tier drops the item.
        """
        moved: TierItem | None = None
        result: list[TierAssignment] = []
        for assignment in assignments:
            if moved is None and any(item.item_id == item_id for item in assignment.items):
                moved = next(item for item in assignment.items if item.item_id == item_id)
                remaining = [item for item in assignment.items if item.item_id != item_id]
                result.append(replace(assignment, items=_renumber(remaining)))
            else:
                result.append(assignment)
        if moved is None:
            return list(assignments)

        for i, assignment in enumerate(result):
            if assignment.tier_id == target_tier_id:
                items = list(assignment.items)
                order = len(items) if target_order is None else target_order
                items.insert(max(0, min(len(items), order)), moved)
                result[i] = replace(assignment, items=_renumber(items, target_tier_id))
                break
        return result

    def check_tier_capacity(self, assignment: TierAssignment) -> TierCapacity:
        """Capacity is the explicit ``capacity`` when set, otherwise the tier size."""
        tier = self._by_id.get(assignment.tier_id)
        limit = assignment.capacity if assignment.capacity is not None else (tier.size if tier else 0)
        count = len(assignment.items)
        return TierCapacity(
            has_capacity=count < limit,
            current_count=count,
            max_capacity=limit,
            remaining_slots=limit - count,
        )

    @staticmethod
    def auto_arrange_in_tier(assignment: TierAssignment) -> tuple[TierItem, ...]:
        return _renumber(assignment.items)

    def validate_assignments(self, assignments: Sequence[TierAssignment]) -> AssignmentValidation:
        errors: list[str] = []
        warnings: list[str] = []
        seen: set[str] = set()
        for assignment in assignments:
            for item in assignment.items:
                if item.item_id in seen:
                    errors.append(f"Item {item.item_id} appears in multiple tiers")
                seen.add(item.item_id)

            if assignment.tier_id not in self._by_id:
                errors.append(f"Unknown tier: {assignment.tier_id}")
                continue

            capacity = self.check_tier_capacity(assignment)
            if capacity.current_count > capacity.max_capacity:
                warnings.append(
                    f"Tier {assignment.tier_label} exceeds capacity "
                    f"({capacity.current_count}/{capacity.max_capacity})"
                )
        return AssignmentValidation(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))


def convert_tiers_to_positions(
    assignments: Sequence[TierAssignment],
    tiers: Sequence[TierDefinition],
    strategy: ConversionStrategy = ConversionStrategy.PRESERVE_ORDER,
) -> TierToPositionResult:
    return TierConverter(tiers, strategy).tiers_to_positions(assignments)


def convert_positions_to_tiers(positions: Iterable[RankedItem], tiers: Sequence[TierDefinition]) -> PositionToTierResult:
    return TierConverter(tiers).positions_to_tiers(positions)
