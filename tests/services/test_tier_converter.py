import pytest

from tier_engine.domain.conversion import ConversionStrategy, TierAssignment, TierItem
from tier_engine.domain.tier import RankedItem
from tier_engine.services.tier_assignment import create_tiers_from_boundaries
from tier_engine.services.tier_converter import (
    TierConverter,
    convert_positions_to_tiers,
    convert_tiers_to_positions,
)

TIERS = create_tiers_from_boundaries([0, 3, 8, 10])


def _assignment(
    tier_id: str, item_ids: list[str], orders: list[int] | None = None, capacity: int | None = None
) -> TierAssignment:
    orders = orders if orders is not None else list(range(len(item_ids)))
    index = next((i for i, t in enumerate(TIERS) if t.id == tier_id), -1)
    return TierAssignment(
        tier_id=tier_id,
        tier_label=TIERS[index].label if index >= 0 else "?",
        tier_index=index,
        items=tuple(TierItem(item_id=i, tier_id=tier_id, order_in_tier=o) for i, o in zip(item_ids, orders)),
        capacity=capacity,
    )


class TestPositionsToTiers:
    def test_groups_by_tier(self) -> None:
        positions = [
            RankedItem("x", 9),
            RankedItem("a", 0),
            RankedItem("b", 4),
            RankedItem("c", 2),
            RankedItem("z", 10),
            RankedItem("out", 12),
        ]
        result = convert_positions_to_tiers(positions, TIERS)
        assert result.items_per_tier == {"tier-0": ("a", "c"), "tier-1": ("b",), "tier-2": ("x", "z")}
        assert [a.tier_index for a in result.tier_assignments] == [0, 1, 2]
        assert [(i.item_id, i.order_in_tier) for i in result.tier_assignments[0].items] == [("a", 0), ("c", 1)]


class TestTiersToPositions:
    @pytest.mark.parametrize(
        ("strategy", "expected"),
        [
            (ConversionStrategy.EVEN_DISTRIBUTE, [3, 5, 7]),
            (ConversionStrategy.TOP_PACK, [3, 4, 5]),
            (ConversionStrategy.BOTTOM_PACK, [5, 6, 7]),
            (ConversionStrategy.PRESERVE_ORDER, [3, 4, 5]),
        ],
    )
    def test_strategies(self, strategy: ConversionStrategy, expected: list[int]) -> None:
        result = convert_tiers_to_positions([_assignment("tier-1", ["i0", "i1", "i2"])], TIERS, strategy)
        assert result.positions == tuple(zip(["i0", "i1", "i2"], expected))
        assert result.unmapped_items == ()

    def test_preserve_order_uses_order_in_tier(self) -> None:
        result = convert_tiers_to_positions([_assignment("tier-1", ["i0", "i1", "i2"], [0, 2, 4])], TIERS)
        assert result.positions == (("i0", 3), ("i1", 5), ("i2", 7))

    def test_preserve_order_collision_is_unmapped(self) -> None:
        result = convert_tiers_to_positions([_assignment("tier-1", ["i0", "i1"], [1, 1])], TIERS)
        assert result.positions == (("i0", 4),)
        assert result.unmapped_items == ("i1",)

    def test_items_sorted_by_order_in_tier(self) -> None:
        assignment = _assignment("tier-0", ["late", "early"], [1, 0])
        result = convert_tiers_to_positions([assignment], TIERS, ConversionStrategy.TOP_PACK)
        assert result.positions == (("early", 0), ("late", 1))

    @pytest.mark.parametrize("strategy", list(ConversionStrategy))
    def test_overflow_is_unmapped(self, strategy: ConversionStrategy) -> None:
        result = convert_tiers_to_positions([_assignment("tier-0", ["a", "b", "c", "d"])], TIERS, strategy)
        assert [p for _, p in result.positions] == [0, 1, 2]
        assert result.unmapped_items == ("d",)

    def test_unknown_tier(self) -> None:
        result = convert_tiers_to_positions([_assignment("ghost", ["a", "b"])], TIERS)
        assert result.positions == ()
        assert result.unmapped_items == ("a", "b")

    def test_positions_sorted_across_tiers(self) -> None:
        assignments = [_assignment("tier-2", ["low"]), _assignment("tier-0", ["high"])]
        result = convert_tiers_to_positions(assignments, TIERS, ConversionStrategy.EVEN_DISTRIBUTE)
        assert result.positions == (("high", 0), ("low", 8))

    def test_strategy_can_change(self) -> None:
        converter = TierConverter(TIERS)
        converter.set_strategy(ConversionStrategy.BOTTOM_PACK)
        assert converter.tiers_to_positions([_assignment("tier-2", ["a"])]).positions == (("a", 9),)


class TestEditing:
    def test_reorder_within_tier(self) -> None:
        moved = TierConverter.reorder_within_tier(_assignment("tier-1", ["a", "b", "c"]), "c", 0)
        assert [(i.item_id, i.order_in_tier) for i in moved.items] == [("c", 0), ("a", 1), ("b", 2)]

    def test_reorder_unknown_item(self) -> None:
        assignment = _assignment("tier-1", ["a"])
        assert TierConverter.reorder_within_tier(assignment, "zzz", 0) is assignment

    def test_move_between_tiers(self) -> None:
        assignments = [_assignment("tier-0", ["a", "b"]), _assignment("tier-1", ["c"])]
        result = TierConverter.move_between_tiers(assignments, "a", "tier-1", 0)
        assert [i.item_id for i in result[0].items] == ["b"]
        assert result[0].items[0].order_in_tier == 0
        assert [(i.item_id, i.tier_id, i.order_in_tier) for i in result[1].items] == [
            ("a", "tier-1", 0),
            ("c", "tier-1", 1),
        ]

    def test_move_missing_item(self) -> None:
        assignments = [_assignment("tier-0", ["a"])]
        assert TierConverter.move_between_tiers(assignments, "zzz", "tier-1") == assignments

    def test_auto_arrange(self) -> None:
        items = TierConverter.auto_arrange_in_tier(_assignment("tier-1", ["a", "b"], [5, 9]))
        assert [i.order_in_tier for i in items] == [0, 1]


class TestValidation:
    def test_capacity(self) -> None:
        converter = TierConverter(TIERS)
        capacity = converter.check_tier_capacity(_assignment("tier-0", ["a"]))
        assert (capacity.has_capacity, capacity.current_count, capacity.max_capacity, capacity.remaining_slots) == (
            True,
            1,
            3,
            2,
        )
        explicit = converter.check_tier_capacity(_assignment("tier-1", ["a", "b"], capacity=2))
        assert not explicit.has_capacity
        assert explicit.remaining_slots == 0

    def test_valid(self) -> None:
        validation = TierConverter(TIERS).validate_assignments([_assignment("tier-0", ["a"]), _assignment("tier-1", ["b"])])
        assert validation.valid
        assert validation.errors == ()
        assert validation.warnings == ()

    def test_problems(self) -> None:
        validation = TierConverter(TIERS).validate_assignments(
            [
                _assignment("tier-0", ["a", "b", "c", "d"]),
                _assignment("tier-1", ["a"]),
                _assignment("ghost", ["e"]),
            ]
        )
        assert not validation.valid
        assert validation.errors == ("Item a appears in multiple tiers", "Unknown tier: ghost")
        assert validation.warnings == ("Tier S exceeds capacity (4/3)",)

    def test_full_tier_is_not_over_capacity(self) -> None:
        validation = TierConverter(TIERS).validate_assignments([_assignment("tier-2", ["a", "b"])])
        assert validation.warnings == ()
