import pytest

from tier_engine.domain.algorithm import Algorithm, AlgorithmResult, FallbackMetadata
from tier_engine.domain.comparison import Comparison
from tier_engine.domain.confidence import ConfidenceFactors
from tier_engine.domain.tier import TierDefinition, TieredItem
from tier_engine.services.confidence_scorer import ConfidenceScorer

TOP = TierDefinition(id="tier-0", label="S", start_position=0, end_position=10)
MID = TierDefinition(id="tier-1", label="A", start_position=10, end_position=20)
LOW = TierDefinition(id="tier-2", label="B", start_position=20, end_position=30)
TIERS = [TOP, MID, LOW]


def _item(item_id: str, position: int, tier: TierDefinition) -> TieredItem:
    return TieredItem(item_id=item_id, position=position, tier=tier, percentile=0, tier_rank=1)


def _cmp(a: str, b: str, winner: str | None) -> Comparison:
    return Comparison(item_a=a, item_b=b, winner=winner, timestamp=0.0)


def _result(boundaries: list[int]) -> AlgorithmResult:
    return AlgorithmResult(
        algorithm=Algorithm.EQUAL,
        boundaries=tuple(boundaries),
        confidence=80,
        execution_time=0.0,
        metadata=FallbackMetadata(reason="test"),
    )


def _factors(scorer: ConfidenceScorer, items: list[TieredItem], item_id: str) -> ConfidenceFactors:
    by_id = {c.item_id: c for c in scorer.all_confidences(items, TIERS)}
    return by_id[item_id].factors


class TestDataPointsFactor:
    @pytest.mark.parametrize(("count", "expected"), [(0, 0.0), (1, 1 / 6), (3, 0.5), (9, 0.75), (15, 1.0), (40, 1.0)])
    def test_ramp(self, count: int, expected: float) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "b", "a") for _ in range(count)])
        items = [_item("a", 0, TOP), _item("b", 1, TOP)]
        assert _factors(scorer, items, "a").data_points == pytest.approx(expected)

    def test_no_comparisons_scores_lower_than_many(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "c", "a") for _ in range(15)])
        items = [_item("a", 0, TOP), _item("b", 1, TOP), _item("c", 2, TOP)]
        assert _factors(scorer, items, "b").data_points < _factors(scorer, items, "a").data_points


class TestConsistencyFactor:
    def test_no_comparisons_is_neutral(self) -> None:
        assert _factors(ConfidenceScorer(), [_item("a", 0, TOP)], "a").consistency == 0.5

    def test_winner_ranked_higher_is_consistent(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "c", "a")])
        items = [_item("a", 0, TOP), _item("c", 2, TOP)]
        assert _factors(scorer, items, "a").consistency == 1.0
        assert _factors(scorer, items, "c").consistency == 1.0

    def test_upset_is_inconsistent(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "c", "c")])
        items = [_item("a", 0, TOP), _item("c", 2, TOP)]
        assert _factors(scorer, items, "a").consistency == 0.0

    def test_draws_depend_on_distance(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "b", None), _cmp("c", "d", None)])
        items = [_item("a", 0, TOP), _item("b", 1, TOP), _item("c", 2, TOP), _item("d", 9, TOP)]
        assert _factors(scorer, items, "a").consistency == pytest.approx(0.8)
        assert _factors(scorer, items, "c").consistency == pytest.approx(0.4)

    def test_unknown_opponent_still_counts(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "b", "a"), _cmp("a", "ghost", "a")])
        items = [_item("a", 0, TOP), _item("b", 1, TOP)]
        assert _factors(scorer, items, "a").consistency == 0.5


class TestPositionFactors:
    @pytest.mark.parametrize(("position", "expected"), [(5, 1.0), (0, 0.5), (9, 0.6)])
    def test_proximity(self, position: int, expected: float) -> None:
        assert _factors(ConfidenceScorer(), [_item("a", position, TOP)], "a").proximity == pytest.approx(expected)

    def test_single_slot_tier_is_fully_central(self) -> None:
        tier = TierDefinition(id="solo", label="S", start_position=0, end_position=1)
        item = _item("a", 0, tier)
        confidence = ConfidenceScorer().all_confidences([item], [tier])[0]
        assert confidence.factors.proximity == 1.0

    def test_separation_penalises_boundary_neighbours(self) -> None:
        items = [_item("a", 8, TOP), _item("b", 9, TOP), _item("c", 10, MID), _item("d", 20, LOW)]
        scorer = ConfidenceScorer()
        assert _factors(scorer, items, "a").separation == 1.0
        assert _factors(scorer, items, "b").separation == pytest.approx(0.9)
        assert _factors(scorer, items, "c").separation == pytest.approx(0.81)

    def test_algorithm_agreement(self) -> None:
        items = [_item("a", 7, TOP)]
        scorer = ConfidenceScorer()
        assert _factors(scorer, items, "a").algorithm_agreement == 0.8
        scorer.set_algorithm_results([_result([0, 10, 30]), _result([0, 10, 30])])
        assert _factors(scorer, items, "a").algorithm_agreement == 1.0
        scorer.set_algorithm_results([_result([0, 10, 30]), _result([0, 5, 30])])
        assert _factors(scorer, items, "a").algorithm_agreement == 0.5


class TestAlternativeTier:
    @pytest.mark.parametrize(
        ("position", "tier", "alternative", "confidence"),
        [
            (10, MID, TOP, 100),
            (14, MID, TOP, 20),
            (15, MID, LOW, 20),
            (19, MID, LOW, 100),
        ],
    )
    def test_nearer_edge(self, position: int, tier: TierDefinition, alternative: TierDefinition, confidence: int) -> None:
        result = ConfidenceScorer().all_confidences([_item("a", position, tier)], TIERS)[0]
        assert result.alternative_tier == alternative
        assert result.alternative_confidence == confidence

    def test_confidence_rises_towards_boundary(self) -> None:
        scorer = ConfidenceScorer()
        near = scorer.all_confidences([_item("a", 11, MID)], TIERS)[0]
        far = scorer.all_confidences([_item("a", 13, MID)], TIERS)[0]
        assert near.alternative_confidence is not None and far.alternative_confidence is not None
        assert near.alternative_confidence > far.alternative_confidence

    def test_top_of_first_tier_has_no_alternative(self) -> None:
        result = ConfidenceScorer().all_confidences([_item("a", 1, TOP)], TIERS)[0]
        assert result.alternative_tier is None
        assert result.alternative_confidence is None


class TestScoring:
    def test_single_item_without_data(self) -> None:
        tier = TierDefinition(id="solo", label="S", start_position=0, end_position=1)
        confidence = ConfidenceScorer().all_confidences([_item("a", 0, tier)], [tier])[0]
        assert confidence.confidence == 61

    def test_confidence_bounded(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "b", "b") for _ in range(20)])
        items = [_item("a", 0, TOP), _item("b", 10, MID)]
        for confidence in scorer.all_confidences(items, TIERS):
            assert 0 <= confidence.confidence <= 100

    def test_item_confidence_unknown_item(self) -> None:
        with pytest.raises(ValueError, match="ghost"):
            ConfidenceScorer().item_confidence(_item("ghost", 0, TOP), [_item("a", 0, TOP)], TIERS)


class TestReport:
    def test_report(self) -> None:
        items = [_item("a", 0, TOP), _item("b", 5, TOP), _item("c", 9, TOP)]
        report = ConfidenceScorer().generate_report(items, TIERS)
        assert [c.confidence for c in report.confidences] == [51, 61, 53]
        assert report.overall_confidence == 55
        assert report.tier_confidences == {"tier-0": 55}
        assert report.low_confidence_count == 2
        assert report.boundary_item_count == 1
        assert len(report.recommendations) == 4
        assert "Current: 0, Recommended: 9+" in report.recommendations[2]

    def test_empty_report(self) -> None:
        report = ConfidenceScorer().generate_report([], TIERS)
        assert report.overall_confidence == 0
        assert report.tier_confidences == {}
        assert report.recommendations == ("Overall confidence is below 70%. Results may change with additional data.",)

    def test_reset(self) -> None:
        scorer = ConfidenceScorer()
        scorer.set_comparisons([_cmp("a", "b", "a")])
        scorer.reset()
        assert _factors(scorer, [_item("a", 0, TOP)], "a").data_points == 0.0
