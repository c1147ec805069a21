from tier_engine.domain.algorithm import Algorithm, AlgorithmComparison, AlgorithmResult, ClosedFormMetadata
from tier_engine.domain.comparison import Comparison


def _result(algorithm: Algorithm) -> AlgorithmResult:
    return AlgorithmResult(
        algorithm=algorithm,
        boundaries=(0, 5, 10),
        confidence=75,
        execution_time=0.0,
        metadata=ClosedFormMetadata(tier_sizes=(5, 5)),
    )


class TestComparison:
    def test_scores(self) -> None:
        comparison = Comparison(item_a="a", item_b="b", winner="a", timestamp=0.0)
        assert comparison.score_for("a") == 1.0
        assert comparison.score_for("b") == 0.0
        assert not comparison.is_draw

    def test_draw(self) -> None:
        comparison = Comparison(item_a="a", item_b="b", winner=None, timestamp=0.0)
        assert comparison.is_draw
        assert comparison.score_for("a") == 0.5

    def test_opponent(self) -> None:
        comparison = Comparison(item_a="a", item_b="b", winner="b", timestamp=0.0)
        assert comparison.opponent_of("a") == "b"
        assert comparison.opponent_of("b") == "a"
        assert comparison.involves("b")
        assert not comparison.involves("c")


class TestAlgorithmComparison:
    def test_algorithms_and_lookup(self) -> None:
        comparison = AlgorithmComparison(
            results=(_result(Algorithm.PYRAMID), _result(Algorithm.EQUAL)),
            agreement=100.0,
            best=Algorithm.PYRAMID,
            recommendation="",
        )
        assert comparison.algorithms == (Algorithm.PYRAMID, Algorithm.EQUAL)
        assert comparison.result_for(Algorithm.EQUAL) == _result(Algorithm.EQUAL)
        assert comparison.result_for(Algorithm.JENKS) is None
        assert comparison.failures == ()
