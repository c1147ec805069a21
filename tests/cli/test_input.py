import json
from pathlib import Path

import pytest

from tier_engine.cli._input import InputError, TierInput, load_input, parse_input
from tier_engine.domain.comparison import Comparison
from tier_engine.domain.tier import RankedItem


class TestParseInput:
    def test_full_document(self) -> None:
        data = parse_input(
            {
                "list_size": 5,
                "positions": [0, 1.5],
                "comparisons": [{"item_a": "a", "item_b": "b", "winner": "a", "timestamp": 10, "confidence": 0.8}],
                "items": [{"item_id": "a", "position": 0}],
            }
        )
        assert data == TierInput(
            list_size=5,
            positions=(0.0, 1.5),
            comparisons=(Comparison(item_a="a", item_b="b", winner="a", timestamp=10.0, confidence=0.8),),
            items=(RankedItem("a", 0),),
        )

    def test_defaults(self) -> None:
        data = parse_input({"comparisons": [{"item_a": "a", "item_b": "b"}, {"item_a": "b", "item_b": "c"}]})
        assert [c.timestamp for c in data.comparisons] == [0.0, 1.0]
        assert data.comparisons[0].winner is None
        assert data.positions == ()

    @pytest.mark.parametrize(
        ("raw", "message"),
        [
            ([], "JSON object"),
            ({"list_size": -1}, "list_size"),
            ({"positions": ["x"]}, "positions must be numbers"),
            ({"comparisons": [{"item_a": "a"}]}, r"comparisons\[0\]: missing required field 'item_b'"),
            ({"comparisons": ["a"]}, "expected an object"),
            ({"items": [{"item_id": "a"}]}, r"items\[0\]: missing required field 'position'"),
            ({"items": [{"item_id": "a", "position": "top"}]}, "position must be an integer"),
        ],
    )
    def test_rejects(self, raw: object, message: str) -> None:
        with pytest.raises(InputError, match=message):
            parse_input(raw)


class TestInferListSize:
    def test_declared_size_wins(self) -> None:
        assert TierInput(list_size=3, positions=(9.0,)).infer_list_size() == 3

    def test_furthest_position(self) -> None:
        data = TierInput(positions=(2.0, 7.5), items=(RankedItem("a", 4),))
        assert data.infer_list_size() == 8

    def test_empty(self) -> None:
        assert TierInput().infer_list_size() == 0


class TestLoadInput:
    def test_load(self, tmp_path: Path) -> None:
        path = tmp_path / "in.json"
        path.write_text(json.dumps({"positions": [1, 2, 3]}))
        assert load_input(path).positions == (1.0, 2.0, 3.0)

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="file not found"):
            load_input(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "in.json"
        path.write_text("[1,")
        with pytest.raises(InputError, match="invalid JSON"):
            load_input(path)
