"""JSON input files for the ``run``, ``compare`` and ``confidence`` commands.

A file holds any of::

    {
      "list_size": 20,
      "positions": [0, 1, 2, 7.5],
      "comparisons": [{"item_a": "x", "item_b": "y", "winner": "x"}],
      "items": [{"item_id": "x", "position": 0}]
    }
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tier_engine.domain.comparison import Comparison
from tier_engine.domain.tier import RankedItem


class InputError(Exception):
    """Raised when an input file cannot be read or has the wrong shape."""


@dataclass(frozen=True)
class TierInput:
    list_size: int | None = None
    positions: tuple[float, ...] = ()
    comparisons: tuple[Comparison, ...] = ()
    items: tuple[RankedItem, ...] = ()

    def infer_list_size(self) -> int:
        """Declared size, else one past the furthest item or position."""
        if self.list_size is not None:
            return self.list_size
        furthest = [item.position + 1 for item in self.items]
        furthest.extend(int(p) + 1 for p in self.positions)
        return max(furthest, default=0)


def _parse_comparison(index: int, raw: Any) -> Comparison:
    if not isinstance(raw, dict):
        raise InputError(f"comparisons[{index}]: expected an object")
    try:
        item_a, item_b = str(raw["item_a"]), str(raw["item_b"])
    except KeyError as e:
        raise InputError(f"comparisons[{index}]: missing required field {e.args[0]!r}") from e
    winner = raw.get("winner")
    confidence = raw.get("confidence")
    try:
        timestamp = float(raw.get("timestamp", index))
        score = float(confidence) if confidence is not None else None
    except (TypeError, ValueError) as e:
        raise InputError(f"comparisons[{index}]: timestamp and confidence must be numbers") from e
    return Comparison(
        item_a=item_a,
        item_b=item_b,
        winner=str(winner) if winner is not None else None,
        timestamp=timestamp,
        confidence=score,
    )


def _parse_item(index: int, raw: Any) -> RankedItem:
    if not isinstance(raw, dict):
        raise InputError(f"items[{index}]: expected an object")
    try:
        return RankedItem(item_id=str(raw["item_id"]), position=int(raw["position"]))
    except KeyError as e:
        raise InputError(f"items[{index}]: missing required field {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise InputError(f"items[{index}]: position must be an integer") from e


def parse_input(data: Any) -> TierInput:
    if not isinstance(data, dict):
        raise InputError("input must be a JSON object")

    raw_size = data.get("list_size")
    if raw_size is not None and (not isinstance(raw_size, int) or raw_size < 0):
        raise InputError(f"list_size must be a non-negative integer, got {raw_size!r}")

    try:
        positions = tuple(float(p) for p in data.get("positions", []))
    except (TypeError, ValueError) as e:
        raise InputError(f"positions must be numbers: {e}") from e

    return TierInput(
        list_size=raw_size,
        positions=positions,
        comparisons=tuple(_parse_comparison(i, c) for i, c in enumerate(data.get("comparisons", []))),
        items=tuple(_parse_item(i, item) for i, item in enumerate(data.get("items", []))),
    )


def load_input(path: Path) -> TierInput:
    if not path.exists():
        raise InputError(f"file not found: {path}")
    try:
        with path.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"{path}: invalid JSON ({e.msg} at line {e.lineno})") from e
    return parse_input(data)
