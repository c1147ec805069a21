from dataclasses import dataclass


@dataclass(frozen=True)
class Comparison:
    item_a: str
    item_b: str
    winner: str | None  # None = draw
    timestamp: float  # epoch seconds
    confidence: float | None = None

    def involves(self, item_id: str) -> bool:
        return item_id in (self.item_a, self.item_b)

    def opponent_of(self, item_id: str) -> str:
        return self.item_b if item_id == self.item_a else self.item_a

    def score_for(self, item_id: str) -> float:
        """Actual score for ``item_id``: 1 win, 0 loss, 0.5 draw."""
        if self.winner == item_id:
            return 1.0
        if self.winner == self.opponent_of(item_id):
            return 0.0
        return 0.5

    @property
    def is_draw(self) -> bool:
        return self.winner not in (self.item_a, self.item_b)


@dataclass(frozen=True)
class EloRatedItem:
    item_id: str
    rating: float
    comparisons: int
    wins: int
    losses: int
    draws: int
    confidence: float  # 0-100
