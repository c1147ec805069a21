from dataclasses import dataclass


@dataclass(frozen=True)
class Cluster:
    centroid: float
    members: tuple[float, ...]
    variance: float

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class ClassStats:
    class_index: int
    count: int
    min_value: float
    max_value: float
    mean: float
    variance: float
