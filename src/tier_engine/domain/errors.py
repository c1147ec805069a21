from dataclasses import dataclass

from tier_engine.domain.algorithm import Algorithm


@dataclass(frozen=True)
class TierEngineError:
    message: str


@dataclass(frozen=True)
class AlgorithmError(TierEngineError):
    algorithm: Algorithm
    exception_type: str = ""
