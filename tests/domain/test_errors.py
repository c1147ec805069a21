import dataclasses

import pytest

from tier_engine.domain.algorithm import Algorithm
from tier_engine.domain.errors import AlgorithmError, TierEngineError


class TestTierEngineError:
    def test_construction(self) -> None:
        assert TierEngineError(message="bad input").message == "bad input"

    def test_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            TierEngineError(message="x").message = "y"  # type: ignore[misc]


class TestAlgorithmError:
    def test_is_tier_engine_error(self) -> None:
        err = AlgorithmError(message="boom", algorithm=Algorithm.JENKS, exception_type="RuntimeError")
        assert isinstance(err, TierEngineError)
        assert err.algorithm is Algorithm.JENKS

    def test_exception_type_defaults_empty(self) -> None:
        assert AlgorithmError(message="boom", algorithm=Algorithm.ELO).exception_type == ""
