import time
from collections.abc import Callable


class DeadlineExceededError(Exception):
    """Raised when a calculation runs past its caller-supplied deadline."""

    def __init__(self, operation: str, budget: float) -> None:
        self.operation = operation
        self.budget = budget
        super().__init__(f"{operation} exceeded its {budget:.3f}s deadline")


class Deadline:
    """A time budget measured on the monotonic clock.

    Long-running calculators call ``check()`` between iterations; the check
    raises ``DeadlineExceededError`` once the budget is spent.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._budget = seconds
        self._expires_at = clock() + seconds

    @property
    def budget(self) -> float:
        return self._budget

    @property
    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def check(self, operation: str) -> None:
        if self.expired:
            raise DeadlineExceededError(operation, self._budget)


def check_deadline(deadline: Deadline | None, operation: str) -> None:
    if deadline is not None:
        deadline.check(operation)
