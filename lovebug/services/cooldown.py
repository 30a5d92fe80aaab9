"""Wall-clock cooldown after a wrong answer."""
import math
import time
from typing import Protocol

from lovebug.config import settings
from lovebug.models.session import CooldownState


class Clock(Protocol):
    def now(self) -> float: ...


class SystemClock:
    def now(self) -> float:
        return time.time()


class CooldownPolicy:
    """
    Gate verification attempts on the time since the last wrong answer.
    Pure function of now() and last_failure_timestamp: no counters, no backoff.
    """

    def __init__(
        self,
        state: CooldownState | None = None,
        clock: Clock | None = None,
        window_s: int | None = None,
    ):
        self.state = state if state is not None else CooldownState()
        self.clock = clock or SystemClock()
        self.window_s = settings.cooldown_seconds if window_s is None else window_s

    def record_failed_attempt(self) -> None:
        self.state.last_failure_timestamp = self.clock.now()

    def _elapsed(self) -> float | None:
        last = self.state.last_failure_timestamp
        if last is None:
            return None
        return self.clock.now() - last

    def can_attempt_verification(self) -> bool:
        elapsed = self._elapsed()
        return elapsed is None or elapsed >= self.window_s

    def remaining_cooldown_seconds(self) -> int:
        # Rounded up so the display hits 0 exactly when an attempt is allowed.
        elapsed = self._elapsed()
        if elapsed is None:
            return 0
        return max(0, math.ceil(self.window_s - elapsed))
