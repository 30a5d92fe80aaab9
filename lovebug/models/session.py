"""CooldownState, AttemptResult, and CommitResult dataclasses."""
from dataclasses import dataclass
from enum import Enum


class Condition(str, Enum):
    STEP_PASSED = "STEP_PASSED"
    SUCCEEDED = "SUCCEEDED"
    WRONG_ANSWER = "WRONG_ANSWER"
    COOLDOWN_ACTIVE = "COOLDOWN_ACTIVE"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_STATE = "INVALID_STATE"


@dataclass
class CooldownState:
    last_failure_timestamp: float | None = None


@dataclass
class AttemptResult:
    condition: Condition
    step_index: int = 0
    remaining_seconds: int = 0
    reason: str = ""

    def to_dict(self) -> dict:
        return {
            "condition": self.condition.value,
            "step_index": self.step_index,
            "remaining_seconds": self.remaining_seconds,
            "reason": self.reason,
        }

    @classmethod
    def step_passed(cls, step_index: int) -> "AttemptResult":
        return cls(condition=Condition.STEP_PASSED, step_index=step_index)

    @classmethod
    def succeeded(cls, step_index: int) -> "AttemptResult":
        return cls(condition=Condition.SUCCEEDED, step_index=step_index)

    @classmethod
    def wrong_answer(cls, step_index: int, remaining_seconds: int) -> "AttemptResult":
        return cls(
            condition=Condition.WRONG_ANSWER,
            step_index=step_index,
            remaining_seconds=remaining_seconds,
        )

    @classmethod
    def cooldown_active(cls, step_index: int, remaining_seconds: int) -> "AttemptResult":
        return cls(
            condition=Condition.COOLDOWN_ACTIVE,
            step_index=step_index,
            remaining_seconds=remaining_seconds,
        )

    @classmethod
    def persistence_failed(cls, step_index: int, reason: str) -> "AttemptResult":
        return cls(condition=Condition.PERSISTENCE_FAILED, step_index=step_index, reason=reason)

    @classmethod
    def invalid_input(cls, step_index: int, reason: str) -> "AttemptResult":
        return cls(condition=Condition.INVALID_INPUT, step_index=step_index, reason=reason)

    @classmethod
    def invalid_state(cls, step_index: int, reason: str) -> "AttemptResult":
        return cls(condition=Condition.INVALID_STATE, step_index=step_index, reason=reason)


@dataclass
class CommitResult:
    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> "CommitResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, reason: str) -> "CommitResult":
        return cls(ok=False, reason=reason)
