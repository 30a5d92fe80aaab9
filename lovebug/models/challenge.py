"""ChallengeState, QuestionStep, and the Variant/Status enums."""
from dataclasses import dataclass, field
from enum import Enum


class Variant(str, Enum):
    QUESTION_SEQUENCE = "question_sequence"
    TEXT_CAPTCHA = "text_captcha"
    SLIDER_PUZZLE = "slider_puzzle"


class Status(str, Enum):
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class QuestionStep:
    prompt: str
    answers: tuple[str, ...]


@dataclass
class ChallengeState:
    challenge_id: str
    variant: Variant
    expected_answer: object = None
    steps: list[QuestionStep] = field(default_factory=list)
    current_step_index: int = 0
    user_input: str = ""
    status: Status = Status.IN_PROGRESS
    awaiting_commit: bool = False

    @property
    def step_count(self) -> int:
        return len(self.steps) or 1

    @property
    def is_final_step(self) -> bool:
        return self.current_step_index + 1 >= self.step_count
