"""Challenge generation and checking for the three robot-check variants."""
import logging
import secrets
import uuid
from typing import Protocol

from lovebug.config import settings
from lovebug.models.challenge import ChallengeState, QuestionStep, Variant

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Static question bank
# ---------------------------------------------------------------------------

_QUESTION_BANK = [
    QuestionStep("What colour is a ripe strawberry?", ("red",)),
    QuestionStep("How many legs does a ladybug have?", ("6", "six")),
    QuestionStep("What do bees make?", ("honey",)),
    QuestionStep("What is 3 plus 4?", ("7", "seven")),
    QuestionStep("Which animal says 'meow'?", ("cat", "a cat", "kitten")),
    QuestionStep("What shape is a traditional love heart symbol drawn as?", ("heart", "a heart")),
    QuestionStep("What is the opposite of 'cold'?", ("hot", "warm")),
    QuestionStep("How many days are in a week?", ("7", "seven")),
    QuestionStep("What falls from clouds when it rains?", ("water", "rain", "raindrops")),
    QuestionStep("Which month comes after January?", ("february", "feb")),
]

# No 0/O, 1/I/L
CAPTCHA_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

_rng = secrets.SystemRandom()


class GenerationUnavailable(RuntimeError):
    """No entropy source; the session cannot be started."""


class InvalidAnswer(ValueError):
    """Submitted value is malformed and cannot be compared at all."""


def _normalize(text) -> str:
    return str(text).strip().lower()


def _new_id() -> str:
    return uuid.uuid4().hex


def _draw(func, *args):
    try:
        return func(*args)
    except NotImplementedError as exc:
        logger.error("Entropy source unavailable: %s", exc)
        raise GenerationUnavailable("no entropy source available") from exc


def draw_questions(count: int | None = None) -> list[QuestionStep]:
    count = settings.question_count if count is None else count
    return _draw(_rng.sample, _QUESTION_BANK, count)


def draw_captcha_code(length: int | None = None) -> str:
    length = settings.captcha_length if length is None else length
    return "".join(_draw(_rng.choice, CAPTCHA_ALPHABET) for _ in range(length))


def draw_slider_target() -> int:
    return _draw(_rng.randint, settings.slider_min_offset, settings.slider_max_offset)


# ---------------------------------------------------------------------------
# Variant strategies
# ---------------------------------------------------------------------------

class ChallengeVariant(Protocol):
    variant: Variant

    def generate(self) -> ChallengeState: ...

    def check(self, state: ChallengeState, raw) -> bool: ...

    def rearm(self, failed: ChallengeState) -> ChallengeState: ...

    def view(self, state: ChallengeState) -> dict: ...


def _base_view(state: ChallengeState) -> dict:
    return {
        "challenge_id": state.challenge_id,
        "variant": state.variant.value,
        "status": state.status.value,
        "step": state.current_step_index,
        "total_steps": state.step_count,
        "awaiting_commit": state.awaiting_commit,
    }


class QuestionSequence:
    """Fixed-bank knowledge questions answered one after another.

    A wrong answer keeps the same questions and the same step: a failed
    guess reveals nothing about the expected answer.
    """

    variant = Variant.QUESTION_SEQUENCE

    def generate(self) -> ChallengeState:
        return ChallengeState(
            challenge_id=_new_id(),
            variant=self.variant,
            steps=draw_questions(),
        )

    def check(self, state: ChallengeState, raw) -> bool:
        step = state.steps[state.current_step_index]
        return _normalize(raw) in {_normalize(a) for a in step.answers}

    def rearm(self, failed: ChallengeState) -> ChallengeState:
        return ChallengeState(
            challenge_id=failed.challenge_id,
            variant=self.variant,
            steps=failed.steps,
            current_step_index=failed.current_step_index,
        )

    def view(self, state: ChallengeState) -> dict:
        data = _base_view(state)
        data["prompt"] = state.steps[state.current_step_index].prompt
        return data


class TextCaptcha:
    """Short code drawn from an unambiguous alphabet, compared case-insensitively."""

    variant = Variant.TEXT_CAPTCHA

    def generate(self) -> ChallengeState:
        return ChallengeState(
            challenge_id=_new_id(),
            variant=self.variant,
            expected_answer=draw_captcha_code(),
        )

    def check(self, state: ChallengeState, raw) -> bool:
        return _normalize(raw) == _normalize(state.expected_answer)

    def rearm(self, failed: ChallengeState) -> ChallengeState:
        fresh = self.generate()
        while fresh.expected_answer == failed.expected_answer:
            fresh.expected_answer = draw_captcha_code()
        return fresh

    def view(self, state: ChallengeState) -> dict:
        data = _base_view(state)
        data["display_text"] = state.expected_answer
        data["length"] = len(state.expected_answer)
        return data


class SliderPuzzle:
    """Drag a piece to a target offset on a 0-100 track."""

    variant = Variant.SLIDER_PUZZLE

    def generate(self) -> ChallengeState:
        return ChallengeState(
            challenge_id=_new_id(),
            variant=self.variant,
            expected_answer=draw_slider_target(),
        )

    def check(self, state: ChallengeState, raw) -> bool:
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidAnswer(f"slider offset must be a number, got {raw!r}") from exc
        if not 0 <= value <= 100:
            raise InvalidAnswer(f"slider offset {value} outside 0-100")
        return abs(value - state.expected_answer) <= settings.slider_tolerance

    def rearm(self, failed: ChallengeState) -> ChallengeState:
        return self.generate()

    def view(self, state: ChallengeState) -> dict:
        data = _base_view(state)
        data["target_offset"] = state.expected_answer
        data["tolerance"] = settings.slider_tolerance
        return data


VARIANTS: dict[Variant, ChallengeVariant] = {
    Variant.QUESTION_SEQUENCE: QuestionSequence(),
    Variant.TEXT_CAPTCHA: TextCaptcha(),
    Variant.SLIDER_PUZZLE: SliderPuzzle(),
}


def generate_challenge(variant: Variant) -> ChallengeState:
    """Create a fresh challenge instance; raises GenerationUnavailable."""
    return VARIANTS[variant].generate()
