"""Robot-check state machine: evaluates answers, enforces cooldown, commits the flag."""
import logging
import uuid

from lovebug.models.challenge import ChallengeState, Status, Variant
from lovebug.models.session import AttemptResult, CooldownState
from lovebug.services import persistence
from lovebug.services.challenge_gen import VARIANTS, InvalidAnswer
from lovebug.services.cooldown import Clock, CooldownPolicy, SystemClock
from lovebug.services.identity import IdentityStore

logger = logging.getLogger(__name__)


class VerificationSession:
    """
    One user's pass through a robot check.

    A wrong answer closes the current ChallengeState as FAILED and replaces it
    with a re-armed instance from the variant strategy. CooldownState is shared
    across every session opened for the same user.
    """

    def __init__(
        self,
        user_id: str,
        variant: Variant,
        cooldown: CooldownState | None = None,
        clock: Clock | None = None,
        session_id: str | None = None,
    ):
        self.session_id = session_id or uuid.uuid4().hex
        self.user_id = user_id
        self.clock = clock or SystemClock()
        self.strategy = VARIANTS[Variant(variant)]
        self.cooldown = CooldownPolicy(cooldown, clock=self.clock)
        self.created_at = self.clock.now()
        self.state: ChallengeState = self.strategy.generate()

    @property
    def variant(self) -> Variant:
        return self.strategy.variant

    def view(self) -> dict:
        data = self.strategy.view(self.state)
        data["session_id"] = self.session_id
        data["cooldown_remaining_s"] = self.cooldown.remaining_cooldown_seconds()
        return data

    async def submit(self, raw, identity: IdentityStore) -> AttemptResult:
        state = self.state
        if state.status is not Status.IN_PROGRESS:
            return AttemptResult.invalid_state(state.current_step_index, f"challenge_{state.status.value}")
        if state.awaiting_commit:
            return await self._commit(identity)
        if not self.cooldown.can_attempt_verification():
            return AttemptResult.cooldown_active(
                state.current_step_index, self.cooldown.remaining_cooldown_seconds()
            )

        state.user_input = "" if raw is None else str(raw)
        try:
            passed = self.strategy.check(state, state.user_input)
        except InvalidAnswer as exc:
            state.user_input = ""
            return AttemptResult.invalid_input(state.current_step_index, str(exc))
        state.user_input = ""

        if not passed:
            state.status = Status.FAILED
            self.cooldown.record_failed_attempt()
            self.state = self.strategy.rearm(state)
            logger.info(
                "Wrong answer session=%s variant=%s step=%d",
                self.session_id, self.variant.value, state.current_step_index,
            )
            return AttemptResult.wrong_answer(
                state.current_step_index, self.cooldown.remaining_cooldown_seconds()
            )

        if not state.is_final_step:
            state.current_step_index += 1
            return AttemptResult.step_passed(state.current_step_index)

        state.awaiting_commit = True
        return await self._commit(identity)

    async def retry_commit(self, identity: IdentityStore) -> AttemptResult:
        """Re-run a failed commit without redoing the challenge. No cooldown applies."""
        state = self.state
        if state.status is not Status.IN_PROGRESS or not state.awaiting_commit:
            return AttemptResult.invalid_state(state.current_step_index, "nothing_to_commit")
        return await self._commit(identity)

    async def _commit(self, identity: IdentityStore) -> AttemptResult:
        state = self.state
        current = identity.current_user_id()
        if current is None:
            return AttemptResult.persistence_failed(state.current_step_index, "no_current_user")
        if current != self.user_id:
            return AttemptResult.persistence_failed(state.current_step_index, "identity_mismatch")

        result = await persistence.commit(identity, current)
        if not result.ok:
            return AttemptResult.persistence_failed(state.current_step_index, result.reason)

        state.awaiting_commit = False
        state.status = Status.SUCCEEDED
        return AttemptResult.succeeded(state.current_step_index)


async def record_attempt(session: VerificationSession, result: AttemptResult) -> None:
    """Append to attempt history; failures here never affect verification."""
    from lovebug.database import insert_attempt

    try:
        await insert_attempt(
            user_id=session.user_id,
            session_id=session.session_id,
            variant=session.variant.value,
            step_index=result.step_index,
            condition=result.condition.value,
            timestamp=session.clock.now(),
        )
    except Exception as exc:
        logger.warning("Failed to persist attempt for session %s: %s", session.session_id, exc)
