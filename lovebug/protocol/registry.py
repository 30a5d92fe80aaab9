"""In-memory store of open verification sessions and per-user cooldowns."""
from collections import defaultdict

from lovebug.config import settings
from lovebug.models.challenge import Variant
from lovebug.models.session import CooldownState
from lovebug.protocol.evaluator import VerificationSession
from lovebug.services.cooldown import Clock, SystemClock


class SessionRegistry:
    """
    Sessions are keyed by id and owned by one user; cooldowns are keyed by
    user so a freshly opened challenge inherits any running cooldown.
    Only touched from the event loop thread.
    """

    def __init__(self, clock: Clock | None = None, ttl_s: int | None = None):
        self.clock = clock or SystemClock()
        self.ttl_s = settings.session_ttl_s if ttl_s is None else ttl_s
        self._sessions: dict[str, VerificationSession] = {}
        # user_id → CooldownState
        self._cooldowns: dict[str, CooldownState] = defaultdict(CooldownState)

    def _evict_expired(self) -> None:
        now = self.clock.now()
        expired = [
            sid for sid, s in self._sessions.items()
            if now - s.created_at > self.ttl_s
        ]
        for sid in expired:
            del self._sessions[sid]

        # A cooldown outlives its sessions only while its window is running.
        live_users = {s.user_id for s in self._sessions.values()}
        lapsed = [
            uid for uid, state in self._cooldowns.items()
            if uid not in live_users and (
                state.last_failure_timestamp is None
                or now - state.last_failure_timestamp >= settings.cooldown_seconds
            )
        ]
        for uid in lapsed:
            del self._cooldowns[uid]

    def open(self, user_id: str, variant: Variant) -> VerificationSession:
        """Raises GenerationUnavailable; nothing is registered in that case."""
        self._evict_expired()
        session = VerificationSession(
            user_id=user_id,
            variant=variant,
            cooldown=self._cooldowns[user_id],
            clock=self.clock,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str, user_id: str) -> VerificationSession | None:
        self._evict_expired()
        session = self._sessions.get(session_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    def discard(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)


registry = SessionRegistry()
