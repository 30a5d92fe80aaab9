"""Drives a VerificationSession over a message channel (WebSocket)."""
import asyncio

from lovebug.config import settings
from lovebug.models.session import AttemptResult, Condition
from lovebug.protocol.evaluator import VerificationSession, record_attempt
from lovebug.services.identity import IdentityStore


async def _countdown(session: VerificationSession, ws_send, tick_s: float) -> None:
    """Cosmetic ticks polled from the session clock; the cooldown itself is authoritative."""
    if tick_s <= 0:
        return
    while True:
        remaining = session.cooldown.remaining_cooldown_seconds()
        await ws_send({"type": "cooldown", "remaining_s": remaining})
        if remaining <= 0:
            return
        await asyncio.sleep(tick_s)


async def run(
    session: VerificationSession,
    identity: IdentityStore,
    ws_send,
    ws_recv,
    tick_s: float | None = None,
) -> AttemptResult | None:
    """
    Send the challenge, then answer client messages until the flag is committed.
    Returns the SUCCEEDED result, or None if the client went idle.
    """
    tick_s = settings.countdown_tick_s if tick_s is None else tick_s
    await ws_send({"type": "challenge", **session.view()})

    while True:
        try:
            msg = await asyncio.wait_for(ws_recv(), timeout=settings.answer_timeout_s)
        except asyncio.TimeoutError:
            await ws_send({"type": "session_expired", "session_id": session.session_id})
            return None

        if not isinstance(msg, dict):
            result = AttemptResult.invalid_input(
                session.state.current_step_index, "message must be a JSON object"
            )
        elif msg.get("action") == "commit":
            result = await session.retry_commit(identity)
        else:
            result = await session.submit(msg.get("answer", ""), identity)

        await record_attempt(session, result)
        await ws_send({"type": "result", "session_id": session.session_id, **result.to_dict()})

        if result.condition is Condition.SUCCEEDED:
            return result
        if result.condition in (Condition.WRONG_ANSWER, Condition.COOLDOWN_ACTIVE):
            await _countdown(session, ws_send, tick_s)
        if result.condition is not Condition.PERSISTENCE_FAILED:
            await ws_send({"type": "challenge", **session.view()})
