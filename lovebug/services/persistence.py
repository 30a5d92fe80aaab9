"""Turn a locally passed challenge into a durable verified flag."""
import asyncio
import logging

from lovebug.config import settings
from lovebug.models.session import CommitResult
from lovebug.services.identity import IdentityStore

logger = logging.getLogger(__name__)


def _log_late_write(user_id: str):
    def _done(task: asyncio.Task) -> None:
        if task.cancelled():
            logger.warning("Late verified-flag write cancelled user=%s", user_id)
        elif task.exception() is not None:
            logger.warning("Late verified-flag write failed user=%s: %s", user_id, task.exception())
        else:
            logger.info("Late verified-flag write finished user=%s ok=%s", user_id, task.result())
    return _done


async def commit(
    identity: IdentityStore,
    user_id: str,
    timeout_s: float | None = None,
) -> CommitResult:
    """
    Single bounded call to identity.set_verified_flag, no local retry.
    The write is shielded: if the caller gives up or is cancelled it may still
    land later, which is harmless since setting the flag is idempotent.
    """
    timeout = settings.persistence_timeout_s if timeout_s is None else timeout_s
    write = asyncio.ensure_future(identity.set_verified_flag(user_id))

    try:
        ok = await asyncio.wait_for(asyncio.shield(write), timeout=timeout)
    except asyncio.TimeoutError:
        write.add_done_callback(_log_late_write(user_id))
        logger.warning("Verified-flag write timed out after %.1fs user=%s", timeout, user_id)
        return CommitResult.failed("persistence_timeout")
    except asyncio.CancelledError:
        write.add_done_callback(_log_late_write(user_id))
        raise
    except Exception as exc:
        logger.warning("Verified-flag write failed user=%s: %s", user_id, exc)
        return CommitResult.failed(f"persistence_error: {exc}")

    if not ok:
        logger.warning("Identity store rejected verified-flag write user=%s", user_id)
        return CommitResult.failed("persistence_rejected")

    logger.info("User %s marked robot-verified", user_id)
    return CommitResult.success()
