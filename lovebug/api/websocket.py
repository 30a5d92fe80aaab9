"""WebSocket handler: runs a robot check over a persistent connection."""
import json
import logging

import jwt
from fastapi import WebSocket, WebSocketDisconnect

from lovebug.config import settings
from lovebug.database import create_profile
from lovebug.models.challenge import Variant
from lovebug.protocol import interactive
from lovebug.protocol.registry import registry
from lovebug.services.challenge_gen import GenerationUnavailable
from lovebug.services.identity import ProfileStore
from lovebug.services.token import user_id_from_token

logger = logging.getLogger(__name__)


async def _resolve_user(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        try:
            return user_id_from_token(token)
        except jwt.InvalidTokenError:
            return None
    user_id = websocket.query_params.get("user_id")
    if user_id and settings.dev_auth_enabled:
        await create_profile(user_id)
        return user_id
    return None


async def websocket_challenge(websocket: WebSocket):
    await websocket.accept()

    async def ws_send(data: dict):
        await websocket.send_text(json.dumps(data))

    async def ws_recv():
        raw = await websocket.receive_text()
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    user_id = await _resolve_user(websocket)
    if user_id is None:
        await ws_send({"type": "error", "message": "unauthenticated"})
        await websocket.close(code=4401)
        return

    try:
        variant = Variant(websocket.query_params.get("variant", Variant.TEXT_CAPTCHA.value))
    except ValueError:
        await ws_send({"type": "error", "message": "unknown variant"})
        await websocket.close(code=4400)
        return

    identity = ProfileStore(current_user_id=user_id)
    if await identity.get_verified_flag(user_id):
        await ws_send({"type": "error", "message": "already verified"})
        await websocket.close()
        return

    try:
        session = registry.open(user_id, variant)
    except GenerationUnavailable as exc:
        await ws_send({"type": "error", "message": str(exc)})
        await websocket.close(code=1011)
        return

    try:
        result = await interactive.run(session, identity, ws_send, ws_recv)
        logger.info(
            "Robot check %s for user=%s variant=%s",
            "passed" if result is not None else "abandoned",
            user_id,
            variant.value,
        )
    except WebSocketDisconnect:
        logger.info("Client disconnected mid-challenge user=%s", user_id)
    except Exception as exc:
        logger.exception("Unhandled error during robot check: %s", exc)
        try:
            await websocket.send_text(
                json.dumps({"type": "error", "message": str(exc)})
            )
        except Exception:
            pass
    finally:
        registry.discard(session.session_id)
