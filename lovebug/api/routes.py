"""REST endpoints: auth stand-in, verification status, challenges, attempt stats."""
import uuid

import jwt
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from lovebug.config import settings
from lovebug.database import create_profile, fetch_user_attempts
from lovebug.models.challenge import Variant
from lovebug.models.session import Condition
from lovebug.protocol.evaluator import record_attempt
from lovebug.protocol.registry import registry
from lovebug.services.attempt_stats import analyze_attempts
from lovebug.services.challenge_gen import GenerationUnavailable
from lovebug.services.identity import ProfileStore
from lovebug.services.token import create_token, user_id_from_token

router = APIRouter()


class SessionRequest(BaseModel):
    user_id: str | None = None


class ChallengeRequest(BaseModel):
    variant: Variant = Variant.TEXT_CAPTCHA


class AnswerRequest(BaseModel):
    answer: str | float | int = ""


def get_identity(authorization: str | None = Header(None)) -> ProfileStore:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        user_id = user_id_from_token(token)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")
    return ProfileStore(current_user_id=user_id)


def _owned_session(session_id: str, identity: ProfileStore):
    session = registry.get(session_id, identity.current_user_id())
    if session is None:
        raise HTTPException(status_code=404, detail="Challenge not found")
    return session


@router.get("/status")
async def status():
    return {
        "status": "ok",
        "service": "LoveBug robot verification",
        "open_sessions": len(registry),
        "dev_auth": settings.dev_auth_enabled,
    }


@router.post("/auth/session")
async def issue_session(body: SessionRequest):
    """Development stand-in for the auth provider: create a profile, return a JWT."""
    if not settings.dev_auth_enabled:
        raise HTTPException(status_code=404, detail="Not found")
    user_id = body.user_id or str(uuid.uuid4())
    await create_profile(user_id)
    return {"user_id": user_id, "token": create_token(user_id)}


@router.get("/me/verification")
async def my_verification(identity: ProfileStore = Depends(get_identity)):
    user_id = identity.current_user_id()
    return {"user_id": user_id, "is_verified": await identity.get_verified_flag(user_id)}


@router.get("/me/attempts/stats")
async def my_attempt_stats(identity: ProfileStore = Depends(get_identity)):
    user_id = identity.current_user_id()
    attempts = await fetch_user_attempts(user_id)
    return {"user_id": user_id, "stats": analyze_attempts(attempts)}


@router.post("/challenges")
async def open_challenge(body: ChallengeRequest, identity: ProfileStore = Depends(get_identity)):
    user_id = identity.current_user_id()
    if await identity.get_verified_flag(user_id):
        raise HTTPException(status_code=409, detail="Already verified")
    try:
        session = registry.open(user_id, body.variant)
    except GenerationUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return session.view()


@router.get("/challenges/{session_id}")
async def get_challenge(session_id: str, identity: ProfileStore = Depends(get_identity)):
    return _owned_session(session_id, identity).view()


@router.post("/challenges/{session_id}/answer")
async def answer_challenge(
    session_id: str,
    body: AnswerRequest,
    identity: ProfileStore = Depends(get_identity),
):
    session = _owned_session(session_id, identity)
    result = await session.submit(body.answer, identity)
    await record_attempt(session, result)
    return _result_payload(session, result)


@router.post("/challenges/{session_id}/commit")
async def commit_challenge(session_id: str, identity: ProfileStore = Depends(get_identity)):
    session = _owned_session(session_id, identity)
    result = await session.retry_commit(identity)
    await record_attempt(session, result)
    return _result_payload(session, result)


def _result_payload(session, result) -> dict:
    payload = {"result": result.to_dict(), "challenge": session.view()}
    if result.condition is Condition.SUCCEEDED:
        registry.discard(session.session_id)
    return payload
