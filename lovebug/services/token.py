"""Session JWT encode/decode using PyJWT."""
import time
import jwt

from lovebug.config import settings

_ALGORITHM = "HS256"
_EXPIRY_S = 3600


def create_token(user_id: str) -> str:
    now = int(time.time())
    payload = {
        "sub": user_id,
        "exp": now + _EXPIRY_S,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.exceptions on invalid/expired."""
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def user_id_from_token(token: str) -> str:
    return str(decode_token(token)["sub"])
