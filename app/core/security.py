from datetime import datetime, timedelta, timezone
from typing import NamedTuple

from jose import JWTError, jwt

from app.core.config import JWT_ALGORITHM, JWT_EXPIRE_DAYS


class TokenError(Exception):
    pass


class TokenClaims(NamedTuple):
    user_id: int
    email: str


def create_access_token(user_id: int, email: str, secret: str, expire_days: int = JWT_EXPIRE_DAYS) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=expire_days),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> TokenClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        return TokenClaims(user_id=int(payload["sub"]), email=payload.get("email", ""))
    except (JWTError, KeyError, TypeError, ValueError) as exc:
        raise TokenError("Invalid or expired token") from exc
