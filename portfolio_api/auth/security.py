from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt


BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes and refuses longer input.
PASSWORD_MAX_BYTES = 72
TOKEN_TTL = timedelta(hours=1)
_JWT_ALG = "HS256"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (fresh random salt, cost factor 10)."""
    if not password:
        raise ValueError("password_blank")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError("password_too_long")
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash. A mismatch is False, never an error."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash, or a password bcrypt refuses (> 72 bytes).
        return False


def create_access_token(
    *,
    secret: str,
    user_id: int,
    now: datetime | None = None,
) -> str:
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = now or datetime.now(timezone.utc)
    exp = issued + TOKEN_TTL

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(issued.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises jwt.InvalidTokenError on failure."""
    if not token:
        raise ValueError("token_blank")
    if not secret:
        raise ValueError("jwt_secret_blank")
    return jwt.decode(token, secret, algorithms=[_JWT_ALG], options={"require": ["sub", "exp"]})
