"""Authentication / authorization helpers.

Auth is intentionally lightweight:

- Users table (username/email/password hash)
- JWT access tokens (HS256, 1 hour) carried in an httpOnly `token` cookie

There is no refresh flow; once the token expires the user logs in again.
"""

from .deps import get_config, get_current_user
from .crud import create_user, verify_user_credentials

__all__ = [
    "get_config",
    "get_current_user",
    "create_user",
    "verify_user_credentials",
]
