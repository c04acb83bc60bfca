import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv


class ConfigError(RuntimeError):
    """Raised when required settings are missing."""


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Built once by `load_config()` and handed to `create_app()`; request handlers
    read it from `app.state.cfg`. Provide secrets via environment variables or a
    .env file. Do not hardcode them in source code.
    """

    # -----------------
    # Core
    # -----------------
    # postgres://... selects Postgres; anything else is treated as a SQLite path.
    DB_DSN: str

    # -----------------
    # Auth (JWT)
    # -----------------
    # Tokens are signed with HS256. If this is blank, login fails with a 500.
    JWT_SECRET: str = ""

    # Browser session cookie. The frontend never reads it (httpOnly).
    AUTH_COOKIE_NAME: str = "token"
    AUTH_COOKIE_PATH: str = "/"
    AUTH_COOKIE_DOMAIN: str | None = None
    AUTH_COOKIE_SAMESITE: str = "lax"  # lax|strict|none
    AUTH_COOKIE_SECURE: bool = False

    PUBLIC_APP_URL: str = "http://localhost:5173"

    # -----------------
    # CORS (development)
    # -----------------
    # The frontend sends the cookie cross-origin in dev, so credentials are allowed.
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"


def load_config() -> Config:
    """Read configuration from the environment (and a local .env, if present).

    Raises ConfigError when no database URL is configured; the launcher treats
    that as fatal and exits before binding a port.
    """

    load_dotenv(find_dotenv(usecwd=True))

    dsn = (
        os.environ.get("PORTFOLIO_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or ""
    ).strip()
    if not dsn:
        raise ConfigError("Database URL is missing (set PORTFOLIO_DATABASE_URL or DATABASE_URL)")

    public_app_url = os.environ.get("PUBLIC_APP_URL", "http://localhost:5173")

    # If AUTH_COOKIE_SECURE is unset, we default to secure cookies when PUBLIC_APP_URL is https.
    secure = _env_bool("AUTH_COOKIE_SECURE", None)
    if secure is None:
        secure = public_app_url.lower().startswith("https://")

    return Config(
        DB_DSN=dsn,
        JWT_SECRET=os.environ.get("JWT_SECRET", ""),
        AUTH_COOKIE_NAME=os.environ.get("AUTH_COOKIE_NAME", "token"),
        AUTH_COOKIE_PATH=os.environ.get("AUTH_COOKIE_PATH", "/"),
        AUTH_COOKIE_DOMAIN=(os.environ.get("AUTH_COOKIE_DOMAIN") or "").strip() or None,
        AUTH_COOKIE_SAMESITE=os.environ.get("AUTH_COOKIE_SAMESITE", "lax"),
        AUTH_COOKIE_SECURE=secure,
        PUBLIC_APP_URL=public_app_url,
        CORS_ALLOW_ORIGINS=os.environ.get(
            "CORS_ALLOW_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ),
    )
