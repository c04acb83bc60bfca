from __future__ import annotations

import logging
from typing import Any, Dict

import jwt
from fastapi import Depends, HTTPException, Request

from portfolio_api.config import Config

from .security import decode_access_token


logger = logging.getLogger(__name__)

NO_TOKEN_MESSAGE = "Access denied. No token provided."
INVALID_TOKEN_MESSAGE = "Invalid token."


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="Server configuration missing.")
    return cfg


def get_current_user(request: Request, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    """Authenticate a request from the httpOnly session cookie.

    - no cookie          -> 401 "Access denied. No token provided."
    - cookie fails check -> 400 "Invalid token."
    - no JWT_SECRET      -> 500 (server misconfiguration)

    On success the decoded identity claim is returned (and kept on
    `request.state.user`) so handlers can scope queries to the caller.
    """

    token = request.cookies.get(cfg.AUTH_COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail=NO_TOKEN_MESSAGE)

    if not cfg.JWT_SECRET:
        # Misconfigured server, not a bad token.
        logger.error("JWT_SECRET is not set; cannot verify tokens")
        raise HTTPException(status_code=500, detail="Server configuration missing.")

    try:
        payload = decode_access_token(token=token, secret=cfg.JWT_SECRET)
        user_id = int(payload["sub"])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        raise HTTPException(status_code=400, detail=INVALID_TOKEN_MESSAGE)
    except (jwt.InvalidTokenError, ValueError, KeyError, TypeError):
        logger.debug("Rejected invalid token")
        raise HTTPException(status_code=400, detail=INVALID_TOKEN_MESSAGE)

    claims = {"user_id": user_id, "iat": payload.get("iat"), "exp": payload.get("exp")}
    request.state.user = claims
    return claims
