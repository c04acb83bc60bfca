from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_api import __version__
from portfolio_api.api.models import (
    LoginRequest,
    PortfolioCreateRequest,
    PortfolioUpdateRequest,
    RegisterRequest,
)
from portfolio_api.auth import get_config, get_current_user
from portfolio_api.auth.crud import create_user, get_user_by_id, public_user, verify_user_credentials
from portfolio_api.auth.security import TOKEN_TTL, create_access_token
from portfolio_api.config import Config, load_config
from portfolio_api.db import connect, init_db
from portfolio_api.portfolios.crud import (
    create_portfolio,
    delete_owned_portfolio,
    get_portfolio,
    list_portfolios,
    update_owned_portfolio,
)


logger = logging.getLogger(__name__)

router = APIRouter()


# -----------------------------
# Health
# -----------------------------


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "ok"}


# -----------------------------
# Auth
# -----------------------------


def _cookie_secure(cfg: Config) -> bool:
    """Return whether auth cookies should be marked Secure."""
    # Browsers require Secure when SameSite=None
    if cfg.AUTH_COOKIE_SAMESITE.lower() == "none":
        return True
    return bool(cfg.AUTH_COOKIE_SECURE)


def _set_auth_cookie(response: Response, *, token: str, cfg: Config) -> None:
    response.set_cookie(
        key=cfg.AUTH_COOKIE_NAME,
        value=str(token),
        httponly=True,
        samesite=cfg.AUTH_COOKIE_SAMESITE.lower(),
        secure=_cookie_secure(cfg),
        max_age=int(TOKEN_TTL.total_seconds()),
        path=cfg.AUTH_COOKIE_PATH,
        domain=cfg.AUTH_COOKIE_DOMAIN,
    )


def _clear_auth_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(key=cfg.AUTH_COOKIE_NAME, path=cfg.AUTH_COOKIE_PATH, domain=cfg.AUTH_COOKIE_DOMAIN)


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    try:
        with connect(cfg.DB_DSN) as conn:
            create_user(conn, username=payload.username, email=payload.email, password=payload.password)
    except ValueError as e:
        detail = str(e)
        if detail == "email_exists":
            raise HTTPException(status_code=409, detail="Email already registered.")
        if detail in ("username_blank", "email_blank", "password_blank", "password_too_long"):
            raise HTTPException(status_code=400, detail="Invalid username, email or password.")
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="Registration failed!")
    except Exception:
        logger.exception("Registration failed")
        raise HTTPException(status_code=500, detail="Registration failed!")

    return {"message": "User registered successfully!"}


@router.post("/login")
def login(payload: LoginRequest, response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    try:
        with connect(cfg.DB_DSN) as conn:
            user_row = verify_user_credentials(conn, payload.email, payload.password)
        token = None
        if user_row is not None:
            token = create_access_token(secret=cfg.JWT_SECRET, user_id=int(user_row["user_id"]))
    except Exception:
        logger.exception("Login failed")
        raise HTTPException(status_code=500, detail="Login failed!")

    if token is None:
        # Same answer for unknown email and wrong password.
        raise HTTPException(status_code=401, detail="Invalid credentials")

    _set_auth_cookie(response, token=token, cfg=cfg)
    return {"message": "Login successful!"}


@router.post("/logout")
def logout(response: Response, cfg: Config = Depends(get_config)) -> Dict[str, Any]:
    """Clear the browser session cookie."""
    _clear_auth_cookie(response, cfg)
    return {"message": "Logout successful!"}


@router.get("/me")
def me(
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_id(conn, user["user_id"])
    if row is None:
        raise HTTPException(status_code=401, detail="Access denied. Unknown user.")
    return {"user": public_user(row)}


# -----------------------------
# Portfolios
# -----------------------------


@router.post("/portfolio", status_code=201)
def portfolio_create(
    payload: PortfolioCreateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    created: Optional[Dict[str, Any]] = None
    try:
        with connect(cfg.DB_DSN) as conn:
            # The token may outlive its user; never insert an orphaned portfolio.
            if get_user_by_id(conn, user["user_id"]) is not None:
                created = create_portfolio(conn, user_id=user["user_id"], fields=payload.model_dump())
    except Exception:
        logger.exception("Portfolio creation failed (user_id=%s)", user["user_id"])
        raise HTTPException(status_code=500, detail="Portfolio creation failed!")

    if created is None:
        raise HTTPException(status_code=401, detail="Access denied. Unknown user.")
    return {"message": "Portfolio created successfully!", "portfolio": created}


@router.get("/portfolio")
def portfolio_list(cfg: Config = Depends(get_config)) -> List[Dict[str, Any]]:
    try:
        with connect(cfg.DB_DSN) as conn:
            return list_portfolios(conn)
    except Exception:
        logger.exception("Failed to retrieve portfolios")
        raise HTTPException(status_code=500, detail="Failed to retrieve portfolios")


@router.put("/portfolio/{portfolio_id}")
def portfolio_update(
    portfolio_id: int,
    payload: PortfolioUpdateRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update.")

    try:
        with connect(cfg.DB_DSN) as conn:
            updated = update_owned_portfolio(
                conn, portfolio_id=portfolio_id, user_id=user["user_id"], fields=fields
            )
            exists = updated is not None or get_portfolio(conn, portfolio_id) is not None
    except Exception:
        logger.exception("Failed to update portfolio %s", portfolio_id)
        raise HTTPException(status_code=500, detail="Failed to update portfolio")

    if updated is None:
        if not exists:
            raise HTTPException(status_code=404, detail="Portfolio not found.")
        raise HTTPException(status_code=403, detail="Not allowed to modify this portfolio.")
    return {"message": "Portfolio updated successfully!", "portfolio": updated}


@router.delete("/portfolio/{portfolio_id}")
def portfolio_delete(
    portfolio_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    cfg: Config = Depends(get_config),
) -> Dict[str, Any]:
    try:
        with connect(cfg.DB_DSN) as conn:
            deleted = delete_owned_portfolio(conn, portfolio_id=portfolio_id, user_id=user["user_id"])
            exists = deleted or get_portfolio(conn, portfolio_id) is not None
    except Exception:
        logger.exception("Failed to delete portfolio %s", portfolio_id)
        raise HTTPException(status_code=500, detail="Failed to delete portfolio")

    if not deleted:
        if not exists:
            raise HTTPException(status_code=404, detail="Portfolio not found.")
        raise HTTPException(status_code=403, detail="Not allowed to modify this portfolio.")
    return {"message": "Portfolio deleted successfully!"}


# -----------------------------
# App factory
# -----------------------------


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"message": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"message": "Invalid request.", "errors": jsonable_encoder(exc.errors())},
        status_code=422,
    )


def create_app(cfg: Config | None = None) -> FastAPI:
    """Build the API around an explicit configuration.

    With no argument the configuration is read from the environment, which
    raises ConfigError when the database URL is missing.
    """
    cfg = cfg or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Ensure schema exists.
        init_db(cfg.DB_DSN)
        yield

    app = FastAPI(title="Portfolio API", version=__version__, lifespan=lifespan)
    app.state.cfg = cfg

    # CORS is mainly needed for local development (frontend dev server -> API).
    origins = [o.strip() for o in (cfg.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.include_router(router)
    return app
