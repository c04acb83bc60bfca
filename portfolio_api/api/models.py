"""Request bodies accepted by the HTTP API.

Bodies are validated before any handler logic runs; a malformed body is
answered with 422 and never reaches the store.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_api.auth.security import PASSWORD_MAX_BYTES


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def _username_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be blank")
        return v

    @field_validator("email")
    @classmethod
    def _email_looks_valid(cls, v: str) -> str:
        v = v.strip()
        local, at, domain = v.partition("@")
        if not at or not local.strip() or not domain.strip():
            raise ValueError("email must look like name@domain")
        return v

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, v: str) -> str:
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password cannot be longer than {PASSWORD_MAX_BYTES} bytes")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class PortfolioCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: Optional[str] = None
    img: Optional[str] = None
    codelink: Optional[str] = None
    livelink: Optional[str] = None


class PortfolioUpdateRequest(BaseModel):
    """Partial update: only the fields present in the body are changed.

    Ownership (`userId`) is not editable; unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    img: Optional[str] = None
    codelink: Optional[str] = None
    livelink: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("title cannot be null")
        return v
