"""
Pytest config.

Every test gets its own SQLite file under `tmp_path`, so the suite needs no
external database or network. Local imports of `portfolio_api` rely on the
repo root being on sys.path when the package isn't installed.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

from portfolio_api.api.server import create_app  # noqa: E402
from portfolio_api.config import Config  # noqa: E402
from portfolio_api.db import connect, init_db  # noqa: E402


TEST_SECRET = "test-secret-key-for-testing-purposes-only"


@pytest.fixture
def cfg(tmp_path: Path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "portfolio_test.sqlite"),
        JWT_SECRET=TEST_SECRET,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def conn(cfg: Config) -> Iterator[object]:
    """A connection to an initialized, empty database."""
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as c:
        yield c


@pytest.fixture
def app(cfg: Config):
    return create_app(cfg)


@pytest.fixture
def make_client(app) -> Iterator[Callable[[], TestClient]]:
    """Factory for independent clients (separate cookie jars) against one app."""
    clients: list[TestClient] = []

    def _make() -> TestClient:
        c = TestClient(app)
        c.__enter__()
        clients.append(c)
        return c

    yield _make

    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def register_and_login(c: TestClient, *, username: str, email: str, password: str) -> None:
    r = c.post("/register", json={"username": username, "email": email, "password": password})
    assert r.status_code == 201, r.text
    r = c.post("/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
