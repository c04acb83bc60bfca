from __future__ import annotations

import sqlite3
from typing import Any, Dict, Optional

import psycopg2

from portfolio_api.db import fetch_returning
from portfolio_api.util.time import utcnow_iso

from .security import hash_password, verify_password


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    return d


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute(
        "SELECT * FROM users WHERE email=?",
        (e,),
    ).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM users WHERE user_id=?",
        (int(user_id),),
    ).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    """Return the user row when email + password match, else None.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    username: str,
    email: str,
    password: str,
) -> Dict[str, Any]:
    u = (username or "").strip()
    if not u:
        raise ValueError("username_blank")
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")

    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise ValueError("email_exists")

    password_hash = hash_password(password)
    now = utcnow_iso()
    try:
        cur = conn.execute(
            """
            INSERT INTO users (username, email, password_hash, created_at, updated_at)
            VALUES (?,?,?,?,?)
            RETURNING *
            """,
            (u, e, password_hash, now, now),
        )
        row = fetch_returning(cur)
    except (sqlite3.IntegrityError, psycopg2.IntegrityError) as exc:
        # A concurrent registration won the unique email index.
        raise ValueError("email_exists") from exc
    return public_user(row)
