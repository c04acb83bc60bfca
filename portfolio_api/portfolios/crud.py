from __future__ import annotations

from typing import Any, Dict, List, Optional

from portfolio_api.db import fetch_returning
from portfolio_api.util.time import utcnow_iso


EDITABLE_FIELDS = ("title", "description", "img", "codelink", "livelink")


def public_portfolio(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """Row -> the JSON shape the frontend consumes."""
    d = dict(row)
    return {
        "id": int(d["portfolio_id"]),
        "title": d.get("title"),
        "description": d.get("description"),
        "img": d.get("img"),
        "codelink": d.get("codelink"),
        "livelink": d.get("livelink"),
        "userId": int(d["user_id"]),
        "createdAt": d.get("created_at"),
        "updatedAt": d.get("updated_at"),
    }


def get_portfolio(conn: Any, portfolio_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT * FROM portfolios WHERE portfolio_id=?",
        (int(portfolio_id),),
    ).fetchone()


def list_portfolios(conn: Any) -> List[Dict[str, Any]]:
    rows = conn.execute("SELECT * FROM portfolios ORDER BY portfolio_id").fetchall()
    return [public_portfolio(r) for r in rows]


def create_portfolio(conn: Any, *, user_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
    now = utcnow_iso()
    cur = conn.execute(
        """
        INSERT INTO portfolios (user_id, title, description, img, codelink, livelink, created_at, updated_at)
        VALUES (?,?,?,?,?,?,?,?)
        RETURNING *
        """,
        (
            int(user_id),
            fields.get("title"),
            fields.get("description"),
            fields.get("img"),
            fields.get("codelink"),
            fields.get("livelink"),
            now,
            now,
        ),
    )
    row = fetch_returning(cur)
    return public_portfolio(row)


def update_owned_portfolio(
    conn: Any,
    *,
    portfolio_id: int,
    user_id: int,
    fields: Dict[str, Any],
) -> Optional[Dict[str, Any]]:
    """Apply `fields` to the portfolio only if `user_id` owns it.

    Match and mutation happen in one statement. Returns the updated portfolio,
    or None when no owned record matched.
    """
    # Build dynamic SQL so we only touch provided fields.
    updates = [(k, v) for k, v in fields.items() if k in EDITABLE_FIELDS]
    if not updates:
        raise ValueError("no_fields")

    updates.append(("updated_at", utcnow_iso()))
    sets = ", ".join([f"{k}=?" for k, _ in updates])
    params = [v for _, v in updates] + [int(portfolio_id), int(user_id)]
    row = fetch_returning(
        conn.execute(
            f"UPDATE portfolios SET {sets} WHERE portfolio_id=? AND user_id=? RETURNING *",
            params,
        )
    )
    if row is None:
        return None
    return public_portfolio(row)


def delete_owned_portfolio(conn: Any, *, portfolio_id: int, user_id: int) -> bool:
    """Delete the portfolio only if `user_id` owns it. True when a row was removed."""
    cur = conn.execute(
        "DELETE FROM portfolios WHERE portfolio_id=? AND user_id=?",
        (int(portfolio_id), int(user_id)),
    )
    return cur.rowcount > 0
