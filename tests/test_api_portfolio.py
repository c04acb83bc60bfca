from __future__ import annotations

from conftest import TEST_SECRET, register_and_login
from portfolio_api.auth.security import create_access_token


PORTFOLIO = {
    "title": "Weather dashboard",
    "description": "Forecasts with charts",
    "img": "https://cdn.example.com/weather.png",
    "codelink": "https://github.com/ada/weather",
    "livelink": "https://weather.example.com",
}

MUTATIONS = (
    ("POST", "/portfolio", PORTFOLIO),
    ("PUT", "/portfolio/1", {"title": "x"}),
    ("DELETE", "/portfolio/1", None),
)


def _login(make_client, name: str):
    c = make_client()
    register_and_login(c, username=name, email=f"{name}@example.com", password=f"{name}-password")
    return c


def _create(c, **overrides) -> dict:
    r = c.post("/portfolio", json={**PORTFOLIO, **overrides})
    assert r.status_code == 201, r.text
    return r.json()["portfolio"]


def _user_id(c) -> int:
    return int(c.get("/me").json()["user"]["user_id"])


# -----------------------------
# Auth gate on mutating routes
# -----------------------------


def test_mutating_routes_without_cookie_return_401(client) -> None:
    for method, path, body in MUTATIONS:
        r = client.request(method, path, json=body)
        assert r.status_code == 401, (method, r.text)
        assert r.json() == {"message": "Access denied. No token provided."}


def test_mutating_routes_with_tampered_cookie_return_400(client) -> None:
    mine = create_access_token(secret=TEST_SECRET, user_id=1)
    theirs = create_access_token(secret=TEST_SECRET, user_id=2)
    header, _payload, sig = mine.split(".")
    client.cookies.set("token", ".".join([header, theirs.split(".")[1], sig]))

    for method, path, body in MUTATIONS:
        r = client.request(method, path, json=body)
        assert r.status_code == 400, (method, r.text)
        assert r.json() == {"message": "Invalid token."}


# -----------------------------
# Create / list
# -----------------------------


def test_create_portfolio_sets_owner_from_token(make_client) -> None:
    alice = _login(make_client, "alice")
    r = alice.post("/portfolio", json=PORTFOLIO)
    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Portfolio created successfully!"
    p = body["portfolio"]
    assert p["userId"] == _user_id(alice)
    assert p["title"] == PORTFOLIO["title"]
    assert p["livelink"] == PORTFOLIO["livelink"]


def test_create_portfolio_rejects_client_supplied_owner(make_client) -> None:
    alice = _login(make_client, "alice")
    r = alice.post("/portfolio", json={**PORTFOLIO, "userId": 999})
    assert r.status_code == 422


def test_create_portfolio_requires_title(make_client) -> None:
    alice = _login(make_client, "alice")
    r = alice.post("/portfolio", json={"description": "no title"})
    assert r.status_code == 422


def test_create_portfolio_for_unknown_user_is_rejected(client) -> None:
    client.cookies.set("token", create_access_token(secret=TEST_SECRET, user_id=4242))
    r = client.post("/portfolio", json=PORTFOLIO)
    assert r.status_code == 401
    assert r.json() == {"message": "Access denied. Unknown user."}
    assert client.get("/portfolio").json() == []


def test_list_is_public_and_includes_every_owner(make_client) -> None:
    alice = _login(make_client, "alice")
    bob = _login(make_client, "bob")
    pa = _create(alice, title="Alice's site")
    pb = _create(bob, title="Bob's game")

    anon = make_client()
    r = anon.get("/portfolio")
    assert r.status_code == 200
    listed = r.json()
    assert isinstance(listed, list)
    assert [p["id"] for p in listed] == [pa["id"], pb["id"]]
    assert {p["userId"] for p in listed} == {_user_id(alice), _user_id(bob)}


def test_list_storage_failure_is_500_without_leaking_error(client, monkeypatch) -> None:
    def _boom(_conn):
        raise RuntimeError("connection string postgres://admin:hunter2@db")

    monkeypatch.setattr("portfolio_api.api.server.list_portfolios", _boom)
    r = client.get("/portfolio")
    assert r.status_code == 500
    assert r.json() == {"message": "Failed to retrieve portfolios"}
    assert "hunter2" not in r.text


def test_roundtrip_register_login_create_list(client) -> None:
    register_and_login(client, username="ada", email="ada@example.com", password="analytical")
    created = _create(client)
    uid = _user_id(client)

    listed = client.get("/portfolio").json()
    match = [p for p in listed if p["id"] == created["id"]]
    assert len(match) == 1
    assert match[0]["userId"] == uid
    assert match[0]["title"] == PORTFOLIO["title"]


# -----------------------------
# Update / delete ownership
# -----------------------------


def test_owner_can_update(make_client) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)
    r = alice.put(f"/portfolio/{p['id']}", json={"title": "Weather v2"})
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "Portfolio updated successfully!"
    assert body["portfolio"]["title"] == "Weather v2"
    assert body["portfolio"]["codelink"] == PORTFOLIO["codelink"]


def test_non_owner_update_is_forbidden_and_record_unchanged(make_client) -> None:
    alice = _login(make_client, "alice")
    bob = _login(make_client, "bob")
    p = _create(alice)

    r = bob.put(f"/portfolio/{p['id']}", json={"title": "pwned", "livelink": "https://evil"})
    assert r.status_code == 403
    assert r.json() == {"message": "Not allowed to modify this portfolio."}

    stored = [x for x in bob.get("/portfolio").json() if x["id"] == p["id"]][0]
    assert stored["title"] == PORTFOLIO["title"]
    assert stored["livelink"] == PORTFOLIO["livelink"]
    assert stored["userId"] == p["userId"]


def test_update_cannot_transfer_ownership(make_client) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)
    r = alice.put(f"/portfolio/{p['id']}", json={"userId": 2})
    assert r.status_code == 422


def test_update_with_empty_body_is_400(make_client) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)
    r = alice.put(f"/portfolio/{p['id']}", json={})
    assert r.status_code == 400
    assert r.json() == {"message": "No fields to update."}


def test_update_with_null_title_is_422(make_client) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)
    r = alice.put(f"/portfolio/{p['id']}", json={"title": None})
    assert r.status_code == 422


def test_update_missing_portfolio_is_404(make_client) -> None:
    alice = _login(make_client, "alice")
    r = alice.put("/portfolio/9999", json={"title": "ghost"})
    assert r.status_code == 404
    assert r.json() == {"message": "Portfolio not found."}


def test_owner_can_delete(make_client) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)
    r = alice.delete(f"/portfolio/{p['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "Portfolio deleted successfully!"}
    assert alice.get("/portfolio").json() == []

    r = alice.delete(f"/portfolio/{p['id']}")
    assert r.status_code == 404


def test_non_owner_delete_is_forbidden_and_record_kept(make_client) -> None:
    alice = _login(make_client, "alice")
    bob = _login(make_client, "bob")
    p = _create(alice)

    r = bob.delete(f"/portfolio/{p['id']}")
    assert r.status_code == 403
    assert r.json() == {"message": "Not allowed to modify this portfolio."}
    assert [x["id"] for x in bob.get("/portfolio").json()] == [p["id"]]


def test_update_storage_failure_is_500(make_client, monkeypatch) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)

    def _boom(*_a, **_kw):
        raise RuntimeError("db down")

    monkeypatch.setattr("portfolio_api.api.server.update_owned_portfolio", _boom)
    r = alice.put(f"/portfolio/{p['id']}", json={"title": "x"})
    assert r.status_code == 500
    assert r.json() == {"message": "Failed to update portfolio"}


def test_delete_storage_failure_is_500(make_client, monkeypatch) -> None:
    alice = _login(make_client, "alice")
    p = _create(alice)

    def _boom(*_a, **_kw):
        raise RuntimeError("db down")

    monkeypatch.setattr("portfolio_api.api.server.delete_owned_portfolio", _boom)
    r = alice.delete(f"/portfolio/{p['id']}")
    assert r.status_code == 500
    assert r.json() == {"message": "Failed to delete portfolio"}
