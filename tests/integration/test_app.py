"""
Integration tests for the HTTP surface (main.create_app).

Covers:
    - plain-text and JSON shorten (201 new, 409 existing)
    - redirect (307), soft-deleted (410), unknown (404)
    - auth_token cookie issued once and reused
    - batch shorten, per-owner listing, async delete
    - ping and trusted-subnet stats
"""

from fastapi.testclient import TestClient

from shortlink.manager.strategies import generate_code

BASE = "http://short.test"


def _wait_for_deletes(app):
    app.state.service.deleter.barrier(timeout=5)


def test_shorten_text_then_redirect(client):
    """
    POST / with a raw URL returns the short URL; GET /{code} redirects.

    LLM Prompt Example:
        "Show how to test a plain-text shorten endpoint and the 307 redirect
        it produces, without following the redirect."
    """
    url = "https://example.com/some/page?x=1"
    response = client.post("/", content=url)

    code = generate_code(url)
    assert response.status_code == 201
    assert response.text == f"{BASE}/{code}"

    redirect = client.get(f"/{code}", follow_redirects=False)
    assert redirect.status_code == 307
    assert redirect.headers["location"] == url


def test_shorten_text_twice_returns_409_with_same_url(client):
    url = "https://example.com/dup"
    first = client.post("/", content=url)
    second = client.post("/", content=url)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.text == first.text


def test_shorten_json(client):
    url = "https://example.com/json"
    response = client.post("/api/shorten", json={"url": url})

    assert response.status_code == 201
    assert response.json() == {"result": f"{BASE}/{generate_code(url)}"}

    again = client.post("/api/shorten", json={"url": url})
    assert again.status_code == 409
    assert again.json() == response.json()


def test_cookie_is_issued_once(client):
    first = client.post("/", content="https://example.com/cookie")
    assert "auth_token" in first.cookies
    token = first.cookies["auth_token"]
    assert ":" in token

    second = client.post("/", content="https://example.com/cookie2")
    assert "auth_token" not in second.cookies
    assert client.cookies.get("auth_token") == token


def test_set_cookie_attributes(client):
    response = client.post("/", content="https://example.com/attrs")
    header = response.headers["set-cookie"].lower()
    assert header.startswith("auth_token=")
    assert "httponly" in header
    assert "path=/" in header
    assert "max-age=31536000" in header


def test_batch_shorten(client):
    payload = [
        {"correlation_id": "a", "original_url": "https://example.com/1"},
        {"correlation_id": "b", "original_url": "https://example.com/2"},
    ]
    response = client.post("/api/shorten/batch", json=payload)

    assert response.status_code == 201
    assert response.json() == [
        {"correlation_id": "a", "short_url": f"{BASE}/{generate_code('https://example.com/1')}"},
        {"correlation_id": "b", "short_url": f"{BASE}/{generate_code('https://example.com/2')}"},
    ]


def test_user_urls_lists_only_own_links(app, client):
    client.post("/", content="https://example.com/mine")
    other = TestClient(app)
    other.post("/", content="https://example.com/theirs")

    response = client.get("/api/user/urls")
    assert response.status_code == 200
    assert response.json() == [{
        "short_url": f"{BASE}/{generate_code('https://example.com/mine')}",
        "original_url": "https://example.com/mine",
    }]


def test_user_urls_empty_is_204(client):
    response = client.get("/api/user/urls")
    assert response.status_code == 204
    assert "auth_token" in response.cookies


def test_delete_then_redirect_is_gone(app, client):
    url = "https://example.com/delete-me"
    client.post("/", content=url)
    code = generate_code(url)

    response = client.request("DELETE", "/api/user/urls", json=[code])
    assert response.status_code == 202

    _wait_for_deletes(app)
    assert client.get(f"/{code}", follow_redirects=False).status_code == 410
    assert client.get("/api/user/urls").status_code == 204


def test_delete_by_other_owner_has_no_effect(app, client):
    url = "https://example.com/not-yours"
    client.post("/", content=url)
    code = generate_code(url)

    intruder = TestClient(app)
    assert intruder.request("DELETE", "/api/user/urls", json=[code]).status_code == 202

    _wait_for_deletes(app)
    assert client.get(f"/{code}", follow_redirects=False).status_code == 307


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.text == "OK"


def test_stats_from_trusted_subnet(client):
    client.post("/", content="https://example.com/stats")
    response = client.get("/api/internal/stats", headers={"X-Real-IP": "10.1.2.3"})

    assert response.status_code == 200
    # memory backend does not support statistics
    assert response.json() == {"urls": 0, "users": 0}
