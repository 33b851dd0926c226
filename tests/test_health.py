# tests/test_health.py
def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}

def test_requests_need_user_header(client):
    r = client.get("/patterns")  # no header
    assert r.status_code == 401

def test_request_id_echoed(client, headers):
    r = client.get("/health", headers={"X-Request-Id": "abc123"})
    assert r.headers.get("X-Request-Id") == "abc123"

def test_no_root_route(client):
    assert client.get("/").status_code == 404
