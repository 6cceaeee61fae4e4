"""Smoke tests for the application wiring."""


def test_health_is_public(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "directory_sync": "disabled"}


def test_root_lists_features(client):
    resp = client.get("/")

    assert resp.status_code == 200
    assert "directory_sync" in resp.json()["features"]


def test_validation_errors_are_400(client, caller):
    caller.login("user-1")

    resp = client.post("/permissions/check", json={})

    assert resp.status_code == 400
    assert "capabilities" in resp.json()
