"""
Tests for application-level routes and error rendering.
"""


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "message" in response.json()


def test_unmatched_route_returns_json_404(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"message": "Not Found - /api/nothing-here", "code": 404}


def test_health_without_database(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["backend"] == "running"
    assert response.json()["database"] == "not configured"


def test_malformed_json_body(client):
    response = client.post(
        "/api/users/login",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 422
    assert response.json()["code"] == 422
