from unittest.mock import AsyncMock, patch


def test_root_endpoint(test_client):
    response = test_client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Server is running"
    assert data["health"] == "/health"


def test_health_check_healthy(test_client):
    with patch(
        "grindflow.api.v1.endpoints.health.db_client.health_check",
        AsyncMock(return_value={"status": "healthy"}),
    ):
        response = test_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "GrindFlow API"
    assert "X-Correlation-ID" in response.headers


def test_health_check_degraded_without_database(test_client):
    with patch(
        "grindflow.api.v1.endpoints.health.db_client.health_check",
        AsyncMock(return_value={"status": "unhealthy", "error": "not initialized"}),
    ):
        response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


def test_unknown_route_uses_error_body(test_client):
    response = test_client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
