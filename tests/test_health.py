import pytest


class TestHealthEndpoint:

    def test_health_check_returns_ok(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "cfbd_configured" in data
        assert "disclaimer" in data

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "CFB Betting Trends"
        assert data["version"] == "1.0.0"
        assert data["status"] == "running"
        assert "docs" in data
        assert "/betting-trends" in data["endpoints"]

    def test_process_time_header(self, client):
        response = client.get("/health")
        assert "X-Process-Time" in response.headers
