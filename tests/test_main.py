from fastapi.testclient import TestClient


class TestAppWiring:
    """Top-level app: liveness endpoints and mounted routers"""

    def test_health_and_routes(self):
        from jobconnect.main import app

        client = TestClient(app)
        assert client.get("/health").json()["status"] == "healthy"
        assert client.get("/").json()["status"] == "ok"

        paths = set(app.openapi()["paths"])
        assert "/api/applications/check-ats" in paths
        assert "/api/jobs/shortlist" in paths

    def test_protected_route_without_token(self):
        from jobconnect.main import app

        response = TestClient(app).get("/api/applications/me")
        assert response.status_code == 401
        assert response.json()["message"] == "User not authorized."
