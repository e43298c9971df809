from fastapi.testclient import TestClient

from blogspace.api.deps import get_storage
from blogspace.main import app


class BrokenStorage:
    def get_articles(self, **kwargs):
        raise RuntimeError("database is down")


def test_unhandled_errors_become_generic_500():
    app.dependency_overrides[get_storage] = lambda: BrokenStorage()
    try:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/api/articles/")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
