from fastapi.testclient import TestClient

from linkbot.main import app
from linkbot.services.link_service import LinkPreviewService


def test_lifespan_builds_and_tears_down_service():
    with TestClient(app) as client:
        assert client.get("/ping").json() == {"pong": True}
        assert isinstance(app.state.link_service, LinkPreviewService)
        assert client.get("/health").json()["cache_entries"] == 0
