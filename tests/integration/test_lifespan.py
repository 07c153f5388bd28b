from unittest.mock import patch

from fastapi.testclient import TestClient

from app.core.request_cache import RequestDeduplicator
from app.main import app


def test_lifespan_attaches_and_releases_deduplicator():
  with patch("app.core.lifespan.initialize_logging"), patch("app.core.lifespan.initialize_firebase") as mock_firebase:
    with TestClient(app) as client:
      deduplicator = app.state.request_deduplicator
      assert isinstance(deduplicator, RequestDeduplicator)
      response = client.get("/health")
      assert response.status_code == 200

  mock_firebase.assert_called_once()
  # Shutdown drops anything still pending.
  assert len(deduplicator) == 0
  app.state.request_deduplicator = None


def test_lifespan_survives_startup_failures():
  with patch("app.core.lifespan.initialize_logging", side_effect=RuntimeError("log dir not writable")), patch("app.core.lifespan.initialize_firebase"):
    with TestClient(app) as client:
      assert client.get("/health").json()["status"] == "ok"
      assert isinstance(app.state.request_deduplicator, RequestDeduplicator)

  app.state.request_deduplicator = None
