"""
Tests for shared/api/health.py

Covers 3 endpoints: read_root, get_model_config, database_health.
"""

import pytest
from unittest.mock import MagicMock, patch
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import get_settings
from shared.api.health import router
from database import get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def app_and_client():
    """Build a test app with health router and mocked DB dependency."""
    app = FastAPI()
    app.include_router(router)

    mock_db = MagicMock()

    def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    return app, client, mock_db


# ===========================================================================
# read_root
# ===========================================================================

class TestReadRoot:

    def test_health_check(self, app_and_client):
        _, client, _ = app_and_client
        resp = client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["service"] == f"{get_settings().program_name} Mentor Backend"
        assert data["version"] == "1.0.0"


# ===========================================================================
# get_model_config
# ===========================================================================

class TestGetModelConfig:

    def test_reports_configured_models(self, app_and_client, monkeypatch):
        _, client, _ = app_and_client
        monkeypatch.setattr(get_settings(), "roadmap_provider", "google")
        monkeypatch.setattr(get_settings(), "roadmap_model", "gemini-3-pro")

        resp = client.get("/config/models")
        assert resp.status_code == 200
        data = resp.json()
        assert data["agent"] == {"provider": "anthropic", "model_id": get_settings().agent_model}
        assert data["roadmap"] == {"provider": "google", "model_id": "gemini-3-pro"}
        assert data["followup"]["provider"] == get_settings().followup_provider


# ===========================================================================
# database_health
# ===========================================================================

class TestDatabaseHealth:

    @patch("shared.api.health.get_db_manager")
    def test_db_healthy(self, mock_get_manager, app_and_client):
        _, client, _ = app_and_client

        mock_manager = MagicMock()
        mock_manager.health_check.return_value = True
        mock_get_manager.return_value = mock_manager

        resp = client.get("/health/db")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "database": "connected"}

    @patch("shared.api.health.get_db_manager")
    def test_db_unhealthy(self, mock_get_manager, app_and_client):
        _, client, _ = app_and_client

        mock_manager = MagicMock()
        mock_manager.health_check.return_value = False
        mock_get_manager.return_value = mock_manager

        resp = client.get("/health/db")
        assert resp.json() == {"status": "error", "database": "connection_failed"}

    @patch("shared.api.health.get_db_manager")
    def test_db_exception(self, mock_get_manager, app_and_client):
        _, client, _ = app_and_client

        mock_get_manager.side_effect = RuntimeError("cannot connect")

        resp = client.get("/health/db")
        data = resp.json()
        assert data["status"] == "error"
        assert "cannot connect" in data["database"]
