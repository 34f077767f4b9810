"""Tests for the HTTP surface: status codes, error bodies, secret check."""

from datetime import date
from unittest.mock import Mock, patch
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.errors import StorageError
from app.events.processor import EventProcessor
from app.models import ActivityFeedEntry, OrgEvent


def _secret_settings(secret: str = "s3cret"):
    settings = Mock()
    settings.EDGE_FUNCTION_SECRET = secret
    return settings


# ============================================================================
# Emit
# ============================================================================

class TestEmitEndpoint:
    """POST /api/events/emit"""

    def test_emit_and_process(self, client: TestClient, db_session: Session):
        response = client.post(
            "/api/events/emit",
            json={
                "org_id": "t1",
                "event_type": "assignment_overdue",
                "payload": {"staff_name": "J. Rivera", "competency_title": "Fall Prevention"},
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["processed"] is True
        assert body["event"]["org_id"] == "t1"
        assert body["process_response"]["feed_created"] is True
        assert response.headers["access-control-allow-origin"] == "*"
        assert db_session.exec(select(ActivityFeedEntry)).one().message == (
            "J. Rivera is overdue for Fall Prevention."
        )

    def test_missing_org_id_is_400(self, client: TestClient):
        response = client.post("/api/events/emit", json={"event_type": "policy_published"})

        assert response.status_code == 400
        assert response.json() == {"error": "org_id is required"}

    def test_missing_event_type_is_400(self, client: TestClient):
        response = client.post("/api/events/emit", json={"org_id": "t1"})

        assert response.status_code == 400
        assert response.json() == {"error": "event_type is required"}

    def test_invalid_json_is_400(self, client: TestClient):
        response = client.post(
            "/api/events/emit",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body"}

    def test_process_now_false(self, client: TestClient, db_session: Session):
        response = client.post(
            "/api/events/emit",
            json={"org_id": "t1", "event_type": "policy_published", "process_now": False},
        )

        assert response.status_code == 200
        assert response.json()["skipped"] == "process_now=false"
        assert db_session.exec(select(ActivityFeedEntry)).all() == []

    def test_processing_failure_is_202(self, client: TestClient, db_session: Session):
        with patch.object(EventProcessor, "process", side_effect=StorageError("Failed to load automations")):
            response = client.post(
                "/api/events/emit",
                json={"org_id": "t1", "event_type": "policy_published"},
            )

        assert response.status_code == 202
        body = response.json()
        assert body["processed"] is False
        assert body["process_error"]["error"] == "Failed to load automations"
        assert len(db_session.exec(select(OrgEvent)).all()) == 1

    def test_null_process_now_processes(self, client: TestClient, db_session: Session):
        response = client.post(
            "/api/events/emit",
            json={"org_id": "t1", "event_type": "policy_published", "process_now": None},
        )

        assert response.status_code == 200
        assert response.json()["processed"] is True
        assert len(db_session.exec(select(ActivityFeedEntry)).all()) == 1

    def test_numeric_entity_id_is_stored_as_text(self, client: TestClient, db_session: Session):
        response = client.post(
            "/api/events/emit",
            json={"org_id": "t1", "event_type": "policy_published", "entity_id": 42, "process_now": False},
        )

        assert response.status_code == 200
        assert response.json()["event"]["entity_id"] == "42"
        assert db_session.exec(select(OrgEvent)).one().entity_id == "42"


# ============================================================================
# Process
# ============================================================================

class TestProcessEndpoint:
    """POST /api/events/process"""

    def test_missing_event_id_is_400(self, client: TestClient):
        response = client.post("/api/events/process", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "event_id is required"}

    def test_unknown_event_is_404(self, client: TestClient):
        response = client.post("/api/events/process", json={"event_id": str(uuid4())})

        assert response.status_code == 404
        assert response.json()["error"] == "Event not found"

    def test_process_stored_event(self, client: TestClient, make_event):
        event = make_event(event_type="policy_published", payload={"policy_title": "Hand Hygiene"})

        response = client.post("/api/events/process", json={"event_id": str(event.id)})

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "event_id": str(event.id),
            "feed_created": True,
            "notifications_created": 0,
            "automations": [],
        }

    def test_storage_error_is_500_with_detail(self, client: TestClient, make_event):
        event = make_event()
        with patch.object(
            EventProcessor,
            "process",
            side_effect=StorageError("Failed to insert feed entry", detail="constraint"),
        ):
            response = client.post("/api/events/process", json={"event_id": str(event.id)})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to insert feed entry", "detail": "constraint"}


# ============================================================================
# Scan
# ============================================================================

class TestScanEndpoint:
    """POST /api/events/scan-overdue"""

    def test_scan(self, client: TestClient, make_assignment):
        make_assignment(due_date=date(2000, 1, 1))

        response = client.post("/api/events/scan-overdue")

        assert response.status_code == 200
        assert response.json() == {
            "ok": True,
            "overdue_found": 1,
            "emitted": 1,
            "processed": 1,
            "deduplicated": 0,
        }


# ============================================================================
# Transport concerns
# ============================================================================

class TestTransport:
    """Secret check, CORS preflight and method handling."""

    def test_wrong_secret_is_401(self, client: TestClient):
        with patch("app.api.deps.get_settings", return_value=_secret_settings()):
            response = client.post(
                "/api/events/emit",
                json={"org_id": "t1", "event_type": "policy_published"},
                headers={"x-edge-secret": "nope"},
            )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_missing_secret_is_401(self, client: TestClient):
        with patch("app.api.deps.get_settings", return_value=_secret_settings()):
            response = client.post("/api/events/scan-overdue")

        assert response.status_code == 401

    def test_matching_secret_passes(self, client: TestClient):
        with patch("app.api.deps.get_settings", return_value=_secret_settings()):
            response = client.post(
                "/api/events/emit",
                json={"org_id": "t1", "event_type": "policy_published", "process_now": False},
                headers={"x-edge-secret": "s3cret"},
            )

        assert response.status_code == 200

    def test_options_preflight(self, client: TestClient):
        for path in ("/api/events/emit", "/api/events/process", "/api/events/scan-overdue"):
            response = client.options(path)

            assert response.status_code == 204
            assert response.headers["access-control-allow-origin"] == "*"
            assert "x-edge-secret" in response.headers["access-control-allow-headers"]
            assert response.headers["access-control-allow-methods"] == "POST, OPTIONS"

    def test_browser_preflight_is_204(self, client: TestClient):
        """Preflights carrying Origin and request headers get the same 204."""
        cases = [
            ("/api/events/emit", "content-type, x-edge-secret"),
            ("/api/events/process", "x-client-info"),
            ("/api/events/scan-overdue", "content-type"),
        ]
        for path, requested_headers in cases:
            response = client.options(
                path,
                headers={
                    "Origin": "https://app.example.com",
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": requested_headers,
                },
            )

            assert response.status_code == 204
            assert response.headers["access-control-allow-origin"] == "*"
            assert response.headers["access-control-allow-headers"] == (
                "content-type, x-edge-secret, authorization"
            )

    def test_get_is_405(self, client: TestClient):
        response = client.get("/api/events/emit")

        assert response.status_code == 405
        assert response.json() == {"error": "Method not allowed", "method": "GET"}

    def test_health(self, client: TestClient):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ============================================================================
# Lifespan
# ============================================================================

class TestLifespan:
    """Application startup and shutdown."""

    def test_shutdown_closes_emitter(self):
        from app.main import app

        emitter = Mock()
        with patch("app.main.get_event_emitter", return_value=emitter):
            with TestClient(app) as lifespan_client:
                assert lifespan_client.get("/health").status_code == 200
                emitter.close.assert_not_called()

        emitter.close.assert_called_once()
