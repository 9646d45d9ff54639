"""Tests for event tracking and the admin audit trail."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from dbpower.infra.platform import AuthUser, get_platform_auth
from dbpower.v1.core.exceptions import UpstreamError
from dbpower.v1.events.models import Event, UserEvent


@pytest.fixture
def auth_client(app):
    """Platform auth double; resolves no user unless configured."""
    client = MagicMock()
    client.get_user = AsyncMock(return_value=None)
    app.dependency_overrides[get_platform_auth] = lambda: client
    return client


def _added_event(mock_session) -> Event:
    (event,), _ = mock_session.add.call_args
    return event


class TestTrackEvent:
    def test_anonymous_event(self, client: TestClient, auth_client, mock_session):
        response = client.post(
            "/v1/events",
            json={"type": "page_view", "session_id": "s-1", "metadata": {"path": "/"}},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

        event = _added_event(mock_session)
        assert event.type == "page_view"
        assert event.session_id == "s-1"
        assert event.user_id is None
        assert event.event_metadata == {"path": "/"}
        mock_session.commit.assert_awaited_once()
        auth_client.get_user.assert_not_awaited()

    def test_authenticated_event(self, client: TestClient, auth_client, mock_session):
        user_id = uuid4()
        auth_client.get_user.return_value = AuthUser(id=str(user_id))

        response = client.post(
            "/v1/events",
            json={"type": "analyze", "session_id": "s-2"},
            headers={"Authorization": "Bearer user-jwt"},
        )

        assert response.status_code == 200
        assert _added_event(mock_session).user_id == user_id
        assert _added_event(mock_session).event_metadata == {}
        auth_client.get_user.assert_awaited_once_with("user-jwt")

    def test_auth_failure_degrades_to_anonymous(
        self, client: TestClient, auth_client, mock_session
    ):
        auth_client.get_user.side_effect = UpstreamError("Auth service unavailable")

        response = client.post(
            "/v1/events",
            json={"type": "page_view", "session_id": "s-3"},
            headers={"Authorization": "Bearer user-jwt"},
        )

        assert response.status_code == 200
        assert _added_event(mock_session).user_id is None

    @pytest.mark.parametrize(
        "body",
        [{"session_id": "s"}, {"type": "", "session_id": "s"}, {"type": 7, "session_id": "s"}],
    )
    def test_invalid_type(self, client: TestClient, auth_client, body):
        response = client.post("/v1/events", json=body)

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Missing or invalid 'type' field",
        }

    def test_missing_session_id(self, client: TestClient, auth_client):
        response = client.post("/v1/events", json={"type": "page_view"})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing session_id"

    def test_insert_failure(self, client: TestClient, auth_client, mock_session):
        mock_session.commit.side_effect = OperationalError("INSERT", {}, Exception("down"))

        response = client.post(
            "/v1/events", json={"type": "page_view", "session_id": "s-4"}
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Failed to track event"}
        mock_session.rollback.assert_awaited_once()


class TestAdminEvents:
    def test_requires_admin_key(self, client: TestClient):
        response = client.get(f"/v1/admin/events/{uuid4()}")

        assert response.status_code == 401

    def test_rejects_wrong_admin_key(self, client: TestClient):
        response = client.get(
            f"/v1/admin/events/{uuid4()}", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized: Invalid admin key"

    def test_lists_events(self, client: TestClient, admin_headers, mock_session):
        user_id = uuid4()
        rows = [
            UserEvent(
                id=uuid4(),
                user_id=user_id,
                event="account_deleted",
                event_metadata={"reason": "user_requested"},
                created_at=datetime(2025, 6, 2, tzinfo=UTC),
            ),
            UserEvent(
                id=uuid4(),
                user_id=user_id,
                event="signup",
                event_metadata=None,
                created_at=datetime(2025, 1, 1, tzinfo=UTC),
            ),
        ]
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        mock_session.execute.return_value = result

        response = client.get(f"/v1/admin/events/{user_id}", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == str(user_id)
        events = body["events"]
        assert [e["event"] for e in events] == ["account_deleted", "signup"]
        assert events[0]["metadata"] == {"reason": "user_requested"}
        assert events[1]["metadata"] is None

    def test_query_failure(self, client: TestClient, admin_headers, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        response = client.get(f"/v1/admin/events/{uuid4()}", headers=admin_headers)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch events"}
