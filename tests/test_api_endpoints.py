"""
Tests des endpoints HTTP: routage, contrôle d'accès et erreurs RFC 9457.

La session et l'utilisateur Keycloak sont remplacés via dependency_overrides;
les services sont mockés.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.core.database import get_session
from app.core.exceptions import (
    AppointmentStateError,
    FlagNotFoundError,
    NotificationNotFoundError,
    SavedFilterNotFoundError,
    SearchQueryTooShortError,
)
from app.core.security import User, get_current_user
from app.main import app
from app.models import AuditLog, Flag, Notification

API = "/api/v1"


def make_user(*roles: str, organisation_id: str | None = "org-test") -> User:
    return User(
        sub="user-1",
        preferred_username="dr.martin",
        organisation_id=organisation_id,
        realm_access={"roles": list(roles)},
    )


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def client_as(db):
    """Client HTTP authentifié avec les rôles donnés."""

    def factory(*roles: str, organisation_id: str | None = "org-test") -> TestClient:
        app.dependency_overrides[get_session] = lambda: db
        app.dependency_overrides[get_current_user] = lambda: make_user(
            *roles, organisation_id=organisation_id
        )
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


def resolved_flag() -> Flag:
    flag = Flag(
        organisation_id="org-test",
        level="CRITICAL",
        type="ISQ_LOW",
        label="ISQ faible",
        entity_type="IMPLANT",
        entity_id=4,
        created_at=datetime(2026, 5, 1, tzinfo=UTC),
        resolved_at=datetime(2026, 5, 2, tzinfo=UTC),
        resolved_by="user-1",
    )
    flag.id = 9
    return flag


class TestHealth:
    def test_health_without_redis(self, client_as, db):
        result = MagicMock()
        result.scalar_one.return_value = 1
        db.execute.return_value = result

        with patch("app.core.events_redis.redis_client", None):
            response = client_as().get(f"{API}/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok", "redis": "unavailable"}

    def test_health_database_down(self, client_as, db):
        db.execute.side_effect = ConnectionError("refused")

        response = client_as().get(f"{API}/health")

        assert response.status_code == 503


class TestAccessControl:
    def test_role_required(self, client_as):
        response = client_as("patient").get(f"{API}/flags/summary")

        assert response.status_code == 403
        assert response.headers["content-type"].startswith("application/problem+json")

    def test_assistant_cannot_resolve_flag(self, client_as):
        response = client_as("assistant").post(f"{API}/flags/9/resolve")

        assert response.status_code == 403

    def test_token_without_organisation(self, client_as):
        response = client_as("chirurgien", organisation_id=None).get(f"{API}/flags/summary")

        assert response.status_code == 403
        assert response.json()["user_id"] == "user-1"

    def test_detection_requires_admin(self, client_as):
        response = client_as("chirurgien").post(f"{API}/flags/detect")

        assert response.status_code == 403


class TestFlagEndpoints:
    def test_resolve_flag(self, client_as):
        with patch(
            "app.services.flag_service.resolve_flag", AsyncMock(return_value=resolved_flag())
        ) as mock_resolve:
            response = client_as("chirurgien").post(f"{API}/flags/9/resolve")

        assert response.status_code == 200
        assert response.json()["resolved_by"] == "user-1"
        assert mock_resolve.await_args.args[1:] == ("org-test", 9, "user-1")

    def test_resolve_unknown_flag_is_problem(self, client_as):
        error = FlagNotFoundError(detail="Alerte 9 introuvable", flag_id=9)

        with patch("app.services.flag_service.resolve_flag", AsyncMock(side_effect=error)):
            response = client_as("admin").post(f"{API}/flags/9/resolve")

        assert response.status_code == 404
        body = response.json()
        assert body["status"] == 404
        assert body["detail"] == "Alerte 9 introuvable"
        assert body["flag_id"] == 9

    def test_invalid_level_rejected(self, client_as):
        response = client_as("assistant").get(f"{API}/flags/", params={"level": "URGENT"})

        assert response.status_code == 422


class TestAppointmentEndpoints:
    def test_calendar_range_must_be_ordered(self, client_as):
        response = client_as("assistant").get(
            f"{API}/appointments/calendar",
            params={"start": "2026-05-10T00:00:00Z", "end": "2026-05-01T00:00:00Z"},
        )

        assert response.status_code == 400

    def test_complete_twice_is_conflict(self, client_as):
        error = AppointmentStateError(
            detail="Le rendez-vous 3 est COMPLETED", appointment_id=3, current_status="COMPLETED"
        )

        with patch(
            "app.services.appointment_service.complete_appointment", AsyncMock(side_effect=error)
        ):
            response = client_as("chirurgien").post(f"{API}/appointments/3/complete", json={})

        assert response.status_code == 409

    def test_author_passed_for_audit(self, client_as):
        error = AppointmentStateError(
            detail="Le rendez-vous 3 est COMPLETED", appointment_id=3, current_status="COMPLETED"
        )

        with patch(
            "app.services.appointment_service.cancel_appointment", AsyncMock(side_effect=error)
        ) as mock_cancel:
            client_as("assistant").post(f"{API}/appointments/3/cancel", json={})

        assert mock_cancel.await_args.kwargs["current_user_id"] == "user-1"

    def test_incomplete_directional_measurement(self, client_as):
        response = client_as("chirurgien").post(
            f"{API}/appointments/3/complete",
            json={"measurement": {"isq_vestibulaire": 70, "isq_mesial": 60}},
        )

        assert response.status_code == 422


class TestFilterEndpoints:
    def test_list_fields(self, client_as):
        response = client_as("assistant").get(f"{API}/filters/actes/fields")

        assert response.status_code == 200
        fields = {f["field"]: f for f in response.json()}
        assert "successRate" in fields
        assert "between" in fields["successRate"]["operators"]

    def test_preview_prunes_empty_rules(self, client_as):
        group = {
            "operator": "AND",
            "rules": [
                {"field": "patient_nom", "operator": "contains", "value": ""},
                {"field": "patient_statut", "operator": "equals", "value": "ACTIF"},
            ],
        }

        response = client_as("assistant").post(f"{API}/filters/patients/preview", json=group)

        assert response.status_code == 200
        assert response.json()["rule_count"] == 1

    def test_preview_invalid_field(self, client_as):
        group = {"rules": [{"id": "r1", "field": "inconnu", "operator": "equals", "value": 1}]}

        response = client_as("assistant").post(f"{API}/filters/patients/preview", json=group)

        assert response.status_code == 422
        assert response.json()["rule_id"] == "r1"

    def test_retarget_resets_operator_and_values(self, client_as):
        body = {
            "rule": {"id": "r2", "field": "patient_nom", "operator": "contains", "value": "Dup"},
            "field": "patient_age",
        }

        response = client_as("assistant").post(f"{API}/filters/patients/retarget", json=body)

        assert response.status_code == 200
        moved = response.json()
        assert moved["id"] == "r2"
        assert moved["operator"] == "equals"
        assert moved["value"] is None

    def test_retarget_unknown_field(self, client_as):
        body = {
            "rule": {"id": "r3", "field": "patient_nom", "operator": "contains", "value": "a"},
            "field": "marque",
        }

        response = client_as("assistant").post(f"{API}/filters/patients/retarget", json=body)

        assert response.status_code == 422
        assert response.json()["rule_id"] == "r3"


class TestSavedFilterEndpoints:
    def test_delete_unknown(self, client_as):
        error = SavedFilterNotFoundError(detail="Filtre enregistré 4 introuvable", filter_id=4)

        with patch(
            "app.services.saved_filter_service.delete_saved_filter", AsyncMock(side_effect=error)
        ):
            response = client_as("assistant").delete(f"{API}/saved-filters/4")

        assert response.status_code == 404

    def test_unknown_page_type(self, client_as):
        response = client_as("assistant").get(f"{API}/saved-filters/ordonnances")

        assert response.status_code == 422


class TestSearchEndpoint:
    def test_query_too_short(self, client_as):
        error = SearchQueryTooShortError(detail="Trop court", min_length=2)

        with patch("app.services.search_service.global_search", AsyncMock(side_effect=error)):
            response = client_as("assistant").get(f"{API}/search/", params={"q": "a"})

        assert response.status_code == 400
        assert response.json()["min_length"] == 2


def practice_notification() -> Notification:
    notification = Notification(
        organisation_id="org-test",
        kind="ALERT",
        type="ISQ_LOW",
        severity="CRITICAL",
        title="ISQ bas détecté",
        entity_type="IMPLANT",
        entity_id=4,
        created_at=datetime(2026, 5, 1, tzinfo=UTC),
        read_at=datetime(2026, 5, 2, tzinfo=UTC),
    )
    notification.id = 5
    return notification


class TestNotificationEndpoints:
    def test_list_scoped_to_current_user(self, client_as):
        with patch(
            "app.services.notification_service.list_notifications",
            AsyncMock(return_value=([practice_notification()], 1)),
        ) as mock_list:
            response = client_as("assistant").get(
                f"{API}/notifications/", params={"kind": "ALERT", "unread_only": "true"}
            )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["recipient_id"] is None
        assert mock_list.await_args.args[1:] == ("org-test", "user-1")
        assert mock_list.await_args.kwargs["unread_only"] is True

    def test_unread_count(self, client_as):
        with patch(
            "app.services.notification_service.get_unread_count", AsyncMock(return_value=4)
        ):
            response = client_as("chirurgien").get(f"{API}/notifications/unread-count")

        assert response.json() == {"unread": 4}

    def test_read_all(self, client_as):
        with patch(
            "app.services.notification_service.mark_all_as_read", AsyncMock(return_value=2)
        ):
            response = client_as("admin").post(f"{API}/notifications/read-all")

        assert response.json() == {"updated": 2}

    def test_mark_read(self, client_as):
        with patch(
            "app.services.notification_service.mark_as_read",
            AsyncMock(return_value=practice_notification()),
        ) as mock_read:
            response = client_as("assistant").post(f"{API}/notifications/5/read")

        assert response.status_code == 200
        assert response.json()["read_at"] is not None
        assert mock_read.await_args.args[1:] == ("org-test", "user-1", 5)

    def test_unknown_notification_is_problem(self, client_as):
        error = NotificationNotFoundError(detail="Notification 5 introuvable", notification_id=5)

        with patch(
            "app.services.notification_service.archive_notification", AsyncMock(side_effect=error)
        ):
            response = client_as("assistant").post(f"{API}/notifications/5/archive")

        assert response.status_code == 404
        assert response.json()["notification_id"] == 5

    def test_requires_staff_role(self, client_as):
        response = client_as().get(f"{API}/notifications/")

        assert response.status_code == 403


class TestAuditEndpoints:
    def test_entity_history(self, client_as):
        entry = AuditLog(
            organisation_id="org-test",
            user_id="user-1",
            entity_type="PATIENT",
            entity_id=7,
            action="UPDATE",
            changed_fields='["ville", "telephone"]',
            created_at=datetime(2026, 5, 1, tzinfo=UTC),
        )
        entry.id = 1

        with patch(
            "app.services.audit_service.get_entity_history", AsyncMock(return_value=[entry])
        ) as mock_history:
            response = client_as("chirurgien").get(f"{API}/audit/PATIENT/7")

        assert response.status_code == 200
        assert response.json()[0]["changed_fields"] == ["ville", "telephone"]
        assert mock_history.await_args.args[2:] == ("PATIENT", 7)

    def test_assistant_cannot_read_audit(self, client_as):
        response = client_as("assistant").get(f"{API}/audit/recent")

        assert response.status_code == 403

    def test_unknown_entity_type(self, client_as):
        response = client_as("admin").get(f"{API}/audit/INVOICE/7")

        assert response.status_code == 422
