"""Tests unitaires du journal d'audit et de son alimentation par les services."""

import json
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.models import AuditLog, Patient
from app.models.enums import AuditAction, AuditEntityType
from app.schemas.audit import AuditLogResponse
from app.schemas.patient import PatientCreate, PatientUpdate
from app.services import audit_service
from app.services.patient_service import create_patient, delete_patient, update_patient


@pytest.fixture
def stored_patient() -> Patient:
    patient = Patient(organisation_id="org-test", nom="Martin", prenom="Claire", statut="ACTIF")
    patient.id = 7
    return patient


@pytest.fixture(autouse=True)
def mock_side_effects():
    with (
        patch("app.services.patient_service.invalidate_organisation_stats", new_callable=AsyncMock),
        patch("app.services.patient_service.publish", new_callable=AsyncMock),
    ):
        yield


def db_returning(value):
    db = AsyncMock()
    db.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    db.execute.return_value = result
    return db


def audit_entries(db) -> list[AuditLog]:
    return [c.args[0] for c in db.add.call_args_list if isinstance(c.args[0], AuditLog)]


class TestRecord:
    def test_changed_fields_stored_as_json(self):
        db = db_returning(None)

        entry = audit_service.record(
            db,
            "org-test",
            AuditEntityType.OPERATION,
            4,
            AuditAction.UPDATE,
            user_id="user-1",
            changed_fields=["notes", "type_intervention"],
        )

        assert json.loads(entry.changed_fields) == ["notes", "type_intervention"]
        assert (entry.entity_type, entry.action) == ("OPERATION", "UPDATE")
        db.add.assert_called_once_with(entry)
        db.commit.assert_not_called()

    def test_empty_changes_stored_as_null(self):
        entry = audit_service.record(
            db_returning(None), "org-test", AuditEntityType.PATIENT, 7, AuditAction.DELETE
        )

        assert entry.changed_fields is None
        assert entry.user_id is None

    def test_response_parses_changed_fields(self):
        entry = AuditLog(
            organisation_id="org-test",
            user_id="user-1",
            entity_type="PATIENT",
            entity_id=7,
            action="UPDATE",
            changed_fields='["ville"]',
            created_at=datetime(2026, 5, 1, tzinfo=UTC),
        )
        entry.id = 1

        response = AuditLogResponse.model_validate(entry)

        assert response.changed_fields == ["ville"]
        assert response.action == AuditAction.UPDATE


class TestPatientAudit:
    async def test_creation_recorded_in_same_transaction(self):
        db = db_returning(None)
        data = PatientCreate(nom="Martin", prenom="Claire", date_naissance=date(1968, 4, 12))

        await create_patient(db, "org-test", data, current_user_id="user-1")

        (entry,) = audit_entries(db)
        assert entry.action == "CREATE"
        assert entry.user_id == "user-1"
        db.flush.assert_awaited_once()
        db.commit.assert_awaited_once()

    async def test_update_lists_changed_fields(self, stored_patient):
        db = db_returning(stored_patient)

        await update_patient(
            db, "org-test", 7, PatientUpdate(ville="Lyon"), current_user_id="user-1"
        )

        (entry,) = audit_entries(db)
        assert entry.action == "UPDATE"
        assert json.loads(entry.changed_fields) == ["ville"]

    async def test_deletion_keeps_patient_name(self, stored_patient):
        db = db_returning(stored_patient)

        await delete_patient(db, "org-test", 7, current_user_id="user-1")

        (entry,) = audit_entries(db)
        assert (entry.action, entry.entity_id) == ("DELETE", 7)
        assert entry.details == "Martin Claire"
