"""
Tests d'intégration PostgreSQL pour cassius-api.

Ces tests utilisent un vrai PostgreSQL sur le port 5433 (docker-compose.test.yaml).
Redis n'est pas initialisé: cache et événements sont des no-op.
"""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.filters import FilterGroup, FilterOperator, FilterPage, FilterRule, evaluate
from app.models import (
    Appointment,
    AuditLog,
    Flag,
    Implant,
    Notification,
    Operation,
    Patient,
    SurgeryImplant,
)
from app.models.enums import AuditEntityType
from app.models.implant_status import ImplantStatusReason
from app.schemas.patient import PatientCreate, PatientSearchRequest
from app.services import (
    audit_service,
    flag_engine,
    implant_status_service,
    notification_service,
    operation_service,
    patient_service,
)


async def create_patient(db: AsyncSession, organisation_id: str, nom: str = "Durand", statut: str = "ACTIF") -> Patient:
    patient = Patient(
        organisation_id=organisation_id,
        nom=nom,
        prenom="Claire",
        date_naissance=date(1968, 4, 2),
        sexe="FEMME",
        statut=statut,
    )
    db.add(patient)
    await db.commit()
    await db.refresh(patient)
    return patient


async def create_surgery(
    db: AsyncSession,
    organisation_id: str,
    patient: Patient,
    date_operation: date,
    statuts: list[str],
    isq_pose: float | None = None,
) -> tuple[Operation, list[SurgeryImplant]]:
    implant = Implant(organisation_id=organisation_id, marque="Straumann", diametre=4.1, longueur=10)
    operation = Operation(
        organisation_id=organisation_id,
        patient_id=patient.id,
        date_operation=date_operation,
        type_intervention="POSE_IMPLANT",
    )
    db.add_all([implant, operation])
    await db.commit()

    placed = [
        SurgeryImplant(
            organisation_id=organisation_id,
            surgery_id=operation.id,
            implant_id=implant.id,
            site_fdi=str(36 + i),
            statut=statut,
            date_pose=date_operation,
            isq_pose=isq_pose,
        )
        for i, statut in enumerate(statuts)
    ]
    db.add_all(placed)
    await db.commit()
    return operation, placed


@pytest.mark.integration
async def test_create_and_read_patient(db_session: AsyncSession, organisation_id: str):
    """Création et relecture d'un patient avec les valeurs par défaut de la base."""
    patient = await create_patient(db_session, organisation_id)

    assert patient.id is not None
    assert patient.pays == "France"
    assert patient.created_at is not None

    result = await db_session.execute(select(Patient).where(Patient.id == patient.id))
    assert result.scalar_one().nom == "Durand"


@pytest.mark.integration
async def test_patients_isolated_by_organisation(db_session: AsyncSession, organisation_id: str):
    """Un cabinet ne voit jamais les patients d'un autre cabinet."""
    await create_patient(db_session, organisation_id, nom="Durand")
    await create_patient(db_session, "org-autre", nom="Bernard")

    patients, total = await patient_service.list_patients(db_session, organisation_id)

    assert total == 1
    assert [p.nom for p in patients] == ["Durand"]


@pytest.mark.integration
async def test_operation_list_aggregates(db_session: AsyncSession, organisation_id: str):
    """Nombre d'implants et taux de succès calculés en SQL."""
    patient = await create_patient(db_session, organisation_id)
    operation, _ = await create_surgery(
        db_session, organisation_id, patient, date(2026, 1, 10), ["SUCCES", "ECHEC"]
    )

    items = await operation_service.list_operations(db_session, organisation_id)

    assert len(items) == 1
    assert items[0].id == operation.id
    assert items[0].implant_count == 2
    assert items[0].success_rate == 50
    assert items[0].patient_nom == "Durand"


@pytest.mark.integration
async def test_patient_search_with_joined_filter(db_session: AsyncSession, organisation_id: str):
    """Filtre sur la marque d'implant: jointures sans doublons de patients."""
    porteur = await create_patient(db_session, organisation_id, nom="Durand")
    await create_patient(db_session, organisation_id, nom="Petit")
    await create_surgery(
        db_session, organisation_id, porteur, date(2026, 1, 10), ["EN_SUIVI", "EN_SUIVI"]
    )
    request = PatientSearchRequest(
        filters=FilterGroup(
            rules=[
                FilterRule(field="implant_marque", operator=FilterOperator.CONTAINS, value="strau")
            ]
        )
    )

    response = await patient_service.search_patients(db_session, organisation_id, request)

    assert response.total == 1
    assert response.patients[0].id == porteur.id
    assert response.implant_counts == {porteur.id: 2}


@pytest.mark.integration
async def test_flag_detection_end_to_end(db_session: AsyncSession, organisation_id: str):
    """Création, stabilité puis résolution automatique des alertes."""
    now = datetime.now(UTC)
    patient = await create_patient(db_session, organisation_id)
    _, (placed,) = await create_surgery(
        db_session,
        organisation_id,
        patient,
        (now - timedelta(days=10)).date(),
        ["EN_SUIVI"],
        isq_pose=50,
    )

    first = await flag_engine.run_flag_detection(db_session, organisation_id, now=now)

    assert first.created == 2
    keys = {f.key for f in (await db_session.execute(select(Flag))).scalars()}
    assert keys == {f"ISQ_LOW:IMPLANT:{placed.id}", f"NO_RECENT_APPOINTMENT:PATIENT:{patient.id}"}

    second = await flag_engine.run_flag_detection(db_session, organisation_id, now=now)

    assert (second.created, second.existing, second.resolved) == (0, 2, 0)

    placed.isq_2m = 72
    db_session.add(
        Appointment(
            organisation_id=organisation_id,
            patient_id=patient.id,
            type="SUIVI",
            status="COMPLETED",
            title="Contrôle",
            date_start=now - timedelta(days=1),
            date_end=now - timedelta(days=1) + timedelta(minutes=30),
            completed_at=now - timedelta(days=1),
        )
    )
    await db_session.commit()

    third = await flag_engine.run_flag_detection(db_session, organisation_id, now=now)

    assert (third.created, third.existing, third.resolved) == (0, 0, 2)
    open_flags = await db_session.execute(select(Flag).where(Flag.resolved_at.is_(None)))
    assert open_flags.scalars().all() == []


@pytest.mark.integration
async def test_list_organisations(db_session: AsyncSession, organisation_id: str):
    await create_patient(db_session, organisation_id)
    await create_patient(db_session, "org-autre")

    organisations = await flag_engine.list_organisations(db_session)

    assert sorted(organisations) == ["org-autre", organisation_id]


@pytest.mark.integration
async def test_system_status_reasons_seeded_once(db_session: AsyncSession):
    """Le seed des motifs système est idempotent."""
    added = await implant_status_service.ensure_system_status_reasons(db_session)
    again = await implant_status_service.ensure_system_status_reasons(db_session)

    assert added > 0
    assert again == 0
    reasons = await db_session.execute(select(ImplantStatusReason))
    assert all(r.is_system and r.organisation_id is None for r in reasons.scalars())


@pytest.mark.integration
@pytest.mark.parametrize(
    ("operator", "value"),
    [
        (FilterOperator.EQUALS, "STRAUSS"),
        (FilterOperator.EQUALS, " strauß "),
        (FilterOperator.CONTAINS, "AUß"),
        (FilterOperator.NOT_CONTAINS, "ss"),
    ],
)
async def test_sql_and_memory_filters_agree_on_text(
    db_session: AsyncSession, organisation_id: str, operator: FilterOperator, value: str
):
    """La recherche SQL des patients et l'évaluation en mémoire retiennent les mêmes patients."""
    patients = [
        await create_patient(db_session, organisation_id, nom=nom)
        for nom in ("Strauß", "Strauss", "Élodie")
    ]
    group = FilterGroup(rules=[FilterRule(field="patient_nom", operator=operator, value=value)])

    response = await patient_service.search_patients(
        db_session, organisation_id, PatientSearchRequest(filters=group)
    )

    in_memory = {
        patient.id
        for patient in patients
        if evaluate(group, {"patient_nom": patient.nom}, FilterPage.PATIENTS)
    }
    assert {p.id for p in response.patients} == in_memory


@pytest.mark.integration
async def test_flag_detection_notifies_practice(db_session: AsyncSession, organisation_id: str):
    """Les nouvelles alertes cliniques arrivent dans la boîte du cabinet."""
    now = datetime.now(UTC)
    patient = await create_patient(db_session, organisation_id)
    await create_surgery(
        db_session,
        organisation_id,
        patient,
        (now - timedelta(days=10)).date(),
        ["EN_SUIVI"],
        isq_pose=50,
    )

    await flag_engine.run_flag_detection(db_session, organisation_id, now=now)

    notifications = (await db_session.execute(select(Notification))).scalars().all()
    assert sorted(n.type for n in notifications) == ["ISQ_LOW", "NO_RECENT_APPOINTMENT"]
    assert all(n.recipient_id is None for n in notifications)

    items, total = await notification_service.list_notifications(
        db_session, organisation_id, "user-1", unread_only=True
    )
    assert total == 2
    assert await notification_service.get_unread_count(db_session, organisation_id, "user-2") == 2

    await notification_service.mark_as_read(db_session, organisation_id, "user-1", items[0].id)
    assert await notification_service.mark_all_as_read(db_session, organisation_id, "user-1") == 1
    assert await notification_service.get_unread_count(db_session, organisation_id, "user-1") == 0


@pytest.mark.integration
async def test_patient_writes_are_audited(db_session: AsyncSession, organisation_id: str):
    patient = await patient_service.create_patient(
        db_session,
        organisation_id,
        PatientCreate(nom="Martin", prenom="Claire"),
        current_user_id="user-1",
    )
    await patient_service.delete_patient(
        db_session, organisation_id, patient.id, current_user_id="user-1"
    )

    history = await audit_service.get_entity_history(
        db_session, organisation_id, AuditEntityType.PATIENT, patient.id
    )

    assert sorted(entry.action for entry in history) == ["CREATE", "DELETE"]
    assert {entry.user_id for entry in history} == {"user-1"}
    stored = (await db_session.execute(select(AuditLog))).scalars().all()
    assert all(entry.organisation_id == organisation_id for entry in stored)
