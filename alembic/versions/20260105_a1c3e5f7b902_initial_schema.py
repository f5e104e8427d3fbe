"""Initial schema

Revision ID: a1c3e5f7b902
Revises:
Create Date: 2026-01-05 09:12:31.204118

Tables du cabinet: patients, actes, catalogue d'implants, implants posés,
rendez-vous, alertes, filtres enregistrés, motifs et historique des statuts.
Les motifs de statut système (organisation_id NULL) sont créés ici.
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c3e5f7b902"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SYSTEM_STATUS_REASONS = [
    ("SUCCES", "SUCCESS_OSSEOINTEGRATION", "Ostéo-intégration confirmée"),
    ("SUCCES", "SUCCESS_PROSTHESIS", "Prothèse posée avec succès"),
    ("SUCCES", "SUCCESS_STABLE_ISQ", "ISQ stable et satisfaisant"),
    ("COMPLICATION", "ISQ_LOW", "ISQ faible"),
    ("COMPLICATION", "ISQ_DECLINING", "ISQ en diminution"),
    ("COMPLICATION", "INFECTION", "Infection"),
    ("COMPLICATION", "PAIN", "Douleur persistante"),
    ("COMPLICATION", "MOBILITY", "Mobilité de l'implant"),
    ("COMPLICATION", "RADIO_ANOMALY", "Anomalie radiologique"),
    ("ECHEC", "FAILURE_NO_OSSEOINTEGRATION", "Absence d'ostéo-intégration"),
    ("ECHEC", "FAILURE_IMPLANT_LOST", "Implant perdu / déposé"),
    ("ECHEC", "FAILURE_MOBILITY", "Mobilité irréversible"),
]


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


def upgrade() -> None:
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False, comment="Cabinet propriétaire"),
        sa.Column("nom", sa.String(100), nullable=False),
        sa.Column("prenom", sa.String(100), nullable=False),
        sa.Column("date_naissance", sa.Date(), nullable=True),
        sa.Column("sexe", sa.String(10), nullable=True, comment="HOMME/FEMME"),
        sa.Column("telephone", sa.String(30), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("adresse", sa.String(255), nullable=True),
        sa.Column("code_postal", sa.String(20), nullable=True),
        sa.Column("ville", sa.String(100), nullable=True),
        sa.Column("pays", sa.String(100), nullable=False),
        sa.Column("allergies", sa.Text(), nullable=True),
        sa.Column("traitement", sa.Text(), nullable=True, comment="Traitements en cours"),
        sa.Column("conditions", sa.Text(), nullable=True, comment="Pathologies"),
        sa.Column("contexte_medical", sa.Text(), nullable=True),
        sa.Column("statut", sa.String(20), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patients_id", "patients", ["id"])
    op.create_index("ix_patients_organisation_id", "patients", ["organisation_id"])
    op.create_index("ix_patients_nom", "patients", ["nom"])
    op.create_index("ix_patients_statut", "patients", ["statut"])

    op.create_table(
        "implants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("type_implant", sa.String(20), nullable=False),
        sa.Column("marque", sa.String(100), nullable=False),
        sa.Column("reference_fabricant", sa.String(100), nullable=True),
        sa.Column("diametre", sa.Float(), nullable=True, comment="mm"),
        sa.Column("longueur", sa.Float(), nullable=True, comment="mm"),
        sa.Column("lot", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("type_prothese", sa.String(20), nullable=True),
        sa.Column("type_pilier", sa.String(50), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_implants_id", "implants", ["id"])
    op.create_index("ix_implants_organisation_id", "implants", ["organisation_id"])
    op.create_index("ix_implants_type_implant", "implants", ["type_implant"])
    op.create_index("ix_implants_marque", "implants", ["marque"])

    op.create_table(
        "operations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("date_operation", sa.Date(), nullable=False),
        sa.Column("type_intervention", sa.String(40), nullable=False),
        sa.Column("type_chirurgie_temps", sa.String(20), nullable=True),
        sa.Column("type_chirurgie_approche", sa.String(20), nullable=True),
        sa.Column("greffe_osseuse", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("type_greffe", sa.String(100), nullable=True),
        sa.Column("greffe_quantite", sa.String(100), nullable=True),
        sa.Column("greffe_localisation", sa.String(100), nullable=True),
        sa.Column(
            "type_mise_en_charge", sa.String(20), nullable=True, comment="IMMEDIATE/PRECOCE/DIFFEREE"
        ),
        sa.Column("conditions_medicales_preop", sa.Text(), nullable=True),
        sa.Column("notes_perop", sa.Text(), nullable=True),
        sa.Column("observations_postop", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_operations_id", "operations", ["id"])
    op.create_index("ix_operations_organisation_id", "operations", ["organisation_id"])
    op.create_index("ix_operations_patient_id", "operations", ["patient_id"])
    op.create_index("ix_operations_date_operation", "operations", ["date_operation"])

    op.create_table(
        "surgery_implants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("surgery_id", sa.Integer(), nullable=False),
        sa.Column("implant_id", sa.Integer(), nullable=False),
        sa.Column("site_fdi", sa.String(2), nullable=False, comment="Site FDI 11-48"),
        sa.Column("position_implant", sa.String(20), nullable=True),
        sa.Column("type_os", sa.String(2), nullable=True, comment="D1-D4"),
        sa.Column("mise_en_charge", sa.String(20), nullable=True),
        sa.Column("greffe_osseuse", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("type_greffe", sa.String(100), nullable=True),
        sa.Column("isq_pose", sa.Float(), nullable=True),
        sa.Column("isq_2m", sa.Float(), nullable=True),
        sa.Column("isq_3m", sa.Float(), nullable=True),
        sa.Column("isq_6m", sa.Float(), nullable=True),
        sa.Column(
            "bone_loss_score",
            sa.Integer(),
            nullable=True,
            comment="Perte osseuse radiologique 0 (aucune) à 5",
        ),
        sa.Column("statut", sa.String(20), nullable=False),
        sa.Column("date_pose", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["surgery_id"], ["operations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["implant_id"], ["implants.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_surgery_implants_id", "surgery_implants", ["id"])
    op.create_index(
        "ix_surgery_implants_organisation_id", "surgery_implants", ["organisation_id"]
    )
    op.create_index("ix_surgery_implants_surgery_id", "surgery_implants", ["surgery_id"])
    op.create_index("ix_surgery_implants_implant_id", "surgery_implants", ["implant_id"])
    op.create_index("ix_surgery_implants_statut", "surgery_implants", ["statut"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("patient_id", sa.Integer(), nullable=False),
        sa.Column("operation_id", sa.Integer(), nullable=True),
        sa.Column("surgery_implant_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("isq", sa.Float(), nullable=True, comment="Moyenne pondérée (V*2 + M + D) / 4"),
        sa.Column("isq_vestibulaire", sa.Float(), nullable=True),
        sa.Column("isq_mesial", sa.Float(), nullable=True),
        sa.Column("isq_distal", sa.Float(), nullable=True),
        _timestamp("completed_at", nullable=True),
        _timestamp("cancelled_at", nullable=True),
        sa.Column("cancel_reason", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["operation_id"], ["operations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["surgery_implant_id"], ["surgery_implants.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_id", "appointments", ["id"])
    op.create_index("ix_appointments_organisation_id", "appointments", ["organisation_id"])
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_operation_id", "appointments", ["operation_id"])
    op.create_index("ix_appointments_surgery_implant_id", "appointments", ["surgery_implant_id"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_date_start", "appointments", ["date_start"])

    op.create_table(
        "flags",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column(
            "patient_id",
            sa.Integer(),
            nullable=True,
            comment="Patient concerné, pour l'affichage",
        ),
        _timestamp("created_at"),
        _timestamp("resolved_at", nullable=True),
        sa.Column(
            "resolved_by",
            sa.String(255),
            nullable=True,
            comment="Keycloak user ID; NULL si résolue automatiquement",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_flags_id", "flags", ["id"])
    op.create_index("ix_flags_organisation_id", "flags", ["organisation_id"])
    op.create_index("ix_flags_level", "flags", ["level"])
    op.create_index("ix_flags_patient_id", "flags", ["patient_id"])

    op.create_table(
        "saved_filters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("page_type", sa.String(20), nullable=False),
        sa.Column("filter_data", sa.Text(), nullable=False, comment="FilterGroup JSON"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_saved_filters_id", "saved_filters", ["id"])
    op.create_index("ix_saved_filters_organisation_id", "saved_filters", ["organisation_id"])
    op.create_index("ix_saved_filters_page_type", "saved_filters", ["page_type"])

    reasons = op.create_table(
        "implant_status_reasons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("is_system", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_implant_status_reasons_id", "implant_status_reasons", ["id"])
    op.create_index(
        "ix_implant_status_reasons_organisation_id", "implant_status_reasons", ["organisation_id"]
    )
    op.create_index("ix_implant_status_reasons_status", "implant_status_reasons", ["status"])

    op.create_table(
        "implant_status_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("organisation_id", sa.String(64), nullable=False),
        sa.Column("surgery_implant_id", sa.Integer(), nullable=False),
        sa.Column("from_status", sa.String(20), nullable=True),
        sa.Column("to_status", sa.String(20), nullable=False),
        sa.Column("reason_id", sa.Integer(), nullable=True),
        sa.Column("reason_free_text", sa.Text(), nullable=True),
        sa.Column(
            "evidence",
            sa.JSON(),
            nullable=True,
            comment="Éléments ayant motivé le changement (ISQ, visite, ...)",
        ),
        sa.Column("changed_by", sa.String(255), nullable=False),
        _timestamp("changed_at"),
        sa.ForeignKeyConstraint(
            ["surgery_implant_id"], ["surgery_implants.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["reason_id"], ["implant_status_reasons.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_implant_status_history_id", "implant_status_history", ["id"])
    op.create_index(
        "ix_implant_status_history_organisation_id", "implant_status_history", ["organisation_id"]
    )
    op.create_index(
        "ix_implant_status_history_surgery_implant_id",
        "implant_status_history",
        ["surgery_implant_id"],
    )

    op.bulk_insert(
        reasons,
        [
            {
                "organisation_id": None,
                "status": status,
                "code": code,
                "label": label,
                "is_system": True,
                "is_active": True,
            }
            for status, code, label in SYSTEM_STATUS_REASONS
        ],
    )


def downgrade() -> None:
    op.drop_table("implant_status_history")
    op.drop_table("implant_status_reasons")
    op.drop_table("saved_filters")
    op.drop_table("flags")
    op.drop_table("appointments")
    op.drop_table("surgery_implants")
    op.drop_table("operations")
    op.drop_table("implants")
    op.drop_table("patients")
