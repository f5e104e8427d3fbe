"""Schémas Pydantic pour les statistiques du tableau de bord.

Les taux sont exprimés en pourcentage des implants posés et arrondis à une
décimale; ils sont absents tant qu'aucun implant n'a été posé.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class MonthlyCount(BaseModel):
    month: str = Field(..., description="Mois au format YYYY-MM", examples=["2025-03"])
    operations: int = 0
    implants: int = 0


class DashboardStatistics(BaseModel):
    """Statistiques globales du cabinet."""

    # Volumes
    total_patients: int = Field(..., description="Nombre total de patients")
    active_patients: int = Field(..., description="Nombre de patients actifs")
    total_operations: int = Field(..., description="Nombre total d'actes")
    total_implants: int = Field(..., description="Nombre d'implants posés")

    # Implants
    implants_by_status: dict[str, int] = Field(
        default_factory=dict, description="Répartition des implants posés par statut"
    )
    success_rate: float | None = Field(None, description="Taux de succès (%)")
    complication_rate: float | None = Field(None, description="Taux de complication (%)")
    failure_rate: float | None = Field(None, description="Taux d'échec (%)")
    mean_isq_pose: float | None = Field(None, description="ISQ moyen à la pose")

    monthly: list[MonthlyCount] = Field(
        default_factory=list, description="Actes et poses des 12 derniers mois"
    )
    active_flags: dict[str, int] = Field(
        default_factory=dict, description="Alertes non résolues par niveau"
    )

    # Métadonnées
    last_updated: datetime = Field(..., description="Date de calcul des statistiques")
