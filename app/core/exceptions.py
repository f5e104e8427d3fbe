"""
RFC 9457 Problem Details pour l'API Cassius.

Les erreurs métier héritent des problèmes de `fastapi-problem`; le type
(`patient-not-found`, `filter-validation`, ...) est dérivé du nom de classe
et les arguments nommés passés au constructeur deviennent des membres
d'extension du document JSON.

Example:
    ```python
    raise PatientNotFoundError(
        detail=f"Patient {patient_id} introuvable",
        patient_id=patient_id,
    )
    ```
"""

from fastapi_problem.error import (
    BadRequestProblem,
    ConflictProblem,
    ForbiddenProblem,
    NotFoundProblem,
    Problem,
    ServerProblem,
    StatusProblem,
    UnauthorisedProblem,
    UnprocessableProblem,
)


class PatientNotFoundError(NotFoundProblem):
    title = "Patient introuvable"


class OperationNotFoundError(NotFoundProblem):
    title = "Acte introuvable"


class ImplantNotFoundError(NotFoundProblem):
    title = "Implant introuvable"


class SurgeryImplantNotFoundError(NotFoundProblem):
    title = "Implant posé introuvable"


class AppointmentNotFoundError(NotFoundProblem):
    title = "Rendez-vous introuvable"


class FlagNotFoundError(NotFoundProblem):
    title = "Alerte introuvable"


class SavedFilterNotFoundError(NotFoundProblem):
    title = "Filtre enregistré introuvable"


class NotificationNotFoundError(NotFoundProblem):
    title = "Notification introuvable"


class StatusReasonNotFoundError(NotFoundProblem):
    title = "Motif de statut introuvable"


class FilterValidationError(UnprocessableProblem):
    """
    Règle de filtre invalide pour la page ciblée.

    Les extensions `rule_id` et `field` désignent la règle fautive pour que
    le client puisse la mettre en évidence dans le tiroir de filtres.
    """

    title = "Filtre invalide"


class AppointmentStateError(ConflictProblem):
    """Transition de statut impossible (ex: compléter un rendez-vous annulé)."""

    title = "Transition de rendez-vous invalide"


class ImplantStatusConflictError(ConflictProblem):
    title = "Statut d'implant inchangé"


class FlagAlreadyResolvedError(ConflictProblem):
    title = "Alerte déjà résolue"


class OrganisationMissingError(ForbiddenProblem):
    """Le token ne porte pas de cabinet: aucune donnée ne peut être servie."""

    title = "Organisation manquante"


class SearchQueryTooShortError(BadRequestProblem):
    title = "Requête de recherche trop courte"


__all__ = [
    "AppointmentNotFoundError",
    "AppointmentStateError",
    "BadRequestProblem",
    "ConflictProblem",
    "FilterValidationError",
    "FlagAlreadyResolvedError",
    "FlagNotFoundError",
    "ForbiddenProblem",
    "ImplantNotFoundError",
    "ImplantStatusConflictError",
    "NotFoundProblem",
    "NotificationNotFoundError",
    "OperationNotFoundError",
    "OrganisationMissingError",
    "PatientNotFoundError",
    "Problem",
    "SavedFilterNotFoundError",
    "SearchQueryTooShortError",
    "ServerProblem",
    "StatusProblem",
    "StatusReasonNotFoundError",
    "SurgeryImplantNotFoundError",
    "UnauthorisedProblem",
    "UnprocessableProblem",
]
