"""
Schémas de réponses OpenAPI RFC 9457 (application/problem+json).

Les documents sont produits par le gestionnaire d'exceptions de
fastapi-problem; ces schémas ne servent qu'à documenter les routes.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProblemDetailResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str = Field(..., examples=["patient-not-found"])
    title: str = Field(..., examples=["Patient introuvable"])
    status: int = Field(..., examples=[404])
    detail: str | None = Field(None, examples=["Patient 42 introuvable"])


class ValidationErrorResponse(ProblemDetailResponse):
    errors: list[dict[str, Any]] = Field(default_factory=list)


def _problem(description: str, model: type[BaseModel] = ProblemDetailResponse) -> dict:
    return {
        "description": description,
        "model": model,
        "content": {"application/problem+json": {}},
    }


_RESPONSES = {
    400: _problem("Requête invalide"),
    401: _problem("Authentification requise"),
    403: _problem("Accès refusé"),
    404: _problem("Ressource introuvable"),
    409: _problem("Conflit avec l'état de la ressource"),
    422: _problem("Validation échouée", ValidationErrorResponse),
    500: _problem("Erreur interne"),
}

COMMON_RESPONSES = {code: _RESPONSES[code] for code in (401, 403, 422, 500)}


def build_responses(*status_codes: int) -> dict:
    """Réponses problem+json pour les codes donnés (ex: build_responses(404, 409))."""
    return {code: _RESPONSES[code] for code in status_codes}


__all__ = [
    "COMMON_RESPONSES",
    "ProblemDetailResponse",
    "ValidationErrorResponse",
    "build_responses",
]
