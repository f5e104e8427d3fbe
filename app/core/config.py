"""
Paramètres du service, lus depuis l'environnement et `.env`.

Les listes (origines CORS, hôtes, clients azp) acceptent un JSON ou une
chaîne séparée par des virgules.
"""

import json
from typing import Literal, TypeAlias

from pydantic import AnyHttpUrl, PostgresDsn, ValidationInfo, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app import __version__

ConfigurableList: TypeAlias = str | list[str] | list[AnyHttpUrl]


def parse_list_from_env(value: ConfigurableList, field_name: str = "field") -> list[str]:
    """
    Parse une liste depuis une variable d'environnement.

    Formats acceptés: liste déjà parsée, JSON (`'["a", "b"]'`), virgules
    (`"a,b"`); une chaîne vide donne une liste vide.

    Raises:
        ValueError: Si le format n'est pas valide
    """
    if isinstance(value, list):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Valeur invalide pour {field_name}: {value}")

    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise ValueError(f"Format JSON invalide pour {field_name}: {value}") from e
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env", extra="ignore")

    PROJECT_NAME: str = "cassius-api"
    VERSION: str = __version__
    DESCRIPTION: str = "Gestion de cabinet d'implantologie: patients, actes, implants et suivi ISQ"
    API_LATEST_VERSION: str = "v1"

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"
    DEBUG: bool = False

    # Keycloak, bearer-only
    KEYCLOAK_SERVER_URL: str
    KEYCLOAK_REALM: str
    KEYCLOAK_CLIENT_ID: str
    # Clients frontend autorisés (claim azp)
    KEYCLOAK_ALLOWED_AZP: ConfigurableList = ["cassius-web"]
    # Claim portant l'identifiant du cabinet
    KEYCLOAK_ORGANISATION_CLAIM: str = "organisation_id"

    # OpenTelemetry (lus aussi par opentelemetry-instrument)
    OTEL_SERVICE_NAME: str = "cassius-api"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_EXPORTER_OTLP_PROTOCOL: str = "grpc"
    OTEL_LOGS_EXPORTER: Literal["otlp", "console"] = "otlp"
    OTEL_TRACES_EXPORTER: Literal["otlp", "console"] = "otlp"
    OTEL_METRICS_EXPORTER: Literal["otlp", "console"] = "otlp"
    OTEL_PYTHON_LOGGING_AUTO_INSTRUMENTATION_ENABLED: bool = True
    OTEL_PYTHON_LOG_CORRELATION: bool = True

    ALLOWED_ORIGINS: ConfigurableList = []
    TRUSTED_HOSTS: ConfigurableList = ["localhost", "127.0.0.1"]

    @field_validator("KEYCLOAK_ALLOWED_AZP", "ALLOWED_ORIGINS", "TRUSTED_HOSTS", mode="before")
    @classmethod
    def assemble_list(cls, v: ConfigurableList, info: ValidationInfo) -> list[str]:
        return parse_list_from_env(v, info.field_name)

    # PostgreSQL (SQLAlchemy 2.0 + asyncpg)
    SQLALCHEMY_DATABASE_URI: PostgresDsn

    # Redis: événements Pub/Sub et cache
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_DB: int = 0

    # Cache
    CACHE_ENABLED: bool = True
    CACHE_TTL_DEFAULT: int = 300
    CACHE_TTL_STATS: int = 120

    # Tâches planifiées (APScheduler)
    SCHEDULER_ENABLED: bool = True
    FLAG_DETECTION_HOUR: int = 3
    APPOINTMENT_AUTOCOMPLETE_INTERVAL_SECONDS: int = 60

    # Seuils cliniques du moteur d'alertes
    ISQ_LOW_THRESHOLD: int = 56
    ISQ_DECLINE_THRESHOLD: int = 10
    DAYS_NO_RECENT_ISQ: int = 90
    DAYS_NO_POSTOP_FOLLOWUP: int = 30
    DAYS_POSTOP_WINDOW: int = 90
    DAYS_NO_RECENT_APPOINTMENT: int = 180

    # Notifications: une même clé n'est pas renvoyée au même destinataire dans ce délai
    NOTIFICATION_DEDUPE_MINUTES: int = 30
    NOTIFICATION_PAGE_SIZE: int = 20

    # Recherche
    SEARCH_MIN_QUERY_LENGTH: int = 2
    SEARCH_DEFAULT_LIMIT: int = 5

    @computed_field
    @property
    def keycloak_issuer(self) -> str:
        """Issuer attendu dans les tokens Keycloak du realm."""
        return f"{self.KEYCLOAK_SERVER_URL.rstrip('/')}/realms/{self.KEYCLOAK_REALM}"

    def get_api_prefix(self, version: str | None = None) -> str:
        """
        Préfixe API pour une version donnée.

        Args:
            version: Version d'API (ex: "v1"). Par défaut la plus récente.

        Returns:
            Préfixe (ex: "/api/v1")
        """
        version = version or self.API_LATEST_VERSION
        return f"/api/{version}"


settings = Settings()
