import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from keycloak import KeycloakOpenID
from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, ValidationError

from app.core.config import settings
from app.core.exceptions import OrganisationMissingError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Client Keycloak (bearer-only, pas de client_secret)
keycloak_openid = KeycloakOpenID(
    server_url=settings.KEYCLOAK_SERVER_URL,
    client_id=settings.KEYCLOAK_CLIENT_ID,
    realm_name=settings.KEYCLOAK_REALM,
)

# auto_error=False: le token peut aussi venir de la query ou d'un cookie
security_scheme = HTTPBearer(auto_error=False)

# Rôles du cabinet
ROLE_ADMIN = "admin"
ROLE_CHIRURGIEN = "chirurgien"
ROLE_ASSISTANT = "assistant"

CLINICAL_ROLES = (ROLE_ADMIN, ROLE_CHIRURGIEN)
STAFF_ROLES = (ROLE_ADMIN, ROLE_CHIRURGIEN, ROLE_ASSISTANT)


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    sub: str  # Keycloak user ID
    email: str | None = None
    preferred_username: str | None = None
    given_name: str | None = None
    family_name: str | None = None
    organisation_id: str | None = None
    realm_access: dict | None = None
    resource_access: dict | None = None

    @property
    def roles(self) -> list[str]:
        """Rôles realm et client réunis."""
        user_roles: list[str] = []
        if self.realm_access and "roles" in self.realm_access:
            user_roles.extend(self.realm_access["roles"])
        if self.resource_access and settings.KEYCLOAK_CLIENT_ID in self.resource_access:
            user_roles.extend(self.resource_access[settings.KEYCLOAK_CLIENT_ID].get("roles", []))
        return user_roles

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.given_name, self.family_name) if p]
        return " ".join(parts) or self.preferred_username or self.sub


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _claim_error(token_info: dict) -> str | None:
    """Premier claim refusé du token (iss, azp, aud), None si tout est conforme."""
    iss = token_info.get("iss")
    if settings.DEBUG:
        logger.debug(f"Mode DEBUG: validation de l'issuer ignorée ({iss})")
    elif iss != settings.keycloak_issuer:
        return f"Token émis par un issuer non autorisé: {iss}"

    azp = token_info.get("azp")
    if azp not in set(settings.KEYCLOAK_ALLOWED_AZP):
        return f"Token non autorisé pour ce service (azp invalide: {azp})"

    audiences = token_info.get("aud") or []
    if isinstance(audiences, str):
        audiences = [audiences]
    if not {"account", settings.KEYCLOAK_CLIENT_ID}.intersection(audiences):
        return f"Token non destiné à ce service (audience invalide: {audiences})"
    return None


async def verify_token(token: str) -> dict:
    """
    Vérifie un JWT auprès de Keycloak: signature et expiration, puis les
    claims iss (realm du cabinet, ignoré en DEBUG), azp (client frontend
    autorisé) et aud (ce service ou 'account').
    """
    with tracer.start_as_current_span("verify_keycloak_token") as span:
        try:
            token_info = keycloak_openid.decode_token(token, validate=True)
        except Exception as e:
            logger.error(f"Échec de vérification du token: {e}")
            span.set_attribute("auth.error", True)
            span.set_attribute("auth.error_detail", str(e))
            raise _unauthorized("Token invalide") from e

        rejected = _claim_error(token_info)
        if rejected:
            logger.error(f"Token refusé pour {token_info.get('sub')}: {rejected}")
            span.set_attribute("auth.error", True)
            raise _unauthorized(rejected)

        span.set_attribute("auth.user_id", token_info.get("sub") or "")
        span.set_attribute("auth.azp", token_info.get("azp"))
        return token_info


async def extract_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)] = None,
) -> str:
    """
    JWT de la requête, par ordre de priorité: header `Authorization: Bearer`,
    paramètre `?token=` (EventSource du calendrier) puis cookie `auth_token`.
    """
    if credentials:
        return credentials.credentials

    for source, token in (
        ("paramètre de requête", request.query_params.get("token")),
        ("cookie", request.cookies.get("auth_token")),
    ):
        if token:
            logger.debug(f"Token extrait du {source}")
            return token

    logger.warning("Aucun token d'authentification dans la requête")
    raise _unauthorized(
        "Authentification requise (header Authorization, paramètre token ou cookie)."
    )


async def get_token_data(token: Annotated[str, Depends(extract_token)]) -> dict:
    return await verify_token(token)


async def get_current_user(token_data: Annotated[dict, Depends(get_token_data)]) -> User:
    """Construit l'utilisateur courant; le claim d'organisation est configurable."""
    claims = dict(token_data)
    organisation_claim = settings.KEYCLOAK_ORGANISATION_CLAIM
    if organisation_claim in claims:
        claims["organisation_id"] = claims[organisation_claim]
    try:
        user = User(**claims)
    except ValidationError as e:
        logger.error(f"Impossible de construire l'utilisateur depuis le token: {e}")
        raise _unauthorized("Impossible de valider les identifiants") from e

    span = trace.get_current_span()
    span.set_attribute("auth.user_id", user.sub)
    span.set_attribute("auth.organisation_id", user.organisation_id or "none")
    return user


async def get_current_organisation(
    current_user: Annotated[User, Depends(get_current_user)],
) -> str:
    """Identifiant du cabinet de l'utilisateur; toutes les requêtes y sont restreintes."""
    if not current_user.organisation_id:
        logger.warning(f"Utilisateur {current_user.sub} sans organisation")
        raise OrganisationMissingError(
            detail="Le token ne porte aucune organisation",
            user_id=current_user.sub,
        )
    return current_user.organisation_id


def check_user_role(user: User, required_role: str) -> bool:
    return required_role in user.roles


def require_roles(*roles: str, require_all: bool = False):
    """
    Fabrique de dépendance pour le contrôle d'accès par rôle.

    Un seul des rôles suffit, sauf avec `require_all=True`.

    Examples:
        @router.get("/data", dependencies=[Depends(require_roles("chirurgien", "assistant"))])
    """
    match = all if require_all else any

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        user_roles = set(current_user.roles)
        if match(role in user_roles for role in roles):
            return current_user

        missing = sorted(set(roles) - user_roles)
        logger.warning(
            f"Accès refusé pour {current_user.sub}: rôles requis {roles}, manquants {missing}"
        )
        trace.get_current_span().set_attribute("auth.access_denied", True)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Accès refusé. Rôles requis: {', '.join(roles)}",
        )

    return role_checker
