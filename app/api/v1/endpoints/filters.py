"""Endpoints API décrivant les champs filtrables de chaque page."""

from fastapi import APIRouter, Depends

from app.core.exceptions import FilterValidationError
from app.core.security import STAFF_ROLES, require_roles
from app.filters import (
    FilterGroup,
    FilterPage,
    FilterRule,
    count_rules,
    fields_for,
    prepare_group,
    retarget_rule,
)
from app.schemas import build_responses
from app.schemas.filters import FilterFieldResponse, FilterPreview, FilterRetargetRequest

router = APIRouter(dependencies=[Depends(require_roles(*STAFF_ROLES))])


@router.get(
    "/{page}/fields",
    response_model=list[FilterFieldResponse],
    summary="Champs filtrables d'une page",
    description="Libellé, type, opérateurs et options de chaque champ du tiroir de filtres",
)
async def list_filter_fields(page: FilterPage) -> list[FilterFieldResponse]:
    return [FilterFieldResponse.from_spec(spec) for spec in fields_for(page)]


@router.post(
    "/{page}/preview",
    response_model=FilterPreview,
    summary="Prévisualiser un filtre",
    description="Retire les règles incomplètes et les groupes vides puis valide le filtre",
    responses=build_responses(422),
)
async def preview_filter(page: FilterPage, group: FilterGroup) -> FilterPreview:
    prepared = prepare_group(group, page)
    return FilterPreview(filters=prepared, rule_count=count_rules(prepared))


@router.post(
    "/{page}/retarget",
    response_model=FilterRule,
    summary="Changer le champ d'une règle",
    description="Remet l'opérateur par défaut du nouveau champ et efface les valeurs",
    responses=build_responses(422),
)
async def retarget_filter_rule(page: FilterPage, request: FilterRetargetRequest) -> FilterRule:
    try:
        return retarget_rule(request.rule, request.field, page)
    except KeyError:
        raise FilterValidationError(
            detail=f"Champ '{request.field}' inconnu pour la page {page.value}",
            rule_id=request.rule.id,
            field=request.field,
        ) from None
