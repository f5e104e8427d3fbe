"""Validation d'un groupe de filtres contre le registre d'une page."""

import logging

from app.core.exceptions import FilterValidationError
from app.filters.fields import FieldSpec, FieldType, FilterPage, get_field
from app.filters.types import (
    RELATIVE_DATE_OPERATORS,
    VALUELESS_OPERATORS,
    FilterGroup,
    FilterOperator,
    FilterRule,
)
from app.filters.values import (
    RELATIVE_AMOUNT_LIMITS,
    is_empty,
    parse_date,
    parse_number,
    parse_relative_amount,
)

logger = logging.getLogger(__name__)


def _reject(rule: FilterRule, detail: str) -> FilterValidationError:
    logger.info(f"Règle de filtre rejetée ({rule.id}): {detail}")
    return FilterValidationError(detail=detail, rule_id=rule.id, field=rule.field)


def _check_value(rule: FilterRule, spec: FieldSpec, value) -> None:
    if is_empty(value):
        raise _reject(rule, f"Valeur manquante pour le champ '{spec.label}'")

    if spec.type == FieldType.NUMBER and parse_number(value) is None:
        raise _reject(rule, f"'{value}' n'est pas un nombre valide pour '{spec.label}'")
    if spec.type == FieldType.DATE and parse_date(value) is None:
        raise _reject(rule, f"'{value}' n'est pas une date ISO (AAAA-MM-JJ) pour '{spec.label}'")
    if spec.type == FieldType.SELECT and str(value) not in spec.option_values:
        allowed = ", ".join(sorted(spec.option_values))
        raise _reject(rule, f"'{value}' n'est pas une option de '{spec.label}' ({allowed})")


def validate_rule(rule: FilterRule, page: FilterPage | str) -> FieldSpec:
    """
    Vérifie une règle et retourne la définition de son champ.

    Raises:
        FilterValidationError: champ inconnu, opérateur non proposé pour le
            champ, valeur manquante ou mal typée, borne haute absente pour
            `between`, nombre de jours/mois/années non entier ou hors
            de la fenêtre autorisée.
    """
    spec = get_field(page, rule.field)
    if spec is None:
        raise _reject(rule, f"Champ '{rule.field}' inconnu pour la page {FilterPage(page).value}")

    if rule.operator not in spec.operators:
        raise _reject(
            rule, f"Opérateur '{rule.operator.value}' non disponible pour '{spec.label}'"
        )

    if rule.operator in VALUELESS_OPERATORS:
        return spec

    if rule.operator in RELATIVE_DATE_OPERATORS:
        if parse_relative_amount(rule.operator, rule.value) is None:
            limit = RELATIVE_AMOUNT_LIMITS[rule.operator]
            raise _reject(rule, f"'{rule.value}' doit être un entier entre 1 et {limit}")
        return spec

    _check_value(rule, spec, rule.value)
    if rule.operator == FilterOperator.BETWEEN:
        _check_value(rule, spec, rule.value2)

    return spec


def validate_group(group: FilterGroup, page: FilterPage | str) -> FilterGroup:
    for rule in group.iter_rules():
        validate_rule(rule, page)
    return group
