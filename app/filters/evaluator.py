"""Évaluation en mémoire d'un groupe de filtres sur un enregistrement.

Utilisée pour les listes calculées côté service (actes avec nombre
d'implants et taux de réussite, catalogue avec statistiques de pose) où
les valeurs filtrées ne sont pas de simples colonnes.

Une valeur nulle échoue toute comparaison, sauf `is_false` et `is_null`,
comme en SQL: les deux évaluateurs retournent les mêmes lignes.
"""

from collections.abc import Mapping
from datetime import date
from typing import Any

from app.filters.fields import FieldSpec, FieldType, FilterPage, get_field
from app.filters.types import RELATIVE_DATE_OPERATORS, FilterGroup, FilterRule, GroupOperator
from app.filters.types import FilterOperator as Op
from app.filters.values import (
    normalize_text,
    parse_date,
    parse_number,
    parse_relative_amount,
    relative_cutoff,
)


def evaluate(
    group: FilterGroup | None,
    record: Mapping[str, Any],
    page: FilterPage | str,
    today: date | None = None,
) -> bool:
    """Retourne True si `record` (nom de champ -> valeur) satisfait le groupe."""
    if group is None:
        return True
    return _evaluate_group(group, record, FilterPage(page), today or date.today())


def filter_records(
    group: FilterGroup | None,
    records: list[Mapping[str, Any]],
    page: FilterPage | str,
    today: date | None = None,
) -> list[Mapping[str, Any]]:
    today = today or date.today()
    return [record for record in records if evaluate(group, record, page, today)]


def _evaluate_group(group: FilterGroup, record, page: FilterPage, today: date) -> bool:
    if not group.rules:
        return True
    results = (
        _evaluate_group(node, record, page, today)
        if isinstance(node, FilterGroup)
        else _evaluate_rule(node, record, page, today)
        for node in group.rules
    )
    if group.operator == GroupOperator.OR:
        return any(results)
    return all(results)


def _evaluate_rule(rule: FilterRule, record, page: FilterPage, today: date) -> bool:
    spec = get_field(page, rule.field)
    if spec is None:
        return True

    raw = record.get(rule.field)
    op = rule.operator

    if op == Op.IS_NULL:
        return raw is None
    if op == Op.IS_NOT_NULL:
        return raw is not None
    if op == Op.IS_TRUE:
        return raw is not None and bool(raw)
    if op == Op.IS_FALSE:
        return raw is None or not bool(raw)
    if raw is None:
        return False

    if spec.type in (FieldType.TEXT, FieldType.SELECT):
        return _match_text(op, raw, rule.value)
    return _match_ordered(rule, spec, raw, today)


def _match_text(op: Op, raw, value) -> bool:
    left = normalize_text(raw)
    right = normalize_text(value) if value is not None else ""
    match op:
        case Op.EQUALS:
            return left == right
        case Op.NOT_EQUALS:
            return left != right
        case Op.CONTAINS:
            return right in left
        case Op.NOT_CONTAINS:
            return right not in left
    return False


def _match_ordered(rule: FilterRule, spec: FieldSpec, raw, today: date) -> bool:
    parse = parse_date if spec.type == FieldType.DATE else parse_number
    left = parse(raw)
    if left is None:
        return False

    op = rule.operator
    if op in RELATIVE_DATE_OPERATORS:
        amount = parse_relative_amount(op, rule.value)
        if amount is None or spec.type != FieldType.DATE:
            return False
        return left >= relative_cutoff(op, amount, today)

    right = parse(rule.value)
    if right is None:
        return False

    match op:
        case Op.EQUALS:
            return left == right
        case Op.NOT_EQUALS:
            return left != right
        case Op.GREATER_THAN | Op.AFTER:
            return left > right
        case Op.GREATER_THAN_OR_EQUAL:
            return left >= right
        case Op.LESS_THAN | Op.BEFORE:
            return left < right
        case Op.LESS_THAN_OR_EQUAL:
            return left <= right
        case Op.BETWEEN:
            upper = parse(rule.value2)
            if upper is None:
                return False
            low, high = sorted((right, upper))
            return low <= left <= high
    return False
