"""Compilation d'un groupe de filtres en expression SQLAlchemy.

Le service fournit la correspondance champ -> expression de colonne; le
compilateur ne connaît aucune table. Les bornes relatives (last_n_*) sont
calculées en Python pour rester identiques à l'évaluation en mémoire.
"""

from collections.abc import Mapping
from datetime import date

from sqlalchemy import Date, and_, cast, false, func, or_, true
from sqlalchemy.sql.elements import ColumnElement

from app.filters.fields import FieldType, FilterPage, get_field
from app.filters.types import RELATIVE_DATE_OPERATORS, FilterGroup, FilterRule, GroupOperator
from app.filters.types import FilterOperator as Op
from app.filters.values import (
    normalize_text,
    parse_date,
    parse_number,
    parse_relative_amount,
    relative_cutoff,
)


def compile_group(
    group: FilterGroup | None,
    columns: Mapping[str, ColumnElement],
    page: FilterPage | str,
    today: date | None = None,
) -> ColumnElement[bool]:
    if group is None:
        return true()
    return _compile_group(group, columns, FilterPage(page), today or date.today())


def _compile_group(group: FilterGroup, columns, page: FilterPage, today: date):
    if not group.rules:
        return true()
    clauses = [
        _compile_group(node, columns, page, today)
        if isinstance(node, FilterGroup)
        else _compile_rule(node, columns, page, today)
        for node in group.rules
    ]
    if group.operator == GroupOperator.OR:
        return or_(*clauses)
    return and_(*clauses)


def _compile_rule(rule: FilterRule, columns, page: FilterPage, today: date):
    spec = get_field(page, rule.field)
    column = columns.get(rule.field)
    if spec is None or column is None:
        return true()

    op = rule.operator
    if op == Op.IS_NULL:
        return column.is_(None)
    if op == Op.IS_NOT_NULL:
        return column.is_not(None)
    if op == Op.IS_TRUE:
        return column.is_(True)
    if op == Op.IS_FALSE:
        return or_(column.is_(False), column.is_(None))

    if spec.type in (FieldType.TEXT, FieldType.SELECT):
        return _compile_text(op, column, rule.value)

    if spec.type == FieldType.DATE:
        column = cast(column, Date)
        parse = parse_date
    else:
        parse = parse_number

    if op in RELATIVE_DATE_OPERATORS:
        amount = parse_relative_amount(op, rule.value)
        if amount is None or spec.type != FieldType.DATE:
            return false()
        return column >= relative_cutoff(op, amount, today)

    right = parse(rule.value)
    if right is None:
        return false()

    match op:
        case Op.EQUALS:
            return column == right
        case Op.NOT_EQUALS:
            return column != right
        case Op.GREATER_THAN | Op.AFTER:
            return column > right
        case Op.GREATER_THAN_OR_EQUAL:
            return column >= right
        case Op.LESS_THAN | Op.BEFORE:
            return column < right
        case Op.LESS_THAN_OR_EQUAL:
            return column <= right
        case Op.BETWEEN:
            upper = parse(rule.value2)
            if upper is None:
                return false()
            low, high = sorted((right, upper))
            return column.between(low, high)
    return false()


def _compile_text(op: Op, column, value):
    text = normalize_text(value) if value is not None else ""
    match op:
        case Op.EQUALS:
            return func.lower(func.trim(column)) == text
        case Op.NOT_EQUALS:
            return func.lower(func.trim(column)) != text
        case Op.CONTAINS:
            return column.icontains(text, autoescape=True)
        case Op.NOT_CONTAINS:
            return ~column.icontains(text, autoescape=True)
    return false()
