"""Filtres avancés: groupes de règles AND/OR partagés par toutes les listes."""

from app.filters.evaluator import evaluate, filter_records
from app.filters.fields import FieldSpec, FieldType, FilterPage, fields_for, get_field
from app.filters.groups import combine_groups, count_rules, uses_fields
from app.filters.normalize import prune_group, retarget_rule
from app.filters.sql import compile_group
from app.filters.types import FilterGroup, FilterOperator, FilterRule, GroupOperator
from app.filters.validation import validate_group, validate_rule


def prepare_group(group: FilterGroup | None, page: FilterPage | str) -> FilterGroup | None:
    """Nettoie puis valide un filtre reçu par l'API; None signifie « pas de filtre »."""
    pruned = prune_group(group, page)
    if pruned is not None:
        validate_group(pruned, page)
    return pruned


__all__ = [
    "FieldSpec",
    "FieldType",
    "FilterGroup",
    "FilterOperator",
    "FilterPage",
    "FilterRule",
    "GroupOperator",
    "combine_groups",
    "compile_group",
    "count_rules",
    "evaluate",
    "fields_for",
    "filter_records",
    "get_field",
    "prepare_group",
    "prune_group",
    "retarget_rule",
    "uses_fields",
    "validate_group",
    "validate_rule",
]
