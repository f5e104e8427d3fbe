"""Modèles des filtres avancés: règles et groupes AND/OR imbriqués."""

import uuid
from enum import Enum

from pydantic import BaseModel, Field


class FilterOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    BETWEEN = "between"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"
    AFTER = "after"
    BEFORE = "before"
    LAST_N_DAYS = "last_n_days"
    LAST_N_MONTHS = "last_n_months"
    LAST_N_YEARS = "last_n_years"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"


class GroupOperator(str, Enum):
    AND = "AND"
    OR = "OR"


# Opérateurs qui ne lisent pas `value`
VALUELESS_OPERATORS = frozenset(
    {
        FilterOperator.IS_TRUE,
        FilterOperator.IS_FALSE,
        FilterOperator.IS_NULL,
        FilterOperator.IS_NOT_NULL,
    }
)

RELATIVE_DATE_OPERATORS = frozenset(
    {
        FilterOperator.LAST_N_DAYS,
        FilterOperator.LAST_N_MONTHS,
        FilterOperator.LAST_N_YEARS,
    }
)

FilterValue = str | int | float | bool | None


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class FilterRule(BaseModel):
    """Condition élémentaire `field operator value [value2]`."""

    id: str = Field(default_factory=_new_id, description="Identifiant client de la règle")
    field: str = Field(..., description="Nom du champ filtrable (dépend de la page)")
    operator: FilterOperator
    value: FilterValue = Field(None, description="Valeur comparée (nombre de jours/mois/années pour last_n_*)")
    value2: FilterValue = Field(None, description="Borne haute pour l'opérateur between")


class FilterGroup(BaseModel):
    """Groupe de règles combinées par AND ou OR; les groupes s'imbriquent."""

    id: str = Field(default_factory=_new_id)
    operator: GroupOperator = GroupOperator.AND
    rules: list["FilterRule | FilterGroup"] = Field(default_factory=list)

    def iter_rules(self):
        """Parcourt toutes les règles feuilles, en profondeur."""
        for rule in self.rules:
            if isinstance(rule, FilterGroup):
                yield from rule.iter_rules()
            else:
                yield rule


FilterGroup.model_rebuild()
