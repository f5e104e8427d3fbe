"""Nettoyage des filtres avant application (bouton « Appliquer » du tiroir)."""

from app.filters.fields import FieldType, FilterPage, get_field
from app.filters.types import VALUELESS_OPERATORS, FilterGroup, FilterRule
from app.filters.values import is_empty


def _keep_rule(rule: FilterRule, page: FilterPage) -> bool:
    if rule.operator in VALUELESS_OPERATORS or not is_empty(rule.value):
        return True
    spec = get_field(page, rule.field)
    return spec is not None and spec.type == FieldType.BOOLEAN


def prune_group(group: FilterGroup | None, page: FilterPage | str) -> FilterGroup | None:
    """
    Retire les règles sans valeur et les sous-groupes devenus vides.

    Les règles sur un champ booléen de la page et les tests de nullité n'ont
    pas de valeur et sont conservés. Retourne None si plus aucune règle ne
    subsiste.
    """
    if group is None:
        return None
    page = FilterPage(page)

    kept: list[FilterRule | FilterGroup] = []
    for rule in group.rules:
        if isinstance(rule, FilterGroup):
            pruned = prune_group(rule, page)
            if pruned is not None:
                kept.append(pruned)
        elif _keep_rule(rule, page):
            kept.append(rule)

    if not kept:
        return None
    return group.model_copy(update={"rules": kept})


def retarget_rule(rule: FilterRule, field: str, page: FilterPage | str) -> FilterRule:
    """
    Change le champ d'une règle.

    L'opérateur revient au premier opérateur proposé pour le nouveau champ
    et les valeurs sont effacées.
    """
    spec = get_field(page, field)
    if spec is None:
        raise KeyError(field)
    return rule.model_copy(
        update={"field": field, "operator": spec.default_operator, "value": None, "value2": None}
    )
