"""Opérations sur les groupes: combinaison avec un favori, comptage, champs utilisés."""

from app.filters.types import FilterGroup, GroupOperator, _new_id


def combine_groups(
    current: FilterGroup | None,
    saved: FilterGroup,
    mode: GroupOperator | None = None,
) -> FilterGroup:
    """
    Charge un filtre enregistré par-dessus le filtre courant.

    Avec un mode AND/OR et deux groupes non vides, les règles de premier
    niveau des deux groupes sont concaténées dans un nouveau groupe combiné
    par `mode`. Sinon le filtre enregistré remplace le filtre courant.
    """
    if mode is not None and current is not None and current.rules and saved.rules:
        return FilterGroup(
            id=_new_id(),
            operator=GroupOperator(mode),
            rules=[*current.rules, *saved.rules],
        )
    return saved


def count_rules(group: FilterGroup | None) -> int:
    if group is None:
        return 0
    return sum(1 for _ in group.iter_rules())


def uses_fields(group: FilterGroup | None, prefixes: tuple[str, ...]) -> bool:
    if group is None:
        return False
    return any(rule.field.startswith(prefixes) for rule in group.iter_rules())
