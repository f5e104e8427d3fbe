"""Tests unitaires: nettoyage, validation et combinaison des groupes de filtres."""

import pytest

from app.core.exceptions import FilterValidationError
from app.filters import (
    FilterGroup,
    FilterOperator,
    FilterRule,
    GroupOperator,
    combine_groups,
    count_rules,
    prepare_group,
    prune_group,
    retarget_rule,
    uses_fields,
    validate_group,
)


def rule(field, operator, value=None, value2=None, rule_id=None) -> FilterRule:
    data = {"field": field, "operator": FilterOperator(operator), "value": value, "value2": value2}
    if rule_id:
        data["id"] = rule_id
    return FilterRule(**data)


class TestPruneGroup:
    def test_none(self):
        assert prune_group(None, "patients") is None

    def test_drops_rules_without_value(self):
        g = FilterGroup(
            rules=[rule("patient_nom", "contains", ""), rule("patient_age", "greater_than", 40)]
        )

        pruned = prune_group(g, "patients")

        assert [r.field for r in pruned.rules] == ["patient_age"]
        assert pruned.id == g.id

    def test_keeps_valueless_operators(self):
        g = FilterGroup(rules=[rule("surgery_hasSurgery", "is_true"), rule("isqPose", "is_null")])

        assert count_rules(prune_group(g, "implants")) == 2

    def test_removes_empty_subgroups(self):
        g = FilterGroup(
            rules=[
                FilterGroup(rules=[rule("patient_nom", "contains", "  ")]),
                rule("patient_prenom", "equals", "Anne"),
            ]
        )

        pruned = prune_group(g, "patients")

        assert len(pruned.rules) == 1
        assert isinstance(pruned.rules[0], FilterRule)

    def test_boolean_field_kept_without_value(self):
        g = FilterGroup(rules=[rule("surgery_hasSurgery", "equals", "")])

        assert count_rules(prune_group(g, "patients")) == 1
        assert prune_group(g, "actes") is None

    def test_all_empty_returns_none(self):
        g = FilterGroup(rules=[FilterGroup(rules=[]), rule("patient_nom", "contains", None)])

        assert prune_group(g, "patients") is None


class TestValidation:
    def test_valid_group(self):
        g = FilterGroup(
            rules=[
                rule("patient_statut", "equals", "ACTIF"),
                rule("surgery_dateOperation", "last_n_months", 6),
                rule("patient_age", "between", 40, 70),
            ]
        )

        assert validate_group(g, "patients") is g

    def test_unknown_field(self):
        g = FilterGroup(rules=[rule("poseCount", "equals", 1, rule_id="r1")])

        with pytest.raises(FilterValidationError) as exc_info:
            validate_group(g, "patients")

        assert exc_info.value.extras["rule_id"] == "r1"
        assert "poseCount" in exc_info.value.detail

    def test_operator_not_offered_for_field(self):
        g = FilterGroup(rules=[rule("patient_nom", "greater_than", "A")])

        with pytest.raises(FilterValidationError):
            validate_group(g, "patients")

    def test_select_option_must_exist(self):
        g = FilterGroup(rules=[rule("statut", "equals", "PERDU")])

        with pytest.raises(FilterValidationError) as exc_info:
            validate_group(g, "surgery_implants")

        assert "EN_SUIVI" in exc_info.value.detail

    def test_number_must_parse(self):
        g = FilterGroup(rules=[rule("implantCount", "equals", "deux")])

        with pytest.raises(FilterValidationError):
            validate_group(g, "actes")

    def test_date_must_be_iso(self):
        g = FilterGroup(rules=[rule("dateOperation", "greater_than", "15/01/2026")])

        with pytest.raises(FilterValidationError):
            validate_group(g, "actes")

    def test_between_requires_upper_bound(self):
        g = FilterGroup(rules=[rule("diametre", "between", 3.5)])

        with pytest.raises(FilterValidationError):
            validate_group(g, "implants")

    def test_relative_amount_must_be_positive_integer(self):
        g = FilterGroup(rules=[rule("surgery_dateOperation", "last_n_days", 1.5)])

        with pytest.raises(FilterValidationError):
            validate_group(g, "patients")

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400"])
    def test_relative_amount_must_be_finite(self, value):
        g = FilterGroup(rules=[rule("surgery_dateOperation", "last_n_days", value, rule_id="r9")])

        with pytest.raises(FilterValidationError) as exc_info:
            prepare_group(g, "patients")

        assert exc_info.value.extras["rule_id"] == "r9"

    @pytest.mark.parametrize(
        ("operator", "too_large"),
        [("last_n_days", 10**9), ("last_n_months", 1201), ("last_n_years", 5000)],
    )
    def test_relative_amount_is_bounded(self, operator, too_large):
        g = FilterGroup(rules=[rule("surgery_dateOperation", operator, too_large)])

        with pytest.raises(FilterValidationError) as exc_info:
            validate_group(g, "patients")

        assert exc_info.value.status == 422

    def test_relative_amount_at_limit_is_accepted(self):
        g = FilterGroup(rules=[rule("surgery_dateOperation", "last_n_years", "100")])

        assert validate_group(g, "patients") is g

    def test_nested_rules_are_validated(self):
        g = FilterGroup(rules=[FilterGroup(rules=[rule("typeProthese", "equals", "COLLEE")])])

        with pytest.raises(FilterValidationError):
            validate_group(g, "protheses")


class TestPrepareGroup:
    def test_prunes_then_validates(self):
        g = FilterGroup(
            rules=[rule("patient_nom", "contains", ""), rule("patient_statut", "equals", "ACTIF")]
        )

        prepared = prepare_group(g, "patients")

        assert count_rules(prepared) == 1

    def test_empty_filter_is_no_filter(self):
        assert prepare_group(FilterGroup(rules=[]), "patients") is None
        assert prepare_group(None, "actes") is None


class TestCombineGroups:
    @pytest.fixture
    def current(self):
        return FilterGroup(rules=[rule("patient_nom", "contains", "Dup")])

    @pytest.fixture
    def saved(self):
        return FilterGroup(
            operator=GroupOperator.OR,
            rules=[rule("patient_statut", "equals", "ACTIF"), rule("patient_age", "less_than", 30)],
        )

    def test_without_mode_replaces(self, current, saved):
        assert combine_groups(current, saved) is saved

    def test_and_concatenates_top_level_rules(self, current, saved):
        combined = combine_groups(current, saved, GroupOperator.AND)

        assert combined.operator == GroupOperator.AND
        assert [r.field for r in combined.rules] == ["patient_nom", "patient_statut", "patient_age"]
        assert combined.id not in (current.id, saved.id)

    def test_or_mode(self, current, saved):
        assert combine_groups(current, saved, GroupOperator.OR).operator == GroupOperator.OR

    def test_empty_current_replaces(self, saved):
        assert combine_groups(FilterGroup(rules=[]), saved, GroupOperator.AND) is saved
        assert combine_groups(None, saved, GroupOperator.AND) is saved


class TestHelpers:
    def test_count_rules_counts_leaves(self):
        g = FilterGroup(
            rules=[
                rule("patient_nom", "contains", "a"),
                FilterGroup(rules=[rule("implant_marque", "equals", "x"), FilterGroup(rules=[])]),
            ]
        )

        assert count_rules(g) == 2
        assert count_rules(None) == 0

    def test_uses_fields(self):
        g = FilterGroup(rules=[FilterGroup(rules=[rule("implant_marque", "equals", "x")])])

        assert uses_fields(g, ("surgery_", "implant_")) is True
        assert uses_fields(g, ("surgery_",)) is False
        assert uses_fields(None, ("implant_",)) is False

    def test_retarget_rule_resets_operator_and_values(self):
        original = rule("patient_nom", "contains", "Dup", rule_id="r7")

        moved = retarget_rule(original, "patient_age", "patients")

        assert moved.id == "r7"
        assert moved.field == "patient_age"
        assert moved.operator == FilterOperator.EQUALS
        assert moved.value is None

    def test_retarget_rule_unknown_field(self):
        with pytest.raises(KeyError):
            retarget_rule(rule("patient_nom", "contains", "a"), "inconnu", "patients")
