"""Tests unitaires de l'evaluation en memoire des filtres avances."""

from datetime import date

import pytest

from app.filters import FilterGroup, FilterOperator, FilterRule, GroupOperator, evaluate, filter_records

TODAY = date(2026, 3, 31)


def rule(field, operator, value=None, value2=None) -> FilterRule:
    return FilterRule(field=field, operator=FilterOperator(operator), value=value, value2=value2)


def group(*rules, operator=GroupOperator.AND) -> FilterGroup:
    return FilterGroup(operator=operator, rules=list(rules))


@pytest.fixture
def acte():
    return {
        "dateOperation": "2026-01-15",
        "typeIntervention": "POSE_IMPLANT",
        "typeChirurgieTemps": "UN_TEMPS",
        "typeChirurgieApproche": None,
        "greffeOsseuse": False,
        "implantCount": 2,
        "successRate": 50,
    }


class TestGroupSemantics:
    def test_no_group_matches_everything(self, acte):
        assert evaluate(None, acte, "actes") is True

    def test_empty_group_matches_everything(self, acte):
        assert evaluate(group(), acte, "actes") is True

    def test_and_group(self, acte):
        g = group(rule("implantCount", "equals", 2), rule("successRate", "greater_than", 60))

        assert evaluate(g, acte, "actes") is False

    def test_or_group(self, acte):
        g = group(
            rule("implantCount", "equals", 2),
            rule("successRate", "greater_than", 60),
            operator=GroupOperator.OR,
        )

        assert evaluate(g, acte, "actes") is True

    def test_nested_groups(self, acte):
        inner = group(
            rule("typeIntervention", "equals", "SINUS_LIFT"),
            rule("typeIntervention", "equals", "POSE_IMPLANT"),
            operator=GroupOperator.OR,
        )
        g = group(rule("implantCount", "greater_than_or_equal", 1), inner)

        assert evaluate(g, acte, "actes") is True

    def test_unknown_field_is_ignored(self, acte):
        """Un champ absent du registre de la page ne filtre rien."""
        g = group(rule("patient_nom", "equals", "Dupont"))

        assert evaluate(g, acte, "actes") is True


class TestTextAndSelect:
    def test_equals_ignores_case_and_spaces(self):
        record = {"marque": "  Straumann "}

        assert evaluate(group(rule("marque", "equals", "straumann")), record, "implants")

    def test_contains_and_not_contains(self):
        record = {"referenceFabricant": "BLT-4.1x10"}

        assert evaluate(group(rule("referenceFabricant", "contains", "4.1")), record, "implants")
        assert not evaluate(
            group(rule("referenceFabricant", "not_contains", "blt")), record, "implants"
        )

    def test_select_not_equals(self, acte):
        assert evaluate(group(rule("typeIntervention", "not_equals", "SINUS_LIFT")), acte, "actes")

    def test_null_text_fails_comparison(self, acte):
        """Comme en SQL, une valeur nulle echoue meme `not_equals`."""
        g = group(rule("typeChirurgieApproche", "not_equals", "LAMBEAU"))

        assert evaluate(g, acte, "actes") is False

    def test_case_folding_matches_sql_lower(self):
        """`lower()` comme PostgreSQL: ß reste ß, il ne devient pas ss."""
        record = {"marque": "Strauß"}

        assert evaluate(group(rule("marque", "equals", "STRAUß")), record, "implants")
        assert not evaluate(group(rule("marque", "equals", "STRAUSS")), record, "implants")
        assert not evaluate(group(rule("marque", "contains", "uss")), record, "implants")


class TestNumbers:
    @pytest.mark.parametrize(
        ("operator", "value", "expected"),
        [
            ("equals", 50, True),
            ("equals", "50", True),
            ("greater_than", 50, False),
            ("greater_than_or_equal", 50, True),
            ("less_than", "50,5", True),
            ("less_than_or_equal", 49, False),
        ],
    )
    def test_comparisons(self, acte, operator, value, expected):
        assert evaluate(group(rule("successRate", operator, value)), acte, "actes") is expected

    def test_between_is_inclusive_and_accepts_swapped_bounds(self, acte):
        assert evaluate(group(rule("successRate", "between", 50, 80)), acte, "actes")
        assert evaluate(group(rule("successRate", "between", 80, 50)), acte, "actes")
        assert not evaluate(group(rule("successRate", "between", 51, 80)), acte, "actes")

    def test_between_without_upper_bound(self, acte):
        assert not evaluate(group(rule("successRate", "between", 10)), acte, "actes")

    def test_null_number_only_matches_null_checks(self):
        record = {"isqPose": None, "isq2m": 65}

        assert evaluate(group(rule("isqPose", "is_null")), record, "surgery_implants")
        assert not evaluate(group(rule("isqPose", "less_than", 100)), record, "surgery_implants")
        assert evaluate(group(rule("isq2m", "is_not_null")), record, "surgery_implants")


class TestBooleans:
    def test_is_true(self):
        assert evaluate(group(rule("greffeOsseuse", "is_true")), {"greffeOsseuse": True}, "actes")
        assert not evaluate(group(rule("greffeOsseuse", "is_true")), {"greffeOsseuse": None}, "actes")

    def test_is_false_matches_null(self):
        """`is_false` retient False et les valeurs absentes."""
        assert evaluate(group(rule("greffeOsseuse", "is_false")), {"greffeOsseuse": False}, "actes")
        assert evaluate(group(rule("greffeOsseuse", "is_false")), {"greffeOsseuse": None}, "actes")
        assert not evaluate(group(rule("greffeOsseuse", "is_false")), {"greffeOsseuse": True}, "actes")


class TestDates:
    def test_after_before(self):
        record = {"surgery_dateOperation": date(2026, 1, 15)}

        assert evaluate(
            group(rule("surgery_dateOperation", "after", "2026-01-01")), record, "patients", TODAY
        )
        assert not evaluate(
            group(rule("surgery_dateOperation", "before", "2026-01-15")), record, "patients", TODAY
        )

    def test_date_values_accept_datetimes_and_strings(self):
        record = {"dateOperation": "2026-01-15T10:30:00"}

        assert evaluate(group(rule("dateOperation", "equals", "2026-01-15")), record, "actes")

    def test_last_n_days(self):
        g = group(rule("surgery_dateOperation", "last_n_days", 30))

        assert evaluate(g, {"surgery_dateOperation": "2026-03-01"}, "patients", TODAY)
        assert not evaluate(g, {"surgery_dateOperation": "2026-02-28"}, "patients", TODAY)

    def test_last_n_months_clamps_day(self):
        """31 mars - 1 mois = 28 fevrier."""
        g = group(rule("surgery_dateOperation", "last_n_months", 1))

        assert evaluate(g, {"surgery_dateOperation": "2026-02-28"}, "patients", TODAY)
        assert not evaluate(g, {"surgery_dateOperation": "2026-02-27"}, "patients", TODAY)

    def test_last_n_years(self):
        g = group(rule("implant_datePose", "last_n_years", 2))

        assert evaluate(g, {"implant_datePose": "2024-03-31"}, "patients", TODAY)
        assert not evaluate(g, {"implant_datePose": "2024-03-30"}, "patients", TODAY)

    def test_last_n_with_invalid_amount(self):
        g = group(rule("surgery_dateOperation", "last_n_days", "-3"))

        assert not evaluate(g, {"surgery_dateOperation": "2026-03-30"}, "patients", TODAY)

    @pytest.mark.parametrize(
        ("operator", "amount"),
        [("last_n_days", 10**9), ("last_n_months", 10**6), ("last_n_years", 5000), ("last_n_days", "inf")],
    )
    def test_last_n_out_of_range_matches_nothing(self, operator, amount):
        g = group(rule("surgery_dateOperation", operator, amount))

        assert evaluate(g, {"surgery_dateOperation": "1990-01-01"}, "patients", TODAY) is False


class TestFilterRecords:
    def test_filter_records_keeps_order(self):
        records = [
            {"marque": "Nobel", "poseCount": 3},
            {"marque": "Straumann", "poseCount": 0},
            {"marque": "Nobel", "poseCount": 1},
        ]
        g = group(rule("marque", "equals", "nobel"))

        result = filter_records(g, records, "implants")

        assert result == [records[0], records[2]]
