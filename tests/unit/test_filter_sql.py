"""Tests unitaires de la compilation des filtres en SQL (dialecte PostgreSQL)."""

from datetime import date

from sqlalchemy import Boolean, Date, Float, String, column
from sqlalchemy.dialects import postgresql

from app.filters import FilterGroup, FilterOperator, FilterRule, GroupOperator, compile_group

TODAY = date(2026, 3, 31)

COLUMNS = {
    "dateOperation": column("date_operation", Date),
    "typeIntervention": column("type_intervention", String),
    "greffeOsseuse": column("greffe_osseuse", Boolean),
    "successRate": column("success_rate", Float),
    "implantCount": column("implant_count", Float),
}


def sql(group: FilterGroup | None, page: str = "actes") -> str:
    expression = compile_group(group, COLUMNS, page, TODAY)
    return str(expression.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def rule(field, operator, value=None, value2=None) -> FilterRule:
    return FilterRule(field=field, operator=FilterOperator(operator), value=value, value2=value2)


class TestCompileGroup:
    def test_no_filter_is_true(self):
        assert sql(None) == "true"
        assert sql(FilterGroup(rules=[])) == "true"

    def test_and_or(self):
        g = FilterGroup(
            operator=GroupOperator.OR,
            rules=[rule("implantCount", "greater_than", 2), rule("successRate", "less_than", 50)],
        )

        compiled = sql(g)

        assert "implant_count > 2" in compiled
        assert "success_rate < 50" in compiled
        assert " OR " in compiled

    def test_unknown_field_compiles_to_true(self):
        g = FilterGroup(rules=[rule("patient_nom", "equals", "x")])

        assert sql(g) == "true"

    def test_field_without_column_compiles_to_true(self):
        g = FilterGroup(rules=[rule("typeChirurgieTemps", "equals", "UN_TEMPS")])

        assert sql(g) == "true"


class TestCompileRules:
    def test_text_equals_is_case_insensitive(self):
        g = FilterGroup(rules=[rule("typeIntervention", "equals", " POSE_IMPLANT ")])

        compiled = sql(g)

        assert "lower(trim(type_intervention))" in compiled
        assert "'pose_implant'" in compiled

    def test_boolean_false_includes_null(self):
        g = FilterGroup(rules=[rule("greffeOsseuse", "is_false")])

        compiled = sql(g)

        assert "greffe_osseuse IS false" in compiled
        assert "greffe_osseuse IS NULL" in compiled

    def test_between_swapped_bounds(self):
        g = FilterGroup(rules=[rule("successRate", "between", 80, 20)])

        assert "success_rate BETWEEN 20.0 AND 80.0" in sql(g)

    def test_invalid_number_matches_nothing(self):
        g = FilterGroup(rules=[rule("successRate", "equals", "abc")])

        assert sql(g) == "false"

    def test_relative_date_uses_python_cutoff(self):
        """La borne est calculee en Python: SQL et memoire retiennent les memes lignes."""
        g = FilterGroup(rules=[rule("dateOperation", "last_n_months", 1)])

        assert "2026-02-28" in sql(g)

    def test_date_after(self):
        g = FilterGroup(rules=[rule("dateOperation", "after", "2026-01-01")])

        compiled = sql(g)

        assert "CAST(date_operation AS DATE) >" in compiled
        assert "2026-01-01" in compiled

    def test_relative_amount_out_of_range_matches_nothing(self):
        g = FilterGroup(rules=[rule("dateOperation", "last_n_years", 5000)])

        assert sql(g) == "false"

    def test_text_literal_uses_same_lowering_as_memory(self):
        """Le littéral est passé par `str.lower()`, identique à `lower()` de PostgreSQL."""
        g = FilterGroup(rules=[rule("typeIntervention", "equals", "STRAUß")])

        assert "'strauß'" in sql(g)
