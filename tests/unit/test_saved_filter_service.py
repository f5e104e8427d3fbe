"""Tests unitaires du service des filtres enregistrés."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import FilterValidationError, SavedFilterNotFoundError
from app.filters import FilterGroup, FilterOperator, FilterRule, GroupOperator
from app.models import SavedFilter
from app.schemas.saved_filter import SavedFilterCreate
from app.services.saved_filter_service import (
    apply_saved_filter,
    create_saved_filter,
    delete_saved_filter,
)

SAVED_GROUP = FilterGroup(
    rules=[FilterRule(field="patient_statut", operator=FilterOperator.EQUALS, value="ACTIF")]
)


def stored_filter() -> SavedFilter:
    saved = SavedFilter(
        organisation_id="org-test",
        name="Actifs",
        page_type="patients",
        filter_data=SAVED_GROUP.model_dump_json(),
    )
    saved.id = 3
    saved.created_at = datetime(2026, 2, 1, tzinfo=UTC)
    return saved


def db_returning(value):
    db = AsyncMock()
    db.add = MagicMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    db.execute.return_value = result
    return db


class TestCreateSavedFilter:
    async def test_create(self):
        db = db_returning(None)

        async def refresh(saved):
            saved.id = 1
            saved.created_at = datetime(2026, 2, 1, tzinfo=UTC)

        db.refresh.side_effect = refresh
        data = SavedFilterCreate(name=" Actifs ", page_type="patients", filter_data=SAVED_GROUP)

        response = await create_saved_filter(db, "org-test", data)

        assert response.name == "Actifs"
        assert response.filter_data.rules[0].field == "patient_statut"
        stored = db.add.call_args.args[0]
        assert stored.organisation_id == "org-test"
        assert FilterGroup.model_validate_json(stored.filter_data) == SAVED_GROUP

    async def test_field_of_another_page_rejected(self):
        db = db_returning(None)
        group = FilterGroup(
            rules=[FilterRule(field="marque", operator=FilterOperator.EQUALS, value="Nobel")]
        )
        data = SavedFilterCreate(name="Nobel", page_type="patients", filter_data=group)

        with pytest.raises(FilterValidationError):
            await create_saved_filter(db, "org-test", data)

        db.add.assert_not_called()

    async def test_blank_rules_dropped_before_saving(self):
        db = db_returning(None)

        async def refresh(saved):
            saved.id = 2
            saved.created_at = datetime(2026, 2, 1, tzinfo=UTC)

        db.refresh.side_effect = refresh
        group = FilterGroup(
            rules=[
                FilterRule(field="patient_nom", operator=FilterOperator.CONTAINS, value=""),
                *SAVED_GROUP.rules,
            ]
        )
        data = SavedFilterCreate(name="Actifs", page_type="patients", filter_data=group)

        response = await create_saved_filter(db, "org-test", data)

        assert [r.field for r in response.filter_data.rules] == ["patient_statut"]

    async def test_filter_without_complete_rule_rejected(self):
        db = db_returning(None)
        group = FilterGroup(
            rules=[FilterRule(field="patient_nom", operator=FilterOperator.CONTAINS, value=" ")]
        )
        data = SavedFilterCreate(name="Vide", page_type="patients", filter_data=group)

        with pytest.raises(FilterValidationError):
            await create_saved_filter(db, "org-test", data)

        db.add.assert_not_called()


class TestApplyAndDelete:
    async def test_apply_combines_with_current(self):
        current = FilterGroup(
            rules=[FilterRule(field="patient_nom", operator=FilterOperator.CONTAINS, value="Dup")]
        )

        combined = await apply_saved_filter(
            db_returning(stored_filter()), "org-test", 3, current, GroupOperator.AND
        )

        assert [r.field for r in combined.rules] == ["patient_nom", "patient_statut"]

    async def test_apply_replaces_without_mode(self):
        result = await apply_saved_filter(db_returning(stored_filter()), "org-test", 3, None, None)

        assert result == SAVED_GROUP

    async def test_delete_unknown(self):
        db = db_returning(None)

        with pytest.raises(SavedFilterNotFoundError):
            await delete_saved_filter(db, "org-test", 77)

        db.delete.assert_not_called()

    async def test_delete(self):
        saved = stored_filter()
        db = db_returning(saved)

        await delete_saved_filter(db, "org-test", 3)

        db.delete.assert_awaited_once_with(saved)
        db.commit.assert_awaited_once()
