"""Tests unitaires de la recherche globale."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import SearchQueryTooShortError
from app.services.search_service import global_search


def rows(*values):
    result = MagicMock()
    result.all.return_value = list(values)
    return result


class TestGlobalSearch:
    @pytest.mark.parametrize("query", ["", "a", "  b  "])
    async def test_query_too_short(self, query):
        db = AsyncMock()

        with pytest.raises(SearchQueryTooShortError) as exc_info:
            await global_search(db, "org-test", query)

        assert exc_info.value.status == 400
        assert exc_info.value.extras["min_length"] == 2
        db.execute.assert_not_called()

    async def test_groups_hits_by_category(self):
        db = AsyncMock()
        db.execute.side_effect = [
            rows((1, "Dupont", "Anne", date(1970, 4, 2))),
            rows((5, 1, "Dupont", "Anne", "POSE_IMPLANT", date(2026, 1, 15))),
            rows(),
        ]

        response = await global_search(db, "org-test", "  dupont ")

        assert response.query == "dupont"
        assert [p.nom for p in response.patients] == ["Dupont"]
        assert response.operations[0].patient_prenom == "Anne"
        assert response.surgery_implants == []
        assert db.execute.await_count == 3
