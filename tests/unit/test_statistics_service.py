"""Tests unitaires pour le service de statistiques du tableau de bord."""

from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, patch

import pytest

from app.core.config import settings
from app.schemas.statistics import DashboardStatistics
from app.services.statistics_service import get_dashboard_statistics, last_months, rate


@pytest.fixture
def stats():
    return DashboardStatistics(
        total_patients=12,
        active_patients=10,
        total_operations=20,
        total_implants=30,
        implants_by_status={"EN_SUIVI": 10, "SUCCES": 18, "COMPLICATION": 1, "ECHEC": 1},
        success_rate=60.0,
        complication_rate=3.3,
        failure_rate=3.3,
        last_updated=datetime(2026, 3, 1, tzinfo=UTC),
    )


class TestHelpers:
    def test_last_months_oldest_first(self):
        months = last_months(date(2026, 3, 31))

        assert len(months) == 12
        assert months[0] == "2025-04"
        assert months[-1] == "2026-03"

    def test_last_months_custom_count(self):
        assert last_months(date(2026, 1, 15), 3) == ["2025-11", "2025-12", "2026-01"]

    def test_rate(self):
        assert rate(1, 3) == 33.3
        assert rate(0, 5) == 0.0

    def test_rate_without_total(self):
        assert rate(0, 0) is None


class TestGetDashboardStatistics:
    """Pattern cache-aside: le cache évite le calcul."""

    async def test_cache_hit(self, stats):
        db = AsyncMock()

        with (
            patch(
                "app.services.statistics_service.cache_get",
                AsyncMock(return_value=stats.model_dump_json()),
            ),
            patch(
                "app.services.statistics_service.compute_dashboard_statistics", new_callable=AsyncMock
            ) as mock_compute,
        ):
            result = await get_dashboard_statistics(db, "org-test")

        assert result == stats
        mock_compute.assert_not_called()

    async def test_cache_miss_computes_and_stores(self, stats):
        db = AsyncMock()

        with (
            patch("app.services.statistics_service.cache_get", AsyncMock(return_value=None)),
            patch(
                "app.services.statistics_service.compute_dashboard_statistics",
                AsyncMock(return_value=stats),
            ),
            patch("app.services.statistics_service.cache_set", new_callable=AsyncMock) as mock_set,
        ):
            result = await get_dashboard_statistics(db, "org-test")

        assert result.total_implants == 30
        key, payload = mock_set.await_args.args
        assert key == "cassius:stats:org-test:dashboard"
        assert DashboardStatistics.model_validate_json(payload) == stats
        assert mock_set.await_args.kwargs["ttl"] == settings.CACHE_TTL_STATS
