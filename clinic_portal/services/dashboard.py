from typing import Optional

from clinic_portal.schemas.dashboard import DiagnosisStat, Kpis, VisitTrendPoint
from clinic_portal.services.invalidation import QueryFamily
from clinic_portal.services.query_cache import Listener, QueryKey, QueryResult, Subscription
from clinic_portal.services.resources import ResourceService


def _parse_kpis(data: dict) -> Kpis:
    return Kpis.model_validate(data)


def _parse_diagnoses(data: list) -> list[DiagnosisStat]:
    return [DiagnosisStat.model_validate(row) for row in data]


def _parse_trend(data: list) -> list[VisitTrendPoint]:
    return [VisitTrendPoint.model_validate(row) for row in data]


class DashboardService(ResourceService):
    def kpis_key(self) -> QueryKey:
        return self.key(QueryFamily.DASHBOARD_KPIS, "/api/dashboard/kpis")

    def top_diagnoses_key(self) -> QueryKey:
        return self.key(QueryFamily.TOP_DIAGNOSES, "/api/dashboard/top-diagnoses")

    def visits_trend_key(self) -> QueryKey:
        return self.key(QueryFamily.VISITS_TREND, "/api/dashboard/visits-trend")

    async def kpis(self) -> QueryResult:
        return await self._query(self.kpis_key(), _parse_kpis)

    async def top_diagnoses(self) -> QueryResult:
        return await self._query(self.top_diagnoses_key(), _parse_diagnoses)

    async def visits_trend(self) -> QueryResult:
        return await self._query(self.visits_trend_key(), _parse_trend)

    def watch_kpis(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(self.kpis_key(), self.settings.kpi_refresh_seconds, listener, _parse_kpis)

    def watch_top_diagnoses(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(
            self.top_diagnoses_key(), self.settings.trend_refresh_seconds, listener, _parse_diagnoses
        )

    def watch_visits_trend(self, listener: Optional[Listener] = None) -> Subscription:
        return self._subscribe(
            self.visits_trend_key(), self.settings.trend_refresh_seconds, listener, _parse_trend
        )
