from clinic_portal.schemas.base import CamelModel


class Kpis(CamelModel):
    todays_visits: int = 0
    visits_this_month: int = 0


class DiagnosisStat(CamelModel):
    diagnosis: str
    count: int


class VisitTrendPoint(CamelModel):
    date: str
    count: int
