"""
Reporting schemas.

GET /reports/managers     -> ManagerReportResponse
GET /reports/cs-overview  -> CSOverviewResponse
"""
from pydantic import BaseModel, Field


class ManagerStatsOut(BaseModel):
    manager_id: int
    manager_name: str
    otimo: int
    bom: int
    medio: int
    ruim: int
    unmapped_labels: int = Field(
        description="Clients whose label was NULL or unknown; already counted in `medio`."
    )
    total_clients: int
    churns_this_month: int
    documented_yesterday: bool


class ManagerReportResponse(BaseModel):
    day: str
    managers: list[ManagerStatsOut]


class ManagerClassificationOut(BaseModel):
    manager_id: int
    manager_name: str
    total: int
    normal: int
    alerta: int
    critico: int
    encerrado: int


class CSOverviewResponse(BaseModel):
    total_clients: int
    by_classification: dict[str, int]
    without_contact: int
    contacted_today: int
    health_score: int = Field(description="Share of `normal` clients, 0-100. 100 with no clients.")
    managers: list[ManagerClassificationOut]
