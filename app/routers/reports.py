"""
Reports router.

GET /reports/managers      per-manager label buckets, churns, documentation
GET /reports/cs-overview   CS board summary and health score
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.report import CSOverviewResponse, ManagerReportResponse, ManagerStatsOut
from app.services.delay_tracker import civil_date_key, utc_now
from app.services.reporting import build_cs_overview, build_manager_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/managers",
    response_model=ManagerReportResponse,
    summary="Per-manager roll-up for the ads managers dashboard",
)
def managers_report(
    reference_time: Optional[datetime] = Query(
        default=None,
        description="Reference instant for 'this month' and 'yesterday'. Defaults to now.",
    ),
    db: Session = Depends(get_db),
):
    """
    - Label buckets fold legacy colour tokens; NULL/unknown labels count as
      `medio` and are also reported in `unmapped_labels`.
    - `churns_this_month` and `documented_yesterday` use civil-timezone
      day boundaries.
    """
    now = utc_now(reference_time)
    stats = build_manager_report(db, now)
    return ManagerReportResponse(
        day=civil_date_key(now),
        managers=[ManagerStatsOut(**s.to_dict()) for s in stats],
    )


@router.get(
    "/cs-overview",
    response_model=CSOverviewResponse,
    summary="Customer-success summary",
)
def cs_overview(
    reference_time: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db),
):
    return build_cs_overview(db, utc_now(reference_time))
