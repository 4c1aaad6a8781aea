"""
Dashboard endpoints: totals, rankings and activity per network.
"""
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import reports
from ..config import settings
from ..db import get_db
from ..error_handlers import AppException
from ..schemas import ActivityReport, DashboardSummary, Rankings

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary)
def get_summary(db: Session = Depends(get_db)):
    return reports.summary(db)


@router.get("/rankings", response_model=Rankings)
def get_rankings(
    network: Optional[str] = None,
    supervisor: Optional[str] = None,
    top: Optional[int] = Query(None, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Rank cells, supervisors and networks by delivered kg.

    - **network**: only cells of this network (color name)
    - **supervisor**: only cells whose supervisors contain this text
    """
    return reports.rankings(db, top_n=top or settings.dashboard_top_n, network=network, supervisor=supervisor)


@router.get("/activity", response_model=ActivityReport)
def get_activity(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db)
):
    """
    Active and inactive cells per network, and product in/out totals.

    Defaults to the last 30 days.
    """
    end = end or datetime.utcnow().date()
    start = start or end - timedelta(days=30)
    if start > end:
        raise AppException(
            message="start must be on or before end",
            status_code=422,
            details={"start": start.isoformat(), "end": end.isoformat()}
        )
    return reports.activity(db, start, end, top_n=settings.dashboard_top_n)
