from datetime import datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..rbac import scope_query
from .. import analytics, models, schemas

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


def _parse_day(value: str, name: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}, expected YYYY-MM-DD")


def _accessible(db: Session, user: models.User):
    return scope_query(db.query(models.Submission), user, models.Submission)


@router.get("/dashboard")
def analytics_dashboard(db: Session = Depends(get_db), user: models.User = Depends(get_current_user)):
    data = analytics.dashboard(_accessible(db, user).all())
    return schemas.envelope(data)


@router.get("/trends")
def analytics_trends(
    days: int = Query(30, ge=1, le=3650),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    now = datetime.now(timezone.utc)
    start = now - timedelta(days=days)
    query = _accessible(db, user).filter(models.Submission.created_at >= start)
    data = analytics.trends(query.all(), days=days, now=now)
    return schemas.envelope(data)


@router.get("/reports")
def analytics_reports(
    type: str = "summary",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    query = _accessible(db, user)
    if start_date:
        start = _parse_day(start_date, "start_date")
        query = query.filter(models.Submission.created_at >= start.replace(tzinfo=timezone.utc))
    if end_date:
        # inclusive of the whole end day
        end = datetime.combine(_parse_day(end_date, "end_date").date(), time.max)
        query = query.filter(models.Submission.created_at <= end.replace(tzinfo=timezone.utc))
    data = analytics.report(query.order_by(models.Submission.created_at).all(), type)
    return schemas.envelope(data)
