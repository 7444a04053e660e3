"""In-memory aggregation over the submissions a caller can see.

Every call scans the full accessible set and nothing is cached; this is only
meant for the small record counts a field team produces.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

from .. import models, schemas

REPORT_TYPES = schemas.REPORT_TYPES
DEFAULT_RECENT = 5


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _created(submission: models.Submission) -> datetime:
    return as_utc(submission.created_at) or datetime.min.replace(tzinfo=timezone.utc)


def dashboard(
    submissions: Sequence[models.Submission],
    recent: int = DEFAULT_RECENT,
    now: datetime | None = None,
) -> schemas.DashboardOut:
    by_status = Counter(s.status for s in submissions)
    by_stage = Counter(s.growth_stage for s in submissions)
    newest = sorted(submissions, key=_created, reverse=True)[:recent]
    return schemas.DashboardOut(
        total_submissions=len(submissions),
        submissions_by_status=dict(by_status),
        submissions_by_stage=dict(by_stage),
        recent_submissions=[schemas.SubmissionOut.model_validate(s) for s in newest],
        last_updated=now or datetime.now(timezone.utc),
    )


def trends(
    submissions: Iterable[models.Submission],
    days: int = 30,
    now: datetime | None = None,
) -> schemas.TrendsOut:
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    in_window = [s for s in submissions if start <= _created(s) <= end]

    daily: Counter[str] = Counter(_created(s).strftime("%Y-%m-%d") for s in in_window)
    progression: dict[str, list[str]] = defaultdict(list)
    for s in sorted(in_window, key=lambda s: (as_utc(s.date), _created(s))):
        if s.field_id:
            progression[s.field_id].append(s.growth_stage)

    return schemas.TrendsOut(
        daily_submissions=dict(daily),
        stage_progression=dict(progression),
        period={
            "start_date": start.strftime("%Y-%m-%d"),
            "end_date": end.strftime("%Y-%m-%d"),
            "days": days,
        },
    )


def summary_report(submissions: Sequence[models.Submission]) -> dict[str, Any]:
    conditions: Counter[str] = Counter()
    for s in submissions:
        conditions.update(s.plant_conditions or [])
    return {
        "total_submissions": len(submissions),
        "status_distribution": dict(Counter(s.status for s in submissions)),
        "stage_distribution": dict(Counter(s.growth_stage for s in submissions)),
        "condition_frequency": dict(conditions),
    }


def detailed_report(submissions: Sequence[models.Submission]) -> dict[str, Any]:
    return {
        "submissions": [schemas.SubmissionOut.model_validate(s) for s in submissions],
        "total_count": len(submissions),
    }


def field_analysis_report(submissions: Sequence[models.Submission]) -> dict[str, Any]:
    fields: dict[str, dict[str, Any]] = {}
    for s in submissions:
        entry = fields.setdefault(
            s.field_id,
            {
                "submission_count": 0,
                "stages": Counter(),
                "conditions": Counter(),
                "latest_date": as_utc(s.date),
            },
        )
        entry["submission_count"] += 1
        entry["stages"][s.growth_stage] += 1
        entry["conditions"].update(s.plant_conditions or [])
        observed = as_utc(s.date)
        if observed and (entry["latest_date"] is None or observed > entry["latest_date"]):
            entry["latest_date"] = observed
    for entry in fields.values():
        entry["stages"] = dict(entry["stages"])
        entry["conditions"] = dict(entry["conditions"])
    return {"field_analysis": fields, "total_fields": len(fields)}


_BUILDERS = {
    "summary": summary_report,
    "detailed": detailed_report,
    "field_analysis": field_analysis_report,
}


def report(
    submissions: Sequence[models.Submission],
    report_type: str = "summary",
    now: datetime | None = None,
) -> schemas.ReportOut:
    """Build one of the report payloads; unknown types fall back to ``summary``."""
    if report_type not in _BUILDERS:
        report_type = "summary"
    return schemas.ReportOut(
        type=report_type,
        data=_BUILDERS[report_type](submissions),
        generated_at=now or datetime.now(timezone.utc),
    )
