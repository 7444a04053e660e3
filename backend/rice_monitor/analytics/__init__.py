from .submissions import REPORT_TYPES, as_utc, dashboard, report, trends

__all__ = ["REPORT_TYPES", "as_utc", "dashboard", "report", "trends"]
