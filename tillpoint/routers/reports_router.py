from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from tillpoint.db.session import Till, get_till, settings
from tillpoint.schemas import DaySessionRead, ProductRead, SessionSummary
from tillpoint.services.reports import Reports, export_day_report

router = APIRouter()


def get_reports(till: Till = Depends(get_till)) -> Reports:
    return Reports(till)


def get_report_dir() -> str:
    return settings.REPORT_DIR


@router.get("/history", response_model=list[DaySessionRead])
def sales_history(
    limit: int = Query(default=settings.SALES_HISTORY_LIMIT, ge=1, le=365),
    reports: Reports = Depends(get_reports),
):
    return reports.sales_history(limit)


@router.get("/summary", response_model=SessionSummary)
def session_summary(session_id: Optional[int] = None, reports: Reports = Depends(get_reports)):
    return reports.session_summary(session_id)


@router.get("/summary/export")
def export_summary(
    session_id: Optional[int] = None,
    reports: Reports = Depends(get_reports),
    report_dir: str = Depends(get_report_dir),
):
    summary = reports.session_summary(session_id)
    path = export_day_report(summary, report_dir)
    return FileResponse(path, media_type="text/csv", filename=f"day-report-{summary.session_id}.csv")


@router.get("/low-stock", response_model=list[ProductRead])
def low_stock(reports: Reports = Depends(get_reports)):
    return reports.low_stock()
