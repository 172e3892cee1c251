"""
reports.py — Verification report archive (read-only).

Routes:
  GET /api/v1/reports                       — list reports (paginated, filter by user / video)
  GET /api/v1/reports/{id}                  — get a single report
  GET /api/v1/reports/{id}/download         — export as JSON

Reports are written only by the verification pipeline; there is no
create/update route.
"""

import logging
from math import ceil
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from vericlip.core.database import get_db
from vericlip.models.verification import ReportListResponse, ReportOut, VerificationReport
from vericlip.services.report_store import ReportStore
from vericlip.services.score_aggregator import authenticity_label

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _to_out(report: VerificationReport) -> ReportOut:
    return ReportOut(**report.model_dump(), authenticity_label=authenticity_label(report.authenticity_score))


def _validate_oid(report_id: str) -> ObjectId:
    try:
        return ObjectId(report_id)
    except InvalidId:
        raise HTTPException(status_code=422, detail="Invalid report ID format")


async def _load(report_id: str, db) -> VerificationReport:
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    _validate_oid(report_id)
    report = await ReportStore(db).get_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report


@router.get("", response_model=ReportListResponse)
async def list_reports(
    page:     int = Query(default=1, ge=1),
    limit:    int = Query(default=10, ge=1, le=100),
    user_id:  Optional[str] = Query(default=None),
    video_id: Optional[str] = Query(default=None),
    db=Depends(get_db),
):
    """Return a paginated list of reports, newest first."""
    if db is None:
        return ReportListResponse(items=[], total=0, page=page, limit=limit, pages=0)

    reports, total = await ReportStore(db).list_reports(user_id=user_id, video_id=video_id, page=page, limit=limit)
    pages = ceil(total / limit) if total else 0
    return ReportListResponse(items=[_to_out(r) for r in reports], total=total, page=page, limit=limit, pages=pages)


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(report_id: str, db=Depends(get_db)):
    """Retrieve a single report by ID."""
    return _to_out(await _load(report_id, db))


@router.get("/{report_id}/download")
async def download_report(
    report_id: str,
    fmt: str = Query(default="json", alias="format"),
    db=Depends(get_db),
):
    """Export a report. Supported formats: json"""
    report = await _load(report_id, db)

    if fmt.lower() == "json":
        return JSONResponse(
            content=_to_out(report).model_dump(mode="json"),
            headers={"Content-Disposition": f'attachment; filename="verification-report-{report_id}.json"'},
        )

    raise HTTPException(status_code=400, detail=f"Unsupported format '{fmt}'. Use 'json'.")
