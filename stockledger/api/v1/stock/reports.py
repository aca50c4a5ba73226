"""Rejected and Short Item Report API endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.common import MessageResponse, PaginatedResponse
from stockledger.schemas.inventory import (
    RejectedItemReportCreate, RejectedItemReportResponse, RejectedItemReportUpdate,
    ReportFilters, ShortItemReportRow
)
from stockledger.services.stock import RejectedItemReportService, ShortItemReportService

rejected_router = APIRouter()
short_router = APIRouter()


def _filters(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> ReportFilters:
    return ReportFilters(
        date_from=date_from, date_to=date_to, search=search, limit=limit, offset=offset
    )


# Rejected item reports

@rejected_router.post("", response_model=RejectedItemReportResponse, status_code=status.HTTP_201_CREATED)
def create_rejected_report(
    report_in: RejectedItemReportCreate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return RejectedItemReportService(db, company_id).create(report_in)


@rejected_router.get("", response_model=PaginatedResponse[RejectedItemReportResponse])
def list_rejected_reports(
    filters: ReportFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    items, total = RejectedItemReportService(db, company_id).list(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@rejected_router.get("/{report_id}", response_model=RejectedItemReportResponse)
def get_rejected_report(
    report_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return RejectedItemReportService(db, company_id).get(report_id)


@rejected_router.put("/{report_id}", response_model=RejectedItemReportResponse)
def update_rejected_report(
    report_id: int,
    update_in: RejectedItemReportUpdate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """
    Update sent-to-vendor, received-back and scrapped counters.

    Received-back units return to stock. Units sent to the vendor go out
    on a replacement challan.
    """
    return RejectedItemReportService(db, company_id).update(report_id, update_in)


@rejected_router.delete("/{report_id}", response_model=MessageResponse)
def delete_rejected_report(
    report_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    RejectedItemReportService(db, company_id).delete(report_id)
    return {"message": "Rejected item report deleted", "id": report_id}


# Short item reports

@short_router.get("", response_model=PaginatedResponse[ShortItemReportRow])
def list_short_reports(
    filters: ReportFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    items, total = ShortItemReportService(db, company_id).list(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@short_router.get("/{item_id}", response_model=ShortItemReportRow)
def get_short_report(
    item_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return ShortItemReportService(db, company_id).get(item_id)
