"""Outgoing Inventory API endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.common import MessageResponse, PaginatedResponse
from stockledger.schemas.inventory import (
    OutgoingInventoryCreate, OutgoingInventoryFilters, OutgoingInventoryResponse,
    RecordStatus, StatusUpdate
)
from stockledger.services.stock import OutgoingInventoryService

router = APIRouter()


def _filters(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    record_status: Optional[RecordStatus] = Query(None, alias="status"),
    document_type: Optional[str] = Query(None, alias="documentType"),
    destination_type: Optional[str] = Query(None, alias="destinationType"),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> OutgoingInventoryFilters:
    return OutgoingInventoryFilters(
        date_from=date_from, date_to=date_to, status=record_status,
        document_type=document_type, destination_type=destination_type,
        search=search, limit=limit, offset=offset,
    )


@router.post("", response_model=OutgoingInventoryResponse, status_code=status.HTTP_201_CREATED)
def create_outgoing(
    record_in: OutgoingInventoryCreate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """
    Record an outgoing document.

    A completed dispatch withdraws stock and fails when any item has
    insufficient stock. Replacement challans to a vendor leave stock alone.
    """
    return OutgoingInventoryService(db, company_id).create(record_in)


@router.get("", response_model=PaginatedResponse[OutgoingInventoryResponse])
def list_outgoing(
    filters: OutgoingInventoryFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    items, total = OutgoingInventoryService(db, company_id).list(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@router.get("/history", response_model=PaginatedResponse[OutgoingInventoryResponse])
def outgoing_history(
    filters: OutgoingInventoryFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    items, total = OutgoingInventoryService(db, company_id).history(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@router.get("/{record_id}", response_model=OutgoingInventoryResponse)
def get_outgoing(
    record_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return OutgoingInventoryService(db, company_id).get(record_id)


@router.put("/{record_id}/status", response_model=OutgoingInventoryResponse)
def update_outgoing_status(
    record_id: int,
    status_in: StatusUpdate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return OutgoingInventoryService(db, company_id).update_status(record_id, status_in.status)


@router.delete("/{record_id}", response_model=MessageResponse)
def delete_outgoing(
    record_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    OutgoingInventoryService(db, company_id).delete(record_id)
    return {"message": "Outgoing inventory deleted", "id": record_id}
