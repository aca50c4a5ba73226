"""Incoming Inventory API endpoints"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.common import MessageResponse, PaginatedResponse
from stockledger.schemas.inventory import (
    HasPriceHistoryResponse, IncomingHistoryRow, IncomingInventoryCreate,
    IncomingInventoryFilters, IncomingInventoryResponse, IncomingItemResponse,
    MoveReceivedToRejected, MoveShortToRejected, PriceHistorySlots, RecordStatus,
    RejectedItemFilters, RejectedItemReportResponse, RejectedItemRow,
    RejectedShortUpdate, ShortItemUpdate, StatusUpdate
)
from stockledger.services.stock import (
    IncomingInventoryService, PriceHistoryService, RejectedItemReportService
)

router = APIRouter()


def _filters(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    record_status: Optional[RecordStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> IncomingInventoryFilters:
    return IncomingInventoryFilters(
        date_from=date_from, date_to=date_to, vendor_id=vendor_id,
        status=record_status, search=search, limit=limit, offset=offset,
    )


@router.post("", response_model=IncomingInventoryResponse, status_code=status.HTTP_201_CREATED)
def create_incoming(
    record_in: IncomingInventoryCreate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """
    Record a goods received note.

    A completed receipt adds received quantities to stock and updates
    price history.
    """
    return IncomingInventoryService(db, company_id).create(record_in)


@router.get("", response_model=PaginatedResponse[IncomingInventoryResponse])
def list_incoming(
    filters: IncomingInventoryFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    items, total = IncomingInventoryService(db, company_id).list(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@router.get("/history", response_model=PaginatedResponse[IncomingHistoryRow])
def incoming_history(
    filters: IncomingInventoryFilters = Depends(_filters),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """Completed receipts, Pending while any short quantity remains"""
    items, total = IncomingInventoryService(db, company_id).history(filters)
    return {"items": items, "total": total, "limit": filters.limit, "offset": filters.offset}


@router.get("/rejected-items", response_model=PaginatedResponse[RejectedItemRow])
def list_rejected_items(
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    vendor_id: Optional[int] = Query(None, alias="vendorId"),
    brand_id: Optional[int] = Query(None, alias="brandId"),
    sku_id: Optional[int] = Query(None, alias="skuId"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    filters = RejectedItemFilters(
        date_from=date_from, date_to=date_to, vendor_id=vendor_id,
        brand_id=brand_id, sku_id=sku_id, limit=limit, offset=offset,
    )
    items, total = IncomingInventoryService(db, company_id).list_rejected_items(filters)
    return {"items": items, "total": total, "limit": limit, "offset": offset}


@router.get("/price-history", response_model=PriceHistorySlots)
def get_price_history(
    sku_id: int = Query(..., alias="skuId"),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return PriceHistoryService(db, company_id).get_price_history(sku_id)


@router.get("/has-price-history", response_model=HasPriceHistoryResponse)
def has_price_history(
    sku_id: int = Query(..., alias="skuId"),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return {"sku_id": sku_id, "has_history": PriceHistoryService(db, company_id).has_price_history(sku_id)}


@router.get("/{record_id}", response_model=IncomingInventoryResponse)
def get_incoming(
    record_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return IncomingInventoryService(db, company_id).get(record_id)


@router.put("/{record_id}/status", response_model=IncomingInventoryResponse)
def update_incoming_status(
    record_id: int,
    status_in: StatusUpdate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return IncomingInventoryService(db, company_id).update_status(record_id, status_in.status)


@router.put("/{record_id}/update-item-rejected-short", response_model=IncomingInventoryResponse)
def update_item_rejected_short(
    record_id: int,
    update_in: RejectedShortUpdate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return IncomingInventoryService(db, company_id).update_rejected_short(
        record_id,
        update_in.item_id,
        rejected=update_in.rejected,
        short=update_in.short,
        invoice_number=update_in.invoice_number,
        invoice_date=update_in.invoice_date,
    )


@router.put("/{record_id}/update-short-item", response_model=IncomingInventoryResponse)
def update_short_item(
    record_id: int,
    update_in: ShortItemUpdate,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    return IncomingInventoryService(db, company_id).update_short_item(
        record_id,
        update_in.item_id,
        short=update_in.short,
        challan_number=update_in.challan_number,
        challan_date=update_in.challan_date,
    )


@router.post("/{record_id}/move-to-rejected", response_model=IncomingItemResponse)
def move_short_to_rejected(
    record_id: int,
    move_in: MoveShortToRejected,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """Move short units to rejected. Stock is unchanged."""
    return IncomingInventoryService(db, company_id).move_short_to_rejected(
        record_id, move_in.item_id, move_in.quantity
    )


@router.post(
    "/{record_id}/move-received-to-rejected",
    response_model=RejectedItemReportResponse,
    status_code=status.HTTP_201_CREATED,
)
def move_received_to_rejected(
    record_id: int,
    move_in: MoveReceivedToRejected,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """
    Reject received units, taking them out of stock, and open a
    rejected item report for them.
    """
    return RejectedItemReportService(db, company_id).reject_from_receipt(
        record_id,
        move_in.item_id,
        move_in.quantity,
        inspection_date=move_in.inspection_date,
        reason=move_in.reason,
    )


@router.delete("/{record_id}", response_model=MessageResponse)
def delete_incoming(
    record_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    IncomingInventoryService(db, company_id).delete(record_id)
    return {"message": "Incoming inventory deleted", "id": record_id}
