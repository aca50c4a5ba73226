"""
Short Item Reports Service
Read-only view of receipt items that arrived short
"""
from typing import Dict, List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from stockledger.core.exceptions import NotFoundError
from stockledger.models.inventory import (
    REPORT_PARTIALLY_RECEIVED, REPORT_PENDING, REPORT_RECEIVED_BACK,
    IncomingInventory, IncomingInventoryItem, Sku
)
from stockledger.schemas.inventory import ReportFilters


def short_report_row(item: IncomingInventoryItem) -> Dict:
    """Derive the short report row for an item"""
    short_quantity = item.initial_short
    if item.short == 0:
        status = REPORT_RECEIVED_BACK
    elif item.short < short_quantity:
        status = REPORT_PARTIALLY_RECEIVED
    else:
        status = REPORT_PENDING

    return {
        "id": item.id,
        "incoming_inventory_id": item.incoming_inventory_id,
        "invoice_number": item.invoice_number,
        "receiving_date": item.receiving_date,
        "vendor_name": item.vendor_name,
        "sku_id": item.sku_id,
        "sku_code": item.sku_code,
        "item_name": item.item_name,
        "short_quantity": short_quantity,
        "received_back": max(0, short_quantity - item.short),
        "net_rejected": item.short,
        "challan_number": item.challan_number,
        "challan_date": item.challan_date,
        "status": status,
    }


class ShortItemReportService:
    """Short item reports, derived from incoming items on every read"""

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id

    def list(self, filters: ReportFilters) -> Tuple[List[Dict], int]:
        stmt = self._base()
        if filters.date_from:
            stmt = stmt.where(IncomingInventory.receiving_date >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(IncomingInventory.receiving_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.join(Sku, IncomingInventoryItem.sku_id == Sku.id).where(or_(
                IncomingInventory.invoice_number.ilike(pattern),
                IncomingInventory.vendor_name.ilike(pattern),
                Sku.sku_code.ilike(pattern),
                Sku.item_name.ilike(pattern),
            ))

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        items = self.db.execute(
            stmt.order_by(IncomingInventory.receiving_date.desc(), IncomingInventoryItem.id.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        ).scalars()
        return [short_report_row(item) for item in items], total

    def get(self, item_id: int) -> Dict:
        item = self.db.execute(
            self._base().where(IncomingInventoryItem.id == item_id)
        ).scalar_one_or_none()
        if item is None:
            raise NotFoundError(f"Short item report {item_id} not found", item_id=item_id)
        return short_report_row(item)

    def _base(self):
        return (
            select(IncomingInventoryItem)
            .join(IncomingInventory, IncomingInventoryItem.incoming_inventory_id == IncomingInventory.id)
            .where(
                IncomingInventory.company_id == self.company_id,
                IncomingInventory.is_active.is_(True),
                IncomingInventoryItem.total_quantity > IncomingInventoryItem.received,
            )
        )
