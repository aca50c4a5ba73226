"""
Outgoing Inventory Service
Dispatches, invoices and delivery challans leaving the warehouse
"""
from typing import List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import NotFoundError, ValidationError
from stockledger.core.logging import get_logger
from stockledger.models.inventory import (
    RECORD_STATUSES, STATUS_COMPLETED,
    OutgoingInventory, OutgoingInventoryItem, is_rejected_return_document
)
from stockledger.schemas.inventory import OutgoingInventoryCreate, OutgoingInventoryFilters
from stockledger.services.stock.line_values import compute_line_values
from stockledger.services.stock.stock_ledger import StockLedger

logger = get_logger("outgoing")

ITEM_REFERENCE = "outgoing_inventory_item"


class OutgoingInventoryService:
    """
    Outgoing transaction processing

    Completed dispatches withdraw stock strictly: a dispatch larger than
    stock on hand fails the whole record. Rejected-return challans go back
    to the vendor from rejected stock and never touch stock on hand.
    """

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id
        self.ledger = StockLedger(db, company_id)

    def create(self, record_in: OutgoingInventoryCreate) -> OutgoingInventory:
        """Record an outgoing document with its items"""
        if record_in.status not in RECORD_STATUSES:
            raise ValidationError(f"Invalid status: {record_in.status}", status=record_in.status)
        if not record_in.items:
            raise ValidationError("At least one item is required")

        rejected_return = is_rejected_return_document(
            record_in.document_type,
            record_in.document_sub_type,
            record_in.delivery_challan_sub_type,
        )

        with unit_of_work(self.db, "outgoing.create", company_id=self.company_id):
            record = OutgoingInventory(
                company_id=self.company_id,
                **record_in.model_dump(exclude={"items"}),
            )
            total_value = 0
            for line, item_in in enumerate(record_in.items, start=1):
                if item_in.outgoing_quantity is None or item_in.outgoing_quantity <= 0:
                    raise ValidationError(
                        f"Item {line}: Outgoing quantity must be greater than 0", line=line
                    )
                self.ledger.get_sku(item_in.sku_id)
                values = compute_line_values(
                    item_in.outgoing_quantity,
                    item_in.unit_price,
                    item_in.gst_percentage,
                    supplied_excl=item_in.total_value_excl_gst,
                    supplied_gst=item_in.gst_amount,
                    supplied_incl=item_in.total_value_incl_gst,
                    line=line,
                )
                record.items.append(OutgoingInventoryItem(
                    sku_id=item_in.sku_id,
                    outgoing_quantity=item_in.outgoing_quantity,
                    rejected_quantity=item_in.outgoing_quantity if rejected_return else 0,
                    unit_price=item_in.unit_price,
                    gst_percentage=item_in.gst_percentage,
                    gst_amount=values.gst_amount,
                    total_value_excl_gst=values.excl_gst,
                    total_value_incl_gst=values.incl_gst,
                    total_value=values.incl_gst,
                ))
                total_value += values.incl_gst
            record.total_value = total_value

            self.db.add(record)
            self.db.flush()

            if record.is_completed and not rejected_return:
                self._withdraw(record)

        logger.info(
            f"Created outgoing {record.id} ({record.document_type}) "
            f"for {self.company_id} as {record.status}"
        )
        return record

    def update_status(self, record_id: int, status: str) -> OutgoingInventory:
        """
        Toggle a dispatch between draft and completed.
        Completing withdraws stock strictly, reverting to draft restores it.
        """
        if status not in RECORD_STATUSES:
            raise ValidationError(f"Invalid status: {status}", status=status)

        with unit_of_work(self.db, "outgoing.update_status", record_id=record_id, status=status):
            record = self._get_record(record_id, lock=True)
            if record.status == status:
                return record

            if not record.is_rejected_return:
                if status == STATUS_COMPLETED:
                    self._withdraw(record)
                else:
                    self._restore(record, reason="dispatch_reverted")
            record.status = status
            self.db.flush()

        logger.info(f"Outgoing {record_id} status changed to {status}")
        return record

    def delete(self, record_id: int) -> OutgoingInventory:
        """Soft delete. A completed dispatch puts its stock back first."""
        with unit_of_work(self.db, "outgoing.delete", record_id=record_id):
            record = self._get_record(record_id, lock=True)
            if record.is_completed and not record.is_rejected_return:
                self._restore(record, reason="dispatch_deleted")
            record.is_active = False
            self.db.flush()

        logger.info(f"Deleted outgoing {record_id} for {self.company_id}")
        return record

    def get(self, record_id: int) -> OutgoingInventory:
        return self._get_record(record_id)

    def list(self, filters: OutgoingInventoryFilters) -> Tuple[List[OutgoingInventory], int]:
        return self._paginate(self._filtered(filters), filters.limit, filters.offset)

    def history(self, filters: OutgoingInventoryFilters) -> Tuple[List[OutgoingInventory], int]:
        """Completed documents only"""
        stmt = self._filtered(filters).where(OutgoingInventory.status == STATUS_COMPLETED)
        return self._paginate(stmt, filters.limit, filters.offset)

    def _withdraw(self, record: OutgoingInventory):
        for item in record.items:
            self.ledger.withdraw(item.sku_id, item.outgoing_quantity, "dispatch", ITEM_REFERENCE, item.id)

    def _restore(self, record: OutgoingInventory, reason: str):
        for item in record.items:
            self.ledger.apply(item.sku_id, item.outgoing_quantity, reason, ITEM_REFERENCE, item.id)

    def _get_record(self, record_id: int, lock: bool = False) -> OutgoingInventory:
        stmt = select(OutgoingInventory).where(
            OutgoingInventory.id == record_id,
            OutgoingInventory.company_id == self.company_id,
            OutgoingInventory.is_active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        record = self.db.execute(stmt).scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"Outgoing inventory {record_id} not found", record_id=record_id)
        return record

    def _filtered(self, filters: OutgoingInventoryFilters):
        stmt = (
            select(OutgoingInventory)
            .options(selectinload(OutgoingInventory.items))
            .where(
                OutgoingInventory.company_id == self.company_id,
                OutgoingInventory.is_active.is_(True),
            )
        )
        if filters.date_from:
            stmt = stmt.where(OutgoingInventory.invoice_challan_date >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(OutgoingInventory.invoice_challan_date <= filters.date_to)
        if filters.status is not None:
            stmt = stmt.where(OutgoingInventory.status == filters.status.value)
        if filters.document_type:
            stmt = stmt.where(OutgoingInventory.document_type == filters.document_type)
        if filters.destination_type:
            stmt = stmt.where(OutgoingInventory.destination_type == filters.destination_type)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(or_(
                OutgoingInventory.invoice_challan_number.ilike(pattern),
                OutgoingInventory.docket_number.ilike(pattern),
                OutgoingInventory.dispatched_by.ilike(pattern),
            ))
        return stmt

    def _paginate(self, stmt, limit: int, offset: int):
        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        rows = self.db.execute(
            stmt.order_by(OutgoingInventory.invoice_challan_date.desc(), OutgoingInventory.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
        return list(rows), total
