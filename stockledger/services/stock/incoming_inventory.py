"""
Incoming Inventory Service
Goods received notes and the corrections made against them
"""
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import NotFoundError, ValidationError
from stockledger.core.logging import get_logger
from stockledger.models.inventory import (
    RECORD_STATUSES, STATUS_COMPLETED,
    IncomingInventory, IncomingInventoryItem, RejectedItemReport
)
from stockledger.schemas.inventory import (
    IncomingInventoryCreate, IncomingInventoryFilters, RejectedItemFilters
)
from stockledger.services.stock.line_values import compute_line_values
from stockledger.services.stock.price_history import PriceHistoryService
from stockledger.services.stock.stock_ledger import StockLedger

logger = get_logger("incoming")

ITEM_REFERENCE = "incoming_inventory_item"


class IncomingInventoryService:
    """
    Incoming transaction processing

    Every public mutation is one unit of work. Called from inside another
    unit of work (the rejected report write-backs) it joins that unit.
    """

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id
        self.ledger = StockLedger(db, company_id)
        self.prices = PriceHistoryService(db, company_id)

    def create(self, record_in: IncomingInventoryCreate) -> IncomingInventory:
        """
        Record a goods received note with its items.
        A completed receipt adds each item's received quantity to stock
        and rotates price history.
        """
        self._validate_header(record_in)

        with unit_of_work(
            self.db, "incoming.create",
            company_id=self.company_id, invoice_number=record_in.invoice_number
        ):
            record = IncomingInventory(
                company_id=self.company_id,
                **record_in.model_dump(exclude={"items"}),
            )
            total_value = 0
            for line, item_in in enumerate(record_in.items, start=1):
                self.ledger.get_sku(item_in.sku_id)
                total_quantity = self._validate_quantities(item_in, line)
                values = compute_line_values(
                    total_quantity,
                    item_in.unit_price,
                    item_in.gst_percentage,
                    supplied_excl=item_in.total_value_excl_gst,
                    supplied_gst=item_in.gst_amount,
                    supplied_incl=item_in.total_value_incl_gst,
                    line=line,
                )
                record.items.append(IncomingInventoryItem(
                    sku_id=item_in.sku_id,
                    total_quantity=total_quantity,
                    received=item_in.received,
                    short=item_in.short,
                    rejected=0,
                    challan_number=item_in.challan_number,
                    challan_date=item_in.challan_date,
                    unit_price=item_in.unit_price,
                    gst_percentage=item_in.gst_percentage,
                    gst_amount=values.gst_amount,
                    total_value_excl_gst=values.excl_gst,
                    total_value_incl_gst=values.incl_gst,
                    total_value=values.incl_gst,
                    number_of_boxes=item_in.number_of_boxes,
                    received_boxes=item_in.received_boxes,
                ))
                total_value += values.incl_gst
            record.total_value = total_value

            self.db.add(record)
            self.db.flush()

            if record.is_completed:
                self._apply_received(record, sign=1, reason="receipt")
                self.prices.update_price_history(record)

        logger.info(
            f"Created incoming {record.id} ({record.invoice_number}) "
            f"for {self.company_id} as {record.status}"
        )
        return record

    def update_status(self, record_id: int, status: str) -> IncomingInventory:
        """
        Toggle a receipt between draft and completed.
        Completing adds received quantities and rotates price history,
        reverting to draft removes them again. Same status is a no-op.
        """
        if status not in RECORD_STATUSES:
            raise ValidationError(f"Invalid status: {status}", status=status)

        with unit_of_work(self.db, "incoming.update_status", record_id=record_id, status=status):
            record = self._get_record(record_id, lock=True)
            if record.status == status:
                return record

            if status == STATUS_COMPLETED:
                self._apply_received(record, sign=1, reason="receipt")
                record.status = status
                self.prices.update_price_history(record)
            else:
                self._apply_received(record, sign=-1, reason="receipt_reverted")
                record.status = status
            self.db.flush()

        logger.info(f"Incoming {record_id} status changed to {status}")
        return record

    def update_rejected_short(
        self,
        record_id: int,
        item_id: int,
        rejected: Optional[int] = None,
        short: Optional[int] = None,
        invoice_number: Optional[str] = None,
        invoice_date: Optional[date] = None,
    ) -> IncomingInventory:
        """Correct the rejected and/or short quantity of an item"""
        with unit_of_work(
            self.db, "incoming.update_rejected_short", record_id=record_id, item_id=item_id
        ):
            record = self._get_record(record_id)
            item = self._get_item(record, item_id)
            self._correct_item(item, rejected=rejected, short=short)

            if invoice_number is not None:
                if not invoice_number.strip():
                    raise ValidationError("Invoice number cannot be empty")
                record.invoice_number = invoice_number.strip()
            if invoice_date is not None:
                record.invoice_date = invoice_date
            self.db.flush()

        return record

    def update_short_item(
        self,
        record_id: int,
        item_id: int,
        short: Optional[int] = None,
        challan_number: Optional[str] = None,
        challan_date: Optional[date] = None,
    ) -> IncomingInventory:
        """Record short units arriving later, with the challan they came on"""
        with unit_of_work(self.db, "incoming.update_short_item", record_id=record_id, item_id=item_id):
            record = self._get_record(record_id)
            item = self._get_item(record, item_id)
            self._correct_item(item, short=short)

            if challan_number is not None:
                item.challan_number = challan_number
            if challan_date is not None:
                item.challan_date = challan_date
            self.db.flush()

        return record

    def move_received_to_rejected(self, record_id: int, item_id: int, quantity: int) -> IncomingInventoryItem:
        """Reject units that were received, taking them out of stock"""
        with unit_of_work(
            self.db, "incoming.move_received_to_rejected",
            record_id=record_id, item_id=item_id, quantity=quantity
        ):
            record = self._get_record(record_id)
            item = self._get_item(record, item_id)

            available = item.received - item.rejected
            if available <= 0:
                raise ValidationError("No available quantity to move to rejected", item_id=item_id)
            if quantity is None or quantity <= 0:
                raise ValidationError("Quantity must be greater than 0", item_id=item_id)
            if quantity > available:
                raise ValidationError(
                    f"Cannot move {quantity} items. Only {available} available to reject",
                    item_id=item_id,
                )

            item.rejected += quantity
            self.db.flush()
            self.ledger.apply(item.sku_id, -quantity, "rejected", ITEM_REFERENCE, item.id)

        return item

    def move_short_to_rejected(
        self, record_id: int, item_id: int, quantity: Optional[int] = None
    ) -> IncomingInventoryItem:
        """
        Count short units as rejected. Defaults to the whole short quantity.
        Short units never reached stock, so stock is unchanged.
        """
        with unit_of_work(
            self.db, "incoming.move_short_to_rejected",
            record_id=record_id, item_id=item_id, quantity=quantity
        ):
            record = self._get_record(record_id)
            item = self._get_item(record, item_id)

            if item.short <= 0:
                raise ValidationError("No short quantity to move to rejected", item_id=item_id)
            if quantity is None:
                quantity = item.short
            if quantity <= 0:
                raise ValidationError("Quantity must be greater than 0", item_id=item_id)
            if quantity > item.short:
                raise ValidationError(
                    f"Cannot move {quantity} items. Only {item.short} short",
                    item_id=item_id,
                )
            if item.rejected + quantity > item.received:
                raise ValidationError(
                    "Rejected quantity cannot exceed received quantity", item_id=item_id
                )

            item.rejected += quantity
            self.db.flush()

        return item

    def release_rejected(self, record_id: int, item_id: int, quantity: int) -> IncomingInventoryItem:
        """Return rejected units to stock, e.g. when the vendor sends them back"""
        with unit_of_work(
            self.db, "incoming.release_rejected",
            record_id=record_id, item_id=item_id, quantity=quantity
        ):
            record = self._get_record(record_id)
            item = self._get_item(record, item_id)

            if quantity <= 0:
                raise ValidationError("Quantity must be greater than 0", item_id=item_id)
            if quantity > item.rejected:
                raise ValidationError(
                    f"Cannot release {quantity} items. Only {item.rejected} rejected",
                    item_id=item_id,
                )

            item.rejected -= quantity
            self.db.flush()
            self.ledger.apply(item.sku_id, quantity, "rejected_released", ITEM_REFERENCE, item.id)

        return item

    def delete(self, record_id: int) -> IncomingInventory:
        """Soft delete. A completed receipt gives its received stock back first."""
        with unit_of_work(self.db, "incoming.delete", record_id=record_id):
            record = self._get_record(record_id, lock=True)
            if record.is_completed:
                self._apply_received(record, sign=-1, reason="receipt_deleted")
            record.is_active = False
            self.db.flush()

        logger.info(f"Deleted incoming {record_id} for {self.company_id}")
        return record

    def get(self, record_id: int) -> IncomingInventory:
        return self._get_record(record_id)

    def list(self, filters: IncomingInventoryFilters) -> Tuple[List[IncomingInventory], int]:
        return self._paginate(self._filtered(filters), filters.limit, filters.offset)

    def history(self, filters: IncomingInventoryFilters) -> Tuple[List[IncomingInventory], int]:
        """Completed receipts only"""
        stmt = self._filtered(filters).where(IncomingInventory.status == STATUS_COMPLETED)
        return self._paginate(stmt, filters.limit, filters.offset)

    def list_rejected_items(self, filters: RejectedItemFilters) -> Tuple[List[IncomingInventoryItem], int]:
        stmt = (
            select(IncomingInventoryItem)
            .join(IncomingInventory, IncomingInventoryItem.incoming_inventory_id == IncomingInventory.id)
            .where(
                IncomingInventory.company_id == self.company_id,
                IncomingInventory.is_active.is_(True),
                IncomingInventoryItem.rejected > 0,
            )
        )
        if filters.date_from:
            stmt = stmt.where(IncomingInventory.receiving_date >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(IncomingInventory.receiving_date <= filters.date_to)
        if filters.vendor_id is not None:
            stmt = stmt.where(IncomingInventory.vendor_id == filters.vendor_id)
        if filters.brand_id is not None:
            stmt = stmt.where(IncomingInventory.brand_id == filters.brand_id)
        if filters.sku_id is not None:
            stmt = stmt.where(IncomingInventoryItem.sku_id == filters.sku_id)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        rows = self.db.execute(
            stmt.order_by(IncomingInventory.receiving_date.desc(), IncomingInventoryItem.id.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        ).scalars()
        return list(rows), total

    # Internal helpers

    def _validate_header(self, record_in: IncomingInventoryCreate):
        if not record_in.invoice_number:
            raise ValidationError("Invoice number is required")
        if record_in.status not in RECORD_STATUSES:
            raise ValidationError(f"Invalid status: {record_in.status}", status=record_in.status)
        if not record_in.items:
            raise ValidationError("At least one item is required")

    def _validate_quantities(self, item_in, line: int) -> int:
        if item_in.received < 0:
            raise ValidationError(f"Item {line}: Received quantity cannot be negative", line=line)
        if item_in.short < 0:
            raise ValidationError(f"Item {line}: Short quantity cannot be negative", line=line)
        total_quantity = item_in.received + item_in.short
        if item_in.total_quantity is not None and item_in.total_quantity != total_quantity:
            raise ValidationError(
                f"Item {line}: Total quantity {item_in.total_quantity} must equal "
                f"received ({item_in.received}) plus short ({item_in.short})",
                line=line,
            )
        return total_quantity

    def _correct_item(
        self,
        item: IncomingInventoryItem,
        rejected: Optional[int] = None,
        short: Optional[int] = None,
    ):
        """
        Apply new rejected/short values and move stock by the difference.
        More rejected units leave stock, fewer short units arrived into it.
        """
        new_rejected = item.rejected if rejected is None else rejected
        new_short = item.short if short is None else short

        if new_rejected < 0:
            raise ValidationError("Rejected quantity cannot be negative", item_id=item.id)
        if new_rejected > item.received:
            raise ValidationError("Rejected quantity cannot exceed received quantity", item_id=item.id)
        if new_short < 0:
            raise ValidationError("Short quantity cannot be negative", item_id=item.id)

        reported = self.reported_quantity(item.id)
        if new_rejected < reported:
            raise ValidationError(
                f"Rejected quantity cannot be lower than the {reported} units covered by rejected item reports",
                item_id=item.id,
            )

        arrived_short = max(0, item.initial_short - new_short)
        if item.received - new_rejected + arrived_short < 0:
            raise ValidationError("Available quantity cannot be negative", item_id=item.id)

        rejected_diff = new_rejected - item.rejected
        short_diff = new_short - item.short
        item.rejected = new_rejected
        item.short = new_short
        self.db.flush()

        if rejected_diff:
            self.ledger.apply(item.sku_id, -rejected_diff, "rejected_correction", ITEM_REFERENCE, item.id)
        if short_diff:
            self.ledger.apply(item.sku_id, -short_diff, "short_correction", ITEM_REFERENCE, item.id)

    def _apply_received(self, record: IncomingInventory, sign: int, reason: str):
        for item in record.items:
            if item.received:
                self.ledger.apply(item.sku_id, sign * item.received, reason, ITEM_REFERENCE, item.id)

    def _get_record(self, record_id: int, lock: bool = False) -> IncomingInventory:
        stmt = select(IncomingInventory).where(
            IncomingInventory.id == record_id,
            IncomingInventory.company_id == self.company_id,
            IncomingInventory.is_active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        record = self.db.execute(stmt).scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"Incoming inventory {record_id} not found", record_id=record_id)
        return record

    def _get_item(self, record: IncomingInventory, item_id: int) -> IncomingInventoryItem:
        """Load and lock an item so its before-values stay valid until commit"""
        stmt = (
            select(IncomingInventoryItem)
            .where(
                IncomingInventoryItem.id == item_id,
                IncomingInventoryItem.incoming_inventory_id == record.id,
            )
            .with_for_update()
        )
        item = self.db.execute(stmt).scalar_one_or_none()
        if item is None:
            raise NotFoundError(
                f"Item {item_id} not found on incoming inventory {record.id}",
                record_id=record.id, item_id=item_id,
            )
        return item

    def _filtered(self, filters: IncomingInventoryFilters):
        stmt = (
            select(IncomingInventory)
            .options(selectinload(IncomingInventory.items))
            .where(
                IncomingInventory.company_id == self.company_id,
                IncomingInventory.is_active.is_(True),
            )
        )
        if filters.date_from:
            stmt = stmt.where(IncomingInventory.receiving_date >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(IncomingInventory.receiving_date <= filters.date_to)
        if filters.vendor_id is not None:
            stmt = stmt.where(IncomingInventory.vendor_id == filters.vendor_id)
        if filters.status is not None:
            stmt = stmt.where(IncomingInventory.status == filters.status.value)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(or_(
                IncomingInventory.invoice_number.ilike(pattern),
                IncomingInventory.vendor_name.ilike(pattern),
                IncomingInventory.docket_number.ilike(pattern),
            ))
        return stmt

    def _paginate(self, stmt, limit: int, offset: int):
        total = self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.db.execute(
            stmt.order_by(IncomingInventory.receiving_date.desc(), IncomingInventory.id.desc())
            .limit(limit)
            .offset(offset)
        ).scalars()
        return list(rows), total

    def reported_quantity(self, item_id: int) -> int:
        """Units of an item's rejected count still tracked by active rejected reports"""
        stmt = select(
            func.coalesce(func.sum(RejectedItemReport.quantity - RejectedItemReport.received_back), 0)
        ).where(
            RejectedItemReport.company_id == self.company_id,
            RejectedItemReport.incoming_inventory_item_id == item_id,
            RejectedItemReport.is_active.is_(True),
        )
        return int(self.db.execute(stmt).scalar_one())
