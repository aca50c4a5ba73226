"""
Rejected Item Reports Service
Numbered reports tracking rejected units until they are resolved
"""
import re
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.database import unit_of_work
from stockledger.core.exceptions import NotFoundError, ValidationError
from stockledger.core.logging import get_logger
from stockledger.models.inventory import (
    REPORT_PENDING, STATUS_COMPLETED,
    IncomingInventory, IncomingInventoryItem, RejectedItemReport
)
from stockledger.schemas.inventory import (
    OutgoingInventoryCreate, OutgoingItemCreate,
    RejectedItemReportCreate, RejectedItemReportUpdate, ReportFilters
)
from stockledger.services.stock.incoming_inventory import IncomingInventoryService
from stockledger.services.stock.outgoing_inventory import OutgoingInventoryService

logger = get_logger("rejected_reports")

_TRAILING_SEQUENCE = re.compile(r"(\d+)$")


class RejectedItemReportService:
    """
    Rejected item reports

    Counter write-backs move physical stock through the incoming and
    outgoing processors, inside the same unit of work as the report update.
    """

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id
        self.incoming = IncomingInventoryService(db, company_id)
        self.outgoing = OutgoingInventoryService(db, company_id)

    def generate_report_number(self, invoice_number: str) -> str:
        """
        Next report number for an invoice: REJ/<invoice>/<seq>.
        Deleted reports count too, so numbers are never reused. Must run
        while the parent receipt row is locked.
        """
        stmt = select(RejectedItemReport.report_number).where(
            RejectedItemReport.company_id == self.company_id,
            RejectedItemReport.original_invoice_number == invoice_number,
        )
        highest = 0
        for report_number in self.db.execute(stmt).scalars():
            match = _TRAILING_SEQUENCE.search(report_number or "")
            if match:
                highest = max(highest, int(match.group(1)))

        sequence = str(highest + 1).zfill(settings.REPORT_SEQUENCE_PADDING)
        return f"{settings.REJECTED_REPORT_PREFIX}/{invoice_number}/{sequence}"

    def create(self, report_in: RejectedItemReportCreate) -> RejectedItemReport:
        """Open a report for units already rejected on a receipt item"""
        self._validate_reason(report_in.reason)

        with unit_of_work(
            self.db, "rejected_reports.create",
            record_id=report_in.incoming_inventory_id,
            item_id=report_in.incoming_inventory_item_id,
        ):
            record = self.incoming._get_record(report_in.incoming_inventory_id, lock=True)
            item = self.incoming._get_item(record, report_in.incoming_inventory_item_id)

            if report_in.quantity is None or report_in.quantity <= 0:
                raise ValidationError("Quantity must be greater than 0")
            if report_in.quantity > item.rejected:
                raise ValidationError(
                    f"Report quantity {report_in.quantity} exceeds rejected quantity {item.rejected}",
                    item_id=item.id,
                )
            unreported = item.rejected - self.incoming.reported_quantity(item.id)
            if report_in.quantity > unreported:
                raise ValidationError(
                    f"Report quantity {report_in.quantity} exceeds the {unreported} rejected units "
                    "not yet on a report",
                    item_id=item.id,
                )

            report = self._new_report(
                record, item, report_in.quantity, report_in.inspection_date, report_in.reason
            )

        return report

    def reject_from_receipt(
        self,
        record_id: int,
        item_id: int,
        quantity: int,
        inspection_date: Optional[date] = None,
        reason: Optional[str] = None,
    ) -> RejectedItemReport:
        """Reject received units and open a report for exactly those units"""
        self._validate_reason(reason)

        with unit_of_work(
            self.db, "rejected_reports.reject_from_receipt",
            record_id=record_id, item_id=item_id, quantity=quantity
        ):
            record = self.incoming._get_record(record_id, lock=True)
            self.incoming.move_received_to_rejected(record_id, item_id, quantity)
            item = self.incoming._get_item(record, item_id)
            report = self._new_report(record, item, quantity, inspection_date, reason)

        return report

    def update(self, report_id: int, update_in: RejectedItemReportUpdate) -> RejectedItemReport:
        """
        Update the sent-to-vendor, received-back and scrapped counters.

        received_back up returns units to stock, down rejects them again.
        sent_to_vendor up raises a completed replacement challan to the
        vendor, which is stock neutral. scrapped has no stock effect.
        """
        with unit_of_work(self.db, "rejected_reports.update", report_id=report_id):
            report = self._get_report(report_id, lock=True)

            sent = self._counter(update_in.sent_to_vendor, report.sent_to_vendor, "Sent to vendor")
            back = self._counter(update_in.received_back, report.received_back, "Received back")
            scrapped = self._counter(update_in.scrapped, report.scrapped, "Scrapped")
            if sent + back + scrapped > report.quantity:
                raise ValidationError(
                    f"Sent to vendor ({sent}), received back ({back}) and scrapped ({scrapped}) "
                    f"cannot exceed rejected quantity ({report.quantity})",
                    report_id=report_id,
                )

            back_diff = back - report.received_back
            if back_diff > 0:
                self.incoming.release_rejected(
                    report.incoming_inventory_id, report.incoming_inventory_item_id, back_diff
                )
            elif back_diff < 0:
                self.incoming.move_received_to_rejected(
                    report.incoming_inventory_id, report.incoming_inventory_item_id, -back_diff
                )

            sent_diff = sent - report.sent_to_vendor
            if sent_diff > 0:
                self._send_to_vendor(report, sent_diff)

            report.sent_to_vendor = sent
            report.received_back = back
            report.scrapped = scrapped
            report.net_rejected = max(0, report.quantity - sent - back - scrapped)

            if update_in.status is not None:
                if not update_in.status.strip():
                    raise ValidationError("Status cannot be empty", report_id=report_id)
                report.status = update_in.status.strip()
            if update_in.inspection_date is not None:
                report.inspection_date = update_in.inspection_date
            if update_in.reason is not None:
                self._validate_reason(update_in.reason)
                report.reason = update_in.reason
            self.db.flush()

        logger.info(
            f"Updated rejected report {report.report_number}: sent={sent} "
            f"back={back} scrapped={scrapped} net={report.net_rejected}"
        )
        return report

    def delete(self, report_id: int) -> RejectedItemReport:
        with unit_of_work(self.db, "rejected_reports.delete", report_id=report_id):
            report = self._get_report(report_id, lock=True)
            report.is_active = False
            self.db.flush()
        return report

    def get(self, report_id: int) -> RejectedItemReport:
        return self._get_report(report_id)

    def list(self, filters: ReportFilters) -> Tuple[List[RejectedItemReport], int]:
        stmt = select(RejectedItemReport).where(
            RejectedItemReport.company_id == self.company_id,
            RejectedItemReport.is_active.is_(True),
        )
        if filters.date_from:
            stmt = stmt.where(RejectedItemReport.inspection_date >= filters.date_from)
        if filters.date_to:
            stmt = stmt.where(RejectedItemReport.inspection_date <= filters.date_to)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(or_(
                RejectedItemReport.report_number.ilike(pattern),
                RejectedItemReport.original_invoice_number.ilike(pattern),
                RejectedItemReport.item_name.ilike(pattern),
            ))

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        rows = self.db.execute(
            stmt.order_by(RejectedItemReport.inspection_date.desc(), RejectedItemReport.id.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        ).scalars()
        return list(rows), total

    def _new_report(
        self,
        record: IncomingInventory,
        item: IncomingInventoryItem,
        quantity: int,
        inspection_date: Optional[date],
        reason: Optional[str],
    ) -> RejectedItemReport:
        report = RejectedItemReport(
            company_id=self.company_id,
            report_number=self.generate_report_number(record.invoice_number),
            original_invoice_number=record.invoice_number,
            incoming_inventory_id=record.id,
            incoming_inventory_item_id=item.id,
            sku_id=item.sku_id,
            item_name=item.item_name,
            quantity=quantity,
            sent_to_vendor=0,
            received_back=0,
            scrapped=0,
            net_rejected=quantity,
            status=REPORT_PENDING,
            reason=reason,
            inspection_date=inspection_date or date.today(),
        )
        self.db.add(report)
        self.db.flush()
        logger.info(f"Opened rejected report {report.report_number} for {quantity} units")
        return report

    def _send_to_vendor(self, report: RejectedItemReport, quantity: int):
        record = report.incoming
        if record.vendor_id is None:
            raise ValidationError(
                f"Receipt {record.invoice_number} has no vendor to return rejected items to",
                report_id=report.id,
            )
        item = self.incoming._get_item(record, report.incoming_inventory_item_id)
        self.outgoing.create(OutgoingInventoryCreate(
            document_type="delivery_challan",
            document_sub_type="replacement",
            delivery_challan_sub_type="to_vendor",
            invoice_challan_date=date.today(),
            invoice_challan_number=report.report_number,
            destination_type="vendor",
            destination_id=record.vendor_id,
            remarks=f"Rejected items returned against {report.report_number}",
            status=STATUS_COMPLETED,
            items=[OutgoingItemCreate(
                sku_id=report.sku_id,
                outgoing_quantity=quantity,
                unit_price=item.unit_price,
                gst_percentage=item.gst_percentage,
            )],
        ))

    def _get_report(self, report_id: int, lock: bool = False) -> RejectedItemReport:
        stmt = select(RejectedItemReport).where(
            RejectedItemReport.id == report_id,
            RejectedItemReport.company_id == self.company_id,
            RejectedItemReport.is_active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        report = self.db.execute(stmt).scalar_one_or_none()
        if report is None:
            raise NotFoundError(f"Rejected item report {report_id} not found", report_id=report_id)
        return report

    @staticmethod
    def _counter(new: Optional[int], current: int, label: str) -> int:
        value = current if new is None else new
        if value < 0:
            raise ValidationError(f"{label} cannot be negative")
        return value

    @staticmethod
    def _validate_reason(reason: Optional[str]):
        if reason is not None and len(reason) > settings.REJECTION_REASON_MAX_LENGTH:
            raise ValidationError(
                f"Reason cannot exceed {settings.REJECTION_REASON_MAX_LENGTH} characters"
            )
