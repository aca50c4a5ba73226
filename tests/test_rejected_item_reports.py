"""
Tests for Rejected Item Reports
Numbering, counter validation and stock write-backs
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.core.exceptions import NotFoundError, ValidationError
from stockledger.models.inventory import OutgoingInventory
from stockledger.schemas.inventory import (
    RejectedItemReportCreate, RejectedItemReportUpdate, ReportFilters
)
from stockledger.services.stock.incoming_inventory import IncomingInventoryService
from stockledger.services.stock.rejected_item_reports import RejectedItemReportService

from tests.helpers import COMPANY, OTHER_COMPANY, incoming_payload, stock_of


@pytest.fixture
def receipt(db_session: Session, sku):
    """Completed receipt of 10 units on invoice INV-1"""
    record = IncomingInventoryService(db_session, COMPANY).create(incoming_payload(
        [{"sku_id": sku.id, "received": 10, "unit_price": Decimal("25")}],
        status="completed",
    ))
    return record, record.items[0]


class TestReportNumbering:
    """Test suite for report number generation"""

    def test_sequential_numbers_per_invoice(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)

        first = service.reject_from_receipt(record.id, item.id, 2)
        second = service.reject_from_receipt(record.id, item.id, 1)

        assert first.report_number == "REJ/INV-1/001"
        assert second.report_number == "REJ/INV-1/002"

    def test_deleted_numbers_are_not_reused(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        service.reject_from_receipt(record.id, item.id, 1)
        second = service.reject_from_receipt(record.id, item.id, 1)

        service.delete(second.id)
        third = service.reject_from_receipt(record.id, item.id, 1)

        assert third.report_number == "REJ/INV-1/003"

    def test_each_invoice_has_its_own_sequence(self, db_session: Session, sku, receipt):
        record, item = receipt
        other = IncomingInventoryService(db_session, COMPANY).create(incoming_payload(
            [{"sku_id": sku.id, "received": 5}], status="completed", invoice_number="INV-2"
        ))
        service = RejectedItemReportService(db_session, COMPANY)
        service.reject_from_receipt(record.id, item.id, 1)

        report = service.reject_from_receipt(other.id, other.items[0].id, 1)

        assert report.report_number == "REJ/INV-2/001"

    def test_sequence_continues_past_padding(self, db_session: Session, receipt):
        service = RejectedItemReportService(db_session, COMPANY)
        record, item = receipt
        report = service.reject_from_receipt(record.id, item.id, 1)
        report.report_number = "REJ/INV-1/999"
        db_session.commit()

        assert service.generate_report_number("INV-1") == "REJ/INV-1/1000"


class TestRejectedReportLifecycle:
    """Test suite for report creation and write-backs"""

    def test_reject_from_receipt(self, db_session: Session, sku, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)

        report = service.reject_from_receipt(
            record.id, item.id, 3, inspection_date=date(2024, 3, 2), reason="Damaged in transit"
        )

        assert report.quantity == 3
        assert report.net_rejected == 3
        assert report.sent_to_vendor == report.received_back == report.scrapped == 0
        assert report.status == "Pending"
        assert report.original_invoice_number == "INV-1"
        assert report.item_name == "Widget"
        assert report.inspection_date == date(2024, 3, 2)
        assert stock_of(db_session, sku.id) == 7

    def test_failed_rejection_leaves_no_report(self, db_session: Session, sku, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)

        with pytest.raises(ValidationError):
            service.reject_from_receipt(record.id, item.id, 11)

        reports, total = service.list(ReportFilters())
        assert total == 0
        assert stock_of(db_session, sku.id) == 10

    def test_reason_length_limited(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)

        with pytest.raises(ValidationError, match="30 characters"):
            service.reject_from_receipt(record.id, item.id, 1, reason="x" * 31)

    def test_create_for_already_rejected_units(self, db_session: Session, sku, receipt):
        record, item = receipt
        IncomingInventoryService(db_session, COMPANY).move_received_to_rejected(record.id, item.id, 4)
        service = RejectedItemReportService(db_session, COMPANY)

        report = service.create(RejectedItemReportCreate(
            incoming_inventory_id=record.id, incoming_inventory_item_id=item.id, quantity=4
        ))

        assert report.report_number == "REJ/INV-1/001"
        assert report.inspection_date == date.today()
        assert stock_of(db_session, sku.id) == 6

    def test_create_cannot_exceed_rejected(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)

        with pytest.raises(ValidationError, match="exceeds rejected quantity"):
            service.create(RejectedItemReportCreate(
                incoming_inventory_id=record.id, incoming_inventory_item_id=item.id, quantity=1
            ))

    def test_counters_cannot_exceed_quantity(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 5)

        with pytest.raises(ValidationError, match="cannot exceed rejected quantity"):
            service.update(report.id, RejectedItemReportUpdate(sent_to_vendor=2, received_back=2, scrapped=2))

        with pytest.raises(ValidationError, match="cannot be negative"):
            service.update(report.id, RejectedItemReportUpdate(scrapped=-1))

    def test_received_back_returns_stock(self, db_session: Session, sku, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 5)
        assert stock_of(db_session, sku.id) == 5

        report = service.update(report.id, RejectedItemReportUpdate(received_back=3))

        assert report.net_rejected == 2
        assert stock_of(db_session, sku.id) == 8
        assert IncomingInventoryService(db_session, COMPANY).get(record.id).items[0].rejected == 2

        report = service.update(report.id, RejectedItemReportUpdate(received_back=1))

        assert report.net_rejected == 4
        assert stock_of(db_session, sku.id) == 6

    def test_sent_to_vendor_raises_replacement_challan(self, db_session: Session, sku, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 5)

        report = service.update(report.id, RejectedItemReportUpdate(sent_to_vendor=2, scrapped=1))

        assert report.net_rejected == 2
        assert stock_of(db_session, sku.id) == 5

        challan = db_session.execute(select(OutgoingInventory)).scalar_one()
        assert challan.is_rejected_return
        assert challan.status == "completed"
        assert challan.invoice_challan_number == report.report_number
        assert challan.destination_id == 7
        assert challan.items[0].outgoing_quantity == 2
        assert challan.items[0].rejected_quantity == 2

    def test_status_and_reason_update(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 1)

        report = service.update(report.id, RejectedItemReportUpdate(status="Closed", reason="Cracked"))

        assert report.status == "Closed"
        assert report.reason == "Cracked"

    def test_list_search_and_scope(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 1, inspection_date=date(2024, 3, 2))

        reports, total = service.list(ReportFilters(search="INV-1"))
        assert total == 1
        assert reports[0].id == report.id

        _, total = service.list(ReportFilters(date_from=date(2024, 4, 1)))
        assert total == 0

        with pytest.raises(NotFoundError):
            RejectedItemReportService(db_session, OTHER_COMPANY).get(report.id)


class TestReportCoverage:
    """Test suite for keeping reports within an item's rejected count"""

    def test_units_already_on_a_report_cannot_be_reported_again(self, db_session: Session, receipt):
        """A receipt rejection opens its own report, so the same units are covered"""
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        service.reject_from_receipt(record.id, item.id, 5)

        with pytest.raises(ValidationError, match="not yet on a report"):
            service.create(RejectedItemReportCreate(
                incoming_inventory_id=record.id, incoming_inventory_item_id=item.id, quantity=5
            ))

        _, total = service.list(ReportFilters())
        assert total == 1

    def test_unreported_units_can_still_be_reported(self, db_session: Session, receipt):
        record, item = receipt
        incoming = IncomingInventoryService(db_session, COMPANY)
        service = RejectedItemReportService(db_session, COMPANY)
        service.reject_from_receipt(record.id, item.id, 2)
        incoming.move_received_to_rejected(record.id, item.id, 3)

        report = service.create(RejectedItemReportCreate(
            incoming_inventory_id=record.id, incoming_inventory_item_id=item.id, quantity=3
        ))

        assert report.quantity == 3
        assert incoming.reported_quantity(item.id) == 5

    def test_units_received_back_leave_the_coverage(self, db_session: Session, receipt):
        record, item = receipt
        incoming = IncomingInventoryService(db_session, COMPANY)
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, item.id, 5)

        service.update(report.id, RejectedItemReportUpdate(received_back=3))

        assert incoming.reported_quantity(item.id) == 2
        assert incoming.get(record.id).items[0].rejected == 2

    def test_deleted_reports_free_their_units(self, db_session: Session, receipt):
        record, item = receipt
        service = RejectedItemReportService(db_session, COMPANY)
        first = service.reject_from_receipt(record.id, item.id, 4)
        service.delete(first.id)

        report = service.create(RejectedItemReportCreate(
            incoming_inventory_id=record.id, incoming_inventory_item_id=item.id, quantity=4
        ))

        assert report.report_number == "REJ/INV-1/002"

    def test_correction_cannot_drop_rejected_below_reports(self, db_session: Session, sku, receipt):
        """Lowering rejected under the reported units would leave reports for phantom units"""
        record, item = receipt
        incoming = IncomingInventoryService(db_session, COMPANY)
        RejectedItemReportService(db_session, COMPANY).reject_from_receipt(record.id, item.id, 4)
        assert stock_of(db_session, sku.id) == 6

        with pytest.raises(ValidationError, match="covered by rejected item reports"):
            incoming.update_rejected_short(record.id, item.id, rejected=2)

        assert stock_of(db_session, sku.id) == 6
        assert incoming.get(record.id).items[0].rejected == 4

    def test_correction_above_reports_is_allowed(self, db_session: Session, sku, receipt):
        record, item = receipt
        incoming = IncomingInventoryService(db_session, COMPANY)
        RejectedItemReportService(db_session, COMPANY).reject_from_receipt(record.id, item.id, 4)

        incoming.update_rejected_short(record.id, item.id, rejected=6)

        assert stock_of(db_session, sku.id) == 4
        assert incoming.get(record.id).items[0].rejected == 6


class TestReturnToVendor:
    """Test suite for sending rejected units back to the vendor"""

    def test_receipt_without_vendor_cannot_send_back(self, db_session: Session, sku):
        record = IncomingInventoryService(db_session, COMPANY).create(incoming_payload(
            [{"sku_id": sku.id, "received": 10, "unit_price": Decimal("25")}],
            status="completed", vendor_id=None, vendor_name=None,
        ))
        service = RejectedItemReportService(db_session, COMPANY)
        report = service.reject_from_receipt(record.id, record.items[0].id, 5)

        with pytest.raises(ValidationError, match="has no vendor to return rejected items to"):
            service.update(report.id, RejectedItemReportUpdate(sent_to_vendor=2))

        report = service.get(report.id)
        assert report.sent_to_vendor == 0
        assert report.net_rejected == 5
        assert stock_of(db_session, sku.id) == 5
        assert db_session.execute(select(OutgoingInventory)).first() is None
