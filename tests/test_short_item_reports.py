"""
Tests for Short Item Reports
"""

from datetime import date

import pytest
from sqlalchemy.orm import Session

from stockledger.core.exceptions import NotFoundError
from stockledger.schemas.inventory import ReportFilters
from stockledger.services.stock.incoming_inventory import IncomingInventoryService
from stockledger.services.stock.short_item_reports import ShortItemReportService

from tests.helpers import COMPANY, incoming_payload


class TestShortItemReportService:
    """Test suite for ShortItemReportService"""

    def test_rows_follow_short_arrivals(self, db_session: Session, make_sku):
        sku_a = make_sku(item_name="Bolt")
        sku_b = make_sku(item_name="Nut")
        incoming = IncomingInventoryService(db_session, COMPANY)
        record = incoming.create(incoming_payload([
            {"sku_id": sku_a.id, "received": 6, "short": 4},
            {"sku_id": sku_b.id, "received": 10},
        ], status="completed"))
        item = record.items[0]
        reports = ShortItemReportService(db_session, COMPANY)

        rows, total = reports.list(ReportFilters())
        assert total == 1
        row = rows[0]
        assert row["item_name"] == "Bolt"
        assert row["short_quantity"] == 4
        assert row["received_back"] == 0
        assert row["net_rejected"] == 4
        assert row["status"] == "Pending"

        incoming.update_short_item(record.id, item.id, short=1, challan_number="CH-1")
        row = reports.get(item.id)
        assert row["received_back"] == 3
        assert row["net_rejected"] == 1
        assert row["challan_number"] == "CH-1"
        assert row["status"] == "Partially Received"

        incoming.update_short_item(record.id, item.id, short=0)
        row = reports.get(item.id)
        assert row["received_back"] == 4
        assert row["status"] == "Received Back"

    def test_items_without_short_have_no_report(self, db_session: Session, sku):
        record = IncomingInventoryService(db_session, COMPANY).create(incoming_payload(
            [{"sku_id": sku.id, "received": 5}], status="completed"
        ))

        with pytest.raises(NotFoundError):
            ShortItemReportService(db_session, COMPANY).get(record.items[0].id)

    def test_search_and_date_filters(self, db_session: Session, make_sku):
        sku = make_sku(item_name="Hinge")
        incoming = IncomingInventoryService(db_session, COMPANY)
        incoming.create(incoming_payload(
            [{"sku_id": sku.id, "received": 1, "short": 1}],
            invoice_number="INV-OLD", receiving_date=date(2024, 1, 5),
        ))
        incoming.create(incoming_payload(
            [{"sku_id": sku.id, "received": 1, "short": 2}],
            invoice_number="INV-NEW", receiving_date=date(2024, 5, 5),
        ))
        reports = ShortItemReportService(db_session, COMPANY)

        rows, total = reports.list(ReportFilters(date_from=date(2024, 5, 1)))
        assert total == 1
        assert rows[0]["invoice_number"] == "INV-NEW"

        rows, total = reports.list(ReportFilters(search="hinge"))
        assert total == 2

        rows, total = reports.list(ReportFilters(search="INV-OLD"))
        assert [r["short_quantity"] for r in rows] == [1]
