"""
Tests for Outgoing Inventory Service
"""

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from stockledger.models.inventory import OutgoingInventory
from stockledger.schemas.inventory import OutgoingInventoryFilters
from stockledger.services.stock.outgoing_inventory import OutgoingInventoryService

from tests.helpers import COMPANY, outgoing_payload, stock_of

REJECTED_RETURN = {
    "document_type": "delivery_challan",
    "document_sub_type": "replacement",
    "delivery_challan_sub_type": "to_vendor",
}


class TestOutgoingInventoryService:
    """Test suite for OutgoingInventoryService"""

    def test_completed_dispatch_withdraws(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=10)
        service = OutgoingInventoryService(db_session, COMPANY)

        record = service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 4}]))

        assert record.status == "completed"
        assert record.items[0].rejected_quantity == 0
        assert stock_of(db_session, sku.id) == 6

    def test_insufficient_stock_aborts_all_items(self, db_session: Session, make_sku):
        """The first item's withdrawal is undone when the second fails"""
        plenty = make_sku(current_stock=10)
        scarce = make_sku(current_stock=1)
        service = OutgoingInventoryService(db_session, COMPANY)

        with pytest.raises(InsufficientStockError) as exc_info:
            service.create(outgoing_payload([
                {"sku_id": plenty.id, "outgoing_quantity": 5},
                {"sku_id": scarce.id, "outgoing_quantity": 2},
            ]))

        assert exc_info.value.available == 1
        assert exc_info.value.requested == 2
        assert stock_of(db_session, plenty.id) == 10
        assert stock_of(db_session, scarce.id) == 1
        assert db_session.execute(select(OutgoingInventory)).first() is None

    def test_draft_dispatch_leaves_stock(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=3)
        service = OutgoingInventoryService(db_session, COMPANY)

        service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 30}], status="draft"))

        assert stock_of(db_session, sku.id) == 3

    def test_rejected_return_never_touches_stock(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=0)
        service = OutgoingInventoryService(db_session, COMPANY)

        record = service.create(outgoing_payload(
            [{"sku_id": sku.id, "outgoing_quantity": 4}], **REJECTED_RETURN
        ))

        assert record.is_rejected_return
        assert record.items[0].rejected_quantity == 4
        assert stock_of(db_session, sku.id) == 0

        service.delete(record.id)
        assert stock_of(db_session, sku.id) == 0

    def test_quantity_must_be_positive(self, db_session: Session, sku):
        service = OutgoingInventoryService(db_session, COMPANY)

        with pytest.raises(ValidationError, match="greater than 0"):
            service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 0}]))

    def test_items_required(self, db_session: Session):
        service = OutgoingInventoryService(db_session, COMPANY)

        with pytest.raises(ValidationError, match="At least one item"):
            service.create(outgoing_payload([]))

    def test_negative_unit_price_rejected(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=5)
        service = OutgoingInventoryService(db_session, COMPANY)

        with pytest.raises(ValidationError, match="Unit price cannot be negative"):
            service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 1, "unit_price": -1}]))

    def test_status_toggle(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=10)
        service = OutgoingInventoryService(db_session, COMPANY)
        record = service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 4}], status="draft"))

        service.update_status(record.id, "completed")
        assert stock_of(db_session, sku.id) == 6

        service.update_status(record.id, "draft")
        assert stock_of(db_session, sku.id) == 10

    def test_completing_without_stock_fails(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=1)
        service = OutgoingInventoryService(db_session, COMPANY)
        record = service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 4}], status="draft"))

        with pytest.raises(InsufficientStockError):
            service.update_status(record.id, "completed")

        assert service.get(record.id).status == "draft"
        assert stock_of(db_session, sku.id) == 1

    def test_delete_completed_restores_stock(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=10)
        service = OutgoingInventoryService(db_session, COMPANY)
        record = service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 7}]))

        service.delete(record.id)

        assert stock_of(db_session, sku.id) == 10
        with pytest.raises(NotFoundError):
            service.get(record.id)

    def test_list_and_history(self, db_session: Session, make_sku):
        sku = make_sku(current_stock=10)
        service = OutgoingInventoryService(db_session, COMPANY)
        service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 1}]))
        service.create(outgoing_payload([{"sku_id": sku.id, "outgoing_quantity": 1}], status="draft"))

        _, total = service.list(OutgoingInventoryFilters())
        assert total == 2

        records, total = service.history(OutgoingInventoryFilters())
        assert total == 1
        assert records[0].status == "completed"
