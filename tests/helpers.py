"""
Test helpers
Payload builders and stock lookups shared by the test modules
"""

from datetime import date

from sqlalchemy.orm import Session

from stockledger.models.inventory import Sku
from stockledger.schemas.inventory import (
    IncomingInventoryCreate, IncomingItemCreate, OutgoingInventoryCreate, OutgoingItemCreate
)

COMPANY = "ACME"
OTHER_COMPANY = "GLOBEX"


def stock_of(db_session: Session, sku_id: int) -> int:
    db_session.expire_all()
    return db_session.get(Sku, sku_id).current_stock


def incoming_payload(items, status: str = "draft", invoice_number: str = "INV-1",
                     vendor_id: int = 7, vendor_name: str = "Acme Supplies",
                     receiving_date: date = date(2024, 3, 1)) -> IncomingInventoryCreate:
    return IncomingInventoryCreate(
        invoice_date=receiving_date,
        invoice_number=invoice_number,
        receiving_date=receiving_date,
        vendor_id=vendor_id,
        vendor_name=vendor_name,
        status=status,
        items=[IncomingItemCreate(**item) for item in items],
    )


def outgoing_payload(items, status: str = "completed", document_type: str = "delivery_challan",
                     document_sub_type: str = None, delivery_challan_sub_type: str = None) -> OutgoingInventoryCreate:
    return OutgoingInventoryCreate(
        document_type=document_type,
        document_sub_type=document_sub_type,
        delivery_challan_sub_type=delivery_challan_sub_type,
        invoice_challan_date=date(2024, 3, 5),
        invoice_challan_number="DC-1",
        destination_type="customer",
        destination_id=1,
        status=status,
        items=[OutgoingItemCreate(**item) for item in items],
    )
