"""Inventory Reconciliation Schemas"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from .common import CamelModel


class RecordStatus(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"


# Incoming Schemas
class IncomingItemCreate(CamelModel):
    sku_id: int
    received: int = 0
    short: int = 0
    total_quantity: Optional[int] = None
    unit_price: Decimal = Decimal("0")
    gst_percentage: Decimal = Decimal("0")
    gst_amount: Optional[Decimal] = None
    total_value_excl_gst: Optional[Decimal] = None
    total_value_incl_gst: Optional[Decimal] = None
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None
    number_of_boxes: int = 0
    received_boxes: int = 0


class IncomingInventoryCreate(CamelModel):
    invoice_date: date
    invoice_number: str
    receiving_date: date
    docket_number: Optional[str] = None
    transportor_name: Optional[str] = None
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    brand_id: Optional[int] = None
    warranty: int = 0
    warranty_unit: str = "months"
    received_by: Optional[str] = None
    remarks: Optional[str] = None
    document_type: str = "bill"
    document_sub_type: Optional[str] = None
    vendor_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    destination_type: Optional[str] = None
    destination_id: Optional[int] = None
    status: str = RecordStatus.DRAFT.value
    items: List[IncomingItemCreate] = Field(default_factory=list)

    @field_validator("invoice_number")
    @classmethod
    def strip_invoice_number(cls, v: str) -> str:
        return v.strip()


class StatusUpdate(CamelModel):
    status: str


class RejectedShortUpdate(CamelModel):
    item_id: int
    rejected: Optional[int] = None
    short: Optional[int] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None


class ShortItemUpdate(CamelModel):
    item_id: int
    short: Optional[int] = None
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None


class MoveShortToRejected(CamelModel):
    item_id: int
    quantity: Optional[int] = None


class MoveReceivedToRejected(CamelModel):
    item_id: int
    quantity: int
    inspection_date: Optional[date] = None
    reason: Optional[str] = None


class IncomingItemResponse(CamelModel):
    id: int
    sku_id: int
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    total_quantity: int
    received: int
    short: int
    rejected: int
    initial_short: int
    arrived_short: int
    available: int
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None
    unit_price: Decimal
    gst_percentage: Decimal
    gst_amount: Decimal
    total_value_excl_gst: Decimal
    total_value_incl_gst: Decimal
    total_value: Decimal
    number_of_boxes: Optional[int] = None
    received_boxes: Optional[int] = None


class IncomingInventoryResponse(CamelModel):
    id: int
    company_id: str
    invoice_date: date
    invoice_number: str
    receiving_date: date
    docket_number: Optional[str] = None
    transportor_name: Optional[str] = None
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    brand_id: Optional[int] = None
    warranty: Optional[int] = None
    warranty_unit: Optional[str] = None
    received_by: Optional[str] = None
    remarks: Optional[str] = None
    document_type: str
    document_sub_type: Optional[str] = None
    vendor_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    destination_type: Optional[str] = None
    destination_id: Optional[int] = None
    status: str
    total_value: Decimal
    total_received: int
    total_short: int
    total_rejected: int
    is_active: bool
    created_at: Optional[datetime] = None
    items: List[IncomingItemResponse] = []


class IncomingHistoryRow(CamelModel):
    id: int
    invoice_number: str
    invoice_date: date
    receiving_date: date
    vendor_name: Optional[str] = None
    total_value: Decimal
    total_quantity: int
    total_received: int
    total_short: int
    total_rejected: int
    history_status: str


class RejectedItemRow(CamelModel):
    id: int
    incoming_inventory_id: int
    invoice_number: str
    receiving_date: date
    vendor_name: Optional[str] = None
    sku_id: int
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    received: int
    rejected: int
    unit_price: Decimal


# Outgoing Schemas
class OutgoingItemCreate(CamelModel):
    sku_id: int
    outgoing_quantity: int
    unit_price: Decimal = Decimal("0")
    gst_percentage: Decimal = Decimal("0")
    gst_amount: Optional[Decimal] = None
    total_value_excl_gst: Optional[Decimal] = None
    total_value_incl_gst: Optional[Decimal] = None


class OutgoingInventoryCreate(CamelModel):
    document_type: str
    invoice_challan_date: date
    destination_type: str
    destination_id: int
    document_sub_type: Optional[str] = None
    vendor_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    invoice_challan_number: Optional[str] = None
    docket_number: Optional[str] = None
    transportor_name: Optional[str] = None
    dispatched_by: Optional[str] = None
    remarks: Optional[str] = None
    status: str = RecordStatus.DRAFT.value
    items: List[OutgoingItemCreate] = Field(default_factory=list)


class OutgoingItemResponse(CamelModel):
    id: int
    sku_id: int
    sku_code: Optional[str] = None
    outgoing_quantity: int
    rejected_quantity: int
    unit_price: Decimal
    gst_percentage: Decimal
    gst_amount: Decimal
    total_value_excl_gst: Decimal
    total_value_incl_gst: Decimal
    total_value: Decimal


class OutgoingInventoryResponse(CamelModel):
    id: int
    company_id: str
    document_type: str
    document_sub_type: Optional[str] = None
    vendor_sub_type: Optional[str] = None
    delivery_challan_sub_type: Optional[str] = None
    invoice_challan_date: date
    invoice_challan_number: Optional[str] = None
    docket_number: Optional[str] = None
    transportor_name: Optional[str] = None
    destination_type: str
    destination_id: int
    dispatched_by: Optional[str] = None
    remarks: Optional[str] = None
    status: str
    is_rejected_return: bool
    total_value: Decimal
    is_active: bool
    created_at: Optional[datetime] = None
    items: List[OutgoingItemResponse] = []


# Price History Schemas
class PriceSlot(CamelModel):
    price: Decimal
    vendor_id: Optional[int] = None
    vendor_name: Optional[str] = None
    buying_date: Optional[date] = None
    invoice_number: Optional[str] = None
    invoice_id: Optional[int] = None


class PriceHistorySlots(CamelModel):
    current: Optional[PriceSlot] = None
    previous: Optional[PriceSlot] = None
    lowest: Optional[PriceSlot] = None


class HasPriceHistoryResponse(CamelModel):
    sku_id: int
    has_history: bool


# Report Schemas
class RejectedItemReportCreate(CamelModel):
    incoming_inventory_id: int
    incoming_inventory_item_id: int
    quantity: int
    inspection_date: Optional[date] = None
    reason: Optional[str] = None


class RejectedItemReportUpdate(CamelModel):
    sent_to_vendor: Optional[int] = None
    received_back: Optional[int] = None
    scrapped: Optional[int] = None
    status: Optional[str] = None
    inspection_date: Optional[date] = None
    reason: Optional[str] = None


class RejectedItemReportResponse(CamelModel):
    id: int
    report_number: str
    original_invoice_number: str
    incoming_inventory_id: int
    incoming_inventory_item_id: int
    sku_id: int
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    quantity: int
    sent_to_vendor: int
    received_back: int
    scrapped: int
    net_rejected: int
    status: str
    reason: Optional[str] = None
    inspection_date: date
    is_active: bool


class ShortItemReportRow(CamelModel):
    id: int
    incoming_inventory_id: int
    invoice_number: str
    receiving_date: date
    vendor_name: Optional[str] = None
    sku_id: int
    sku_code: Optional[str] = None
    item_name: Optional[str] = None
    short_quantity: int
    received_back: int
    net_rejected: int
    challan_number: Optional[str] = None
    challan_date: Optional[date] = None
    status: str


class StockMovementResponse(CamelModel):
    id: int
    sku_id: int
    requested_delta: int
    applied_delta: int
    balance_after: int
    reason: str
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    created_at: Optional[datetime] = None


# Filters
class DateRangeFilters(CamelModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    limit: int = Field(100, ge=1, le=1000)
    offset: int = Field(0, ge=0)


class IncomingInventoryFilters(DateRangeFilters):
    vendor_id: Optional[int] = None
    status: Optional[RecordStatus] = None
    search: Optional[str] = None


class RejectedItemFilters(DateRangeFilters):
    vendor_id: Optional[int] = None
    brand_id: Optional[int] = None
    sku_id: Optional[int] = None


class OutgoingInventoryFilters(DateRangeFilters):
    status: Optional[RecordStatus] = None
    document_type: Optional[str] = None
    destination_type: Optional[str] = None
    search: Optional[str] = None


class ReportFilters(DateRangeFilters):
    search: Optional[str] = None
