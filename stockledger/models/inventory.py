"""
Stock Ledger Inventory Models
SQLAlchemy models for SKUs, receipts, dispatches, price history and reports
"""
from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, ForeignKey, Index,
    Integer, Numeric, String, Text, UniqueConstraint, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockledger.core.database import Base

# Status and classification strings are stored verbatim
STATUS_DRAFT = "draft"
STATUS_COMPLETED = "completed"
RECORD_STATUSES = (STATUS_DRAFT, STATUS_COMPLETED)

PRICE_CURRENT = "current"
PRICE_PREVIOUS = "previous"
PRICE_LOWEST = "lowest"

REPORT_PENDING = "Pending"
REPORT_PARTIALLY_RECEIVED = "Partially Received"
REPORT_RECEIVED_BACK = "Received Back"


class Sku(Base):
    """
    Stock keeping unit

    current_stock is the stock-on-hand counter. Only the stock ledger
    writes to it.
    """
    __tablename__ = "skus"
    __table_args__ = (
        UniqueConstraint("company_id", "sku_code", name="uq_skus_company_sku_code"),
        CheckConstraint("current_stock >= 0", name="current_stock_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False, index=True, doc="Owning company")
    sku_code = Column(String(50), nullable=False, doc="SKU code")
    item_name = Column(String(255), nullable=False, default='', doc="Item name")
    unit_price = Column(Numeric(15, 2), default=0, doc="List unit price")
    current_stock = Column(Integer, nullable=False, default=0, doc="Stock on hand")
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Sku({self.company_id}/{self.sku_code}: {self.current_stock})>"


class IncomingInventory(Base):
    """
    Incoming inventory record

    One goods-received document (bill or delivery challan) with its items.
    """
    __tablename__ = "incoming_inventory"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'completed')", name="status_valid"),
        Index("idx_incoming_company_invoice", "company_id", "invoice_number"),
        Index("idx_incoming_company_receiving_date", "company_id", "receiving_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False, index=True)

    # Document identity
    invoice_date = Column(Date, nullable=False)
    invoice_number = Column(String(100), nullable=False)
    docket_number = Column(String(100))
    transportor_name = Column(String(255))
    document_type = Column(String(50), nullable=False, default='bill')
    document_sub_type = Column(String(50))
    vendor_sub_type = Column(String(50))
    delivery_challan_sub_type = Column(String(50))
    destination_type = Column(String(50))
    destination_id = Column(Integer)

    # Vendor
    vendor_id = Column(Integer)
    vendor_name = Column(String(255), doc="Vendor name at time of receipt")
    brand_id = Column(Integer)
    warranty = Column(Integer, default=0)
    warranty_unit = Column(String(20), default='months')

    # Receiving
    receiving_date = Column(Date, nullable=False)
    received_by = Column(String(255))
    remarks = Column(Text)

    status = Column(String(20), nullable=False, default=STATUS_DRAFT)
    total_value = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "IncomingInventoryItem",
        back_populates="incoming",
        cascade="all, delete-orphan",
        order_by="IncomingInventoryItem.id",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def total_quantity(self) -> int:
        return sum(item.total_quantity or 0 for item in self.items)

    @property
    def total_received(self) -> int:
        return sum(item.received or 0 for item in self.items)

    @property
    def total_short(self) -> int:
        return sum(item.short or 0 for item in self.items)

    @property
    def total_rejected(self) -> int:
        return sum(item.rejected or 0 for item in self.items)

    @property
    def history_status(self) -> str:
        """Completed receipts stay Pending until every short unit has arrived"""
        return "Pending" if self.total_short > 0 else "Complete"

    def __repr__(self):
        return f"<IncomingInventory({self.invoice_number}, {self.status})>"


class IncomingInventoryItem(Base):
    """
    Incoming inventory line

    total_quantity = received + short is fixed at creation, received is
    never edited afterwards. short and rejected move through corrections.
    """
    __tablename__ = "incoming_inventory_items"
    __table_args__ = (
        CheckConstraint("received >= 0", name="received_non_negative"),
        CheckConstraint("short >= 0", name="short_non_negative"),
        CheckConstraint("rejected >= 0", name="rejected_non_negative"),
        CheckConstraint("rejected <= received", name="rejected_within_received"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    incoming_inventory_id = Column(
        Integer, ForeignKey("incoming_inventory.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False, index=True)

    # Quantities
    total_quantity = Column(Integer, nullable=False, default=0, doc="Ordered quantity")
    received = Column(Integer, nullable=False, default=0)
    short = Column(Integer, nullable=False, default=0)
    rejected = Column(Integer, nullable=False, default=0)

    # Challan for short items arriving later
    challan_number = Column(String(100))
    challan_date = Column(Date)

    # Values
    unit_price = Column(Numeric(15, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_value_excl_gst = Column(Numeric(15, 2), nullable=False, default=0)
    total_value_incl_gst = Column(Numeric(15, 2), nullable=False, default=0)
    total_value = Column(Numeric(15, 2), nullable=False, default=0)

    number_of_boxes = Column(Integer, default=0)
    received_boxes = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    incoming = relationship("IncomingInventory", back_populates="items")
    sku = relationship("Sku")

    @property
    def initial_short(self) -> int:
        return (self.total_quantity or 0) - (self.received or 0)

    @property
    def arrived_short(self) -> int:
        """Short units that have turned up since the receipt was recorded"""
        return max(0, self.initial_short - (self.short or 0))

    @property
    def available(self) -> int:
        return (self.received or 0) - (self.rejected or 0) + self.arrived_short

    @property
    def sku_code(self):
        return self.sku.sku_code if self.sku is not None else None

    @property
    def item_name(self):
        return self.sku.item_name if self.sku is not None else None

    @property
    def invoice_number(self):
        return self.incoming.invoice_number

    @property
    def receiving_date(self):
        return self.incoming.receiving_date

    @property
    def vendor_name(self):
        return self.incoming.vendor_name


class OutgoingInventory(Base):
    """Outgoing inventory record (dispatch, invoice or delivery challan)"""
    __tablename__ = "outgoing_inventory"
    __table_args__ = (
        CheckConstraint("status IN ('draft', 'completed')", name="status_valid"),
        Index("idx_outgoing_company_date", "company_id", "invoice_challan_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False, index=True)

    document_type = Column(String(50), nullable=False)
    document_sub_type = Column(String(50))
    vendor_sub_type = Column(String(50))
    delivery_challan_sub_type = Column(String(50))
    invoice_challan_date = Column(Date, nullable=False)
    invoice_challan_number = Column(String(100))
    docket_number = Column(String(100))
    transportor_name = Column(String(255))
    destination_type = Column(String(50), nullable=False)
    destination_id = Column(Integer, nullable=False)
    dispatched_by = Column(String(255))
    remarks = Column(Text)

    status = Column(String(20), nullable=False, default=STATUS_DRAFT)
    total_value = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    items = relationship(
        "OutgoingInventoryItem",
        back_populates="outgoing",
        cascade="all, delete-orphan",
        order_by="OutgoingInventoryItem.id",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def is_rejected_return(self) -> bool:
        """Replacement challans sent back to a vendor never touch stock"""
        return is_rejected_return_document(
            self.document_type, self.document_sub_type, self.delivery_challan_sub_type
        )


class OutgoingInventoryItem(Base):
    """Outgoing inventory line"""
    __tablename__ = "outgoing_inventory_items"
    __table_args__ = (
        CheckConstraint("outgoing_quantity > 0", name="outgoing_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    outgoing_inventory_id = Column(
        Integer, ForeignKey("outgoing_inventory.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False, index=True)

    outgoing_quantity = Column(Integer, nullable=False)
    rejected_quantity = Column(Integer, nullable=False, default=0)

    unit_price = Column(Numeric(15, 2), nullable=False, default=0)
    gst_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    gst_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_value_excl_gst = Column(Numeric(15, 2), nullable=False, default=0)
    total_value_incl_gst = Column(Numeric(15, 2), nullable=False, default=0)
    total_value = Column(Numeric(15, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    outgoing = relationship("OutgoingInventory", back_populates="items")
    sku = relationship("Sku")

    @property
    def sku_code(self):
        return self.sku.sku_code if self.sku is not None else None


class PriceHistory(Base):
    """
    Price history slot

    At most one active row per (company, sku, type). Rotation deactivates
    the old row and flushes before inserting its replacement.
    """
    __tablename__ = "price_history"
    __table_args__ = (
        CheckConstraint("type IN ('current', 'previous', 'lowest')", name="type_valid"),
        Index(
            "uq_price_history_active_slot",
            "company_id", "sku_id", "type",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False, index=True)
    price = Column(Numeric(15, 2), nullable=False)
    vendor_id = Column(Integer)
    vendor_name = Column(String(255))
    buying_date = Column(Date)
    invoice_number = Column(String(100))
    invoice_id = Column(Integer, ForeignKey("incoming_inventory.id"))
    type = Column(String(20), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RejectedItemReport(Base):
    """
    Rejected item report

    Tracks what happened to rejected units: sent to the vendor, received
    back into stock or scrapped. net_rejected is what remains unresolved.
    """
    __tablename__ = "rejected_item_reports"
    __table_args__ = (
        UniqueConstraint("company_id", "report_number", name="uq_rejected_item_reports_company_number"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint(
            "sent_to_vendor >= 0 AND received_back >= 0 AND scrapped >= 0",
            name="counters_non_negative",
        ),
        CheckConstraint(
            "sent_to_vendor + received_back + scrapped <= quantity",
            name="counters_within_quantity",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False, index=True)
    report_number = Column(String(150), nullable=False)
    original_invoice_number = Column(String(100), nullable=False)
    incoming_inventory_id = Column(Integer, ForeignKey("incoming_inventory.id"), nullable=False, index=True)
    incoming_inventory_item_id = Column(Integer, ForeignKey("incoming_inventory_items.id"), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False)
    item_name = Column(String(255))

    quantity = Column(Integer, nullable=False)
    sent_to_vendor = Column(Integer, nullable=False, default=0)
    received_back = Column(Integer, nullable=False, default=0)
    scrapped = Column(Integer, nullable=False, default=0)
    net_rejected = Column(Integer, nullable=False, default=0)

    status = Column(String(50), nullable=False, default=REPORT_PENDING)
    reason = Column(String(30))
    inspection_date = Column(Date, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    incoming = relationship("IncomingInventory")
    sku = relationship("Sku")

    @property
    def sku_code(self):
        return self.sku.sku_code if self.sku is not None else None


class StockMovement(Base):
    """
    Stock movement journal

    One row per ledger mutation. applied_delta differs from
    requested_delta only when a decrement was clamped at zero.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("idx_stock_movements_sku", "company_id", "sku_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(50), nullable=False)
    sku_id = Column(Integer, ForeignKey("skus.id"), nullable=False)
    requested_delta = Column(Integer, nullable=False)
    applied_delta = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reason = Column(String(50), nullable=False)
    reference_type = Column(String(50))
    reference_id = Column(Integer)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


def is_rejected_return_document(document_type, document_sub_type, delivery_challan_sub_type) -> bool:
    return (
        document_type == "delivery_challan"
        and document_sub_type == "replacement"
        and delivery_challan_sub_type == "to_vendor"
    )
