"""Stock ledger and inventory reconciliation services"""
from .incoming_inventory import IncomingInventoryService
from .outgoing_inventory import OutgoingInventoryService
from .price_history import PriceHistoryService
from .rejected_item_reports import RejectedItemReportService
from .short_item_reports import ShortItemReportService
from .stock_ledger import StockLedger

__all__ = [
    "IncomingInventoryService",
    "OutgoingInventoryService",
    "PriceHistoryService",
    "RejectedItemReportService",
    "ShortItemReportService",
    "StockLedger",
]
