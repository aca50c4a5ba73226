"""Inventory API endpoints"""

from . import incoming, outgoing, reports, skus

__all__ = ["incoming", "outgoing", "reports", "skus"]
