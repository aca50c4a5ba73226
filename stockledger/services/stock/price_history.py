"""
Price History Service
Maintains the current/previous/lowest purchase price slots per SKU
"""
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.core.logging import get_logger
from stockledger.models.inventory import (
    PRICE_CURRENT, PRICE_LOWEST, PRICE_PREVIOUS,
    IncomingInventory, PriceHistory
)

logger = get_logger("price_history")


class PriceHistoryService:
    """
    Price slot rotation

    Runs inside the unit of work that completes a receipt. Each slot is
    replaced by deactivating the active row, flushing, then inserting the
    successor, so the one-active-row-per-slot index never sees two.
    """

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id

    def update_price_history(self, record: IncomingInventory) -> int:
        """
        Rotate price slots for every priced item of a completed receipt
        Returns number of items that rotated
        """
        rotated = 0
        for item in record.items:
            price = Decimal(item.unit_price or 0)
            if price <= 0:
                continue
            self._rotate(
                sku_id=item.sku_id,
                price=price,
                vendor_id=record.vendor_id,
                vendor_name=record.vendor_name,
                buying_date=record.receiving_date,
                invoice_number=record.invoice_number,
                invoice_id=record.id,
            )
            rotated += 1
        return rotated

    def get_price_history(self, sku_id: int) -> Dict[str, Optional[PriceHistory]]:
        return {
            PRICE_CURRENT: self._active(sku_id, PRICE_CURRENT),
            PRICE_PREVIOUS: self._active(sku_id, PRICE_PREVIOUS),
            PRICE_LOWEST: self._active(sku_id, PRICE_LOWEST),
        }

    def has_price_history(self, sku_id: int) -> bool:
        return self._active(sku_id, PRICE_CURRENT) is not None

    def _rotate(
        self,
        sku_id: int,
        price: Decimal,
        vendor_id: Optional[int],
        vendor_name: Optional[str],
        buying_date,
        invoice_number: Optional[str],
        invoice_id: Optional[int],
    ):
        current = self._active(sku_id, PRICE_CURRENT, lock=True)
        if current is not None:
            current.is_active = False
            if not self._has_matching_previous(sku_id, current.price, current.vendor_id):
                previous = self._active(sku_id, PRICE_PREVIOUS, lock=True)
                if previous is not None:
                    previous.is_active = False
                self.db.flush()
                self.db.add(PriceHistory(
                    company_id=self.company_id,
                    sku_id=sku_id,
                    price=current.price,
                    vendor_id=current.vendor_id,
                    vendor_name=current.vendor_name,
                    buying_date=current.buying_date,
                    invoice_number=current.invoice_number,
                    invoice_id=current.invoice_id,
                    type=PRICE_PREVIOUS,
                    is_active=True,
                ))
            self.db.flush()

        new_slot = dict(
            company_id=self.company_id,
            sku_id=sku_id,
            price=price,
            vendor_id=vendor_id,
            vendor_name=vendor_name,
            buying_date=buying_date,
            invoice_number=invoice_number,
            invoice_id=invoice_id,
            is_active=True,
        )
        self.db.add(PriceHistory(type=PRICE_CURRENT, **new_slot))

        lowest = self._active(sku_id, PRICE_LOWEST, lock=True)
        if lowest is None or price < Decimal(lowest.price):
            if lowest is not None:
                lowest.is_active = False
                self.db.flush()
            self.db.add(PriceHistory(type=PRICE_LOWEST, **new_slot))

        self.db.flush()
        logger.debug(f"Rotated price slots for SKU {sku_id} ({self.company_id}) at {price}")

    def _active(self, sku_id: int, slot: str, lock: bool = False) -> Optional[PriceHistory]:
        stmt = select(PriceHistory).where(
            PriceHistory.company_id == self.company_id,
            PriceHistory.sku_id == sku_id,
            PriceHistory.type == slot,
            PriceHistory.is_active.is_(True),
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalars().first()

    def _has_matching_previous(self, sku_id: int, price, vendor_id: Optional[int]) -> bool:
        vendor_clause = (
            PriceHistory.vendor_id.is_(None) if vendor_id is None
            else PriceHistory.vendor_id == vendor_id
        )
        stmt = select(PriceHistory.id).where(
            PriceHistory.company_id == self.company_id,
            PriceHistory.sku_id == sku_id,
            PriceHistory.type == PRICE_PREVIOUS,
            PriceHistory.is_active.is_(True),
            PriceHistory.price == price,
            vendor_clause,
        )
        return self.db.execute(stmt).first() is not None
