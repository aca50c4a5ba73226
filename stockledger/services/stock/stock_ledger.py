"""
Stock Ledger Service
Owns the per-SKU stock-on-hand counter and its movement journal
"""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from stockledger.core.config import settings
from stockledger.core.exceptions import InsufficientStockError, NotFoundError
from stockledger.core.logging import get_logger
from stockledger.models.inventory import Sku, StockMovement

logger = get_logger("ledger")


class StockLedger:
    """
    Stock ledger for one company

    Every mutation locks the SKU row for the rest of the enclosing unit of
    work, so concurrent corrections against the same SKU serialize.
    Callers own the transaction. The ledger only flushes.
    """

    def __init__(self, db: Session, company_id: str):
        self.db = db
        self.company_id = company_id

    def get_sku(self, sku_id: int, lock: bool = False) -> Sku:
        stmt = select(Sku).where(Sku.id == sku_id, Sku.company_id == self.company_id)
        if lock:
            stmt = stmt.with_for_update()
        sku = self.db.execute(stmt).scalar_one_or_none()
        if sku is None:
            raise NotFoundError(f"SKU {sku_id} not found", sku_id=sku_id)
        return sku

    def current_stock(self, sku_id: int) -> int:
        return self.get_sku(sku_id).current_stock

    def apply(
        self,
        sku_id: int,
        delta: int,
        reason: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> int:
        """
        Add delta to stock on hand, flooring the result at zero.

        Returns the new balance. A decrement that would go below zero is
        clamped (and logged) unless STOCK_CLAMP_ON_UNDERFLOW is off, in
        which case InsufficientStockError is raised.
        """
        sku = self.get_sku(sku_id, lock=True)
        if delta == 0:
            return sku.current_stock

        before = sku.current_stock or 0
        after = before + delta
        if after < 0:
            if not settings.STOCK_CLAMP_ON_UNDERFLOW:
                raise InsufficientStockError(sku.sku_code, before, -delta)
            logger.warning(
                f"Clamped stock for SKU {sku.sku_code} ({self.company_id}): "
                f"{before} {delta:+d} floored at 0 [{reason} {reference_type}#{reference_id}]"
            )
            after = 0

        return self._write(sku, before, after, delta, reason, reference_type, reference_id)

    def withdraw(
        self,
        sku_id: int,
        quantity: int,
        reason: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
    ) -> int:
        """
        Strictly decrement stock for a dispatch.

        Raises InsufficientStockError when stock on hand is below quantity.
        """
        sku = self.get_sku(sku_id, lock=True)
        before = sku.current_stock or 0
        if before < quantity:
            raise InsufficientStockError(sku.sku_code, before, quantity)
        return self._write(sku, before, before - quantity, -quantity, reason, reference_type, reference_id)

    def movements(self, sku_id: int, limit: int = 100, offset: int = 0) -> List[StockMovement]:
        self.get_sku(sku_id)
        stmt = (
            select(StockMovement)
            .where(StockMovement.company_id == self.company_id, StockMovement.sku_id == sku_id)
            .order_by(StockMovement.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars())

    def _write(
        self,
        sku: Sku,
        before: int,
        after: int,
        requested: int,
        reason: str,
        reference_type: Optional[str],
        reference_id: Optional[int],
    ) -> int:
        sku.current_stock = after
        self.db.add(StockMovement(
            company_id=self.company_id,
            sku_id=sku.id,
            requested_delta=requested,
            applied_delta=after - before,
            balance_after=after,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        ))
        self.db.flush()
        logger.debug(
            f"SKU {sku.sku_code} ({self.company_id}): {before} -> {after} "
            f"[{reason} {reference_type}#{reference_id}]"
        )
        return after
