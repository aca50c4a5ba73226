"""Stock ledger API endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from stockledger.api import deps
from stockledger.schemas.inventory import StockMovementResponse
from stockledger.services.stock import StockLedger

router = APIRouter()


@router.get("/{sku_id}/stock")
def get_stock(
    sku_id: int,
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    sku = StockLedger(db, company_id).get_sku(sku_id)
    return {"skuId": sku.id, "skuCode": sku.sku_code, "currentStock": sku.current_stock}


@router.get("/{sku_id}/movements", response_model=List[StockMovementResponse])
def list_stock_movements(
    sku_id: int,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(deps.get_db),
    company_id: str = Depends(deps.get_company_id),
):
    """Stock movement journal for a SKU, newest first"""
    return StockLedger(db, company_id).movements(sku_id, limit=limit, offset=offset)
