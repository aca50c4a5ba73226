"""
Main API Router - Consolidates inventory routes
"""

from fastapi import APIRouter

from stockledger.api.v1 import stock

api_router = APIRouter()

api_router.include_router(stock.incoming.router, prefix="/inventory/incoming", tags=["incoming-inventory"])
api_router.include_router(stock.outgoing.router, prefix="/inventory/outgoing", tags=["outgoing-inventory"])
api_router.include_router(
    stock.reports.rejected_router, prefix="/inventory/rejected-item-reports", tags=["rejected-item-reports"]
)
api_router.include_router(
    stock.reports.short_router, prefix="/inventory/short-item-reports", tags=["short-item-reports"]
)
api_router.include_router(stock.skus.router, prefix="/inventory/skus", tags=["stock-ledger"])
