"""Stock Ledger - inventory reconciliation service"""
