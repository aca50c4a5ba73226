"""Stock ledger test suite"""
