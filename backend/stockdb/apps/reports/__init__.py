"""
Read-only dashboard figures derived from items and the ledger.
"""
