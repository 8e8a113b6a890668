"""
LedgerDesk

Flat-file train reservation desk and in-memory ATM account ledger,
with proper Decimal money handling and atomic file rewrites.
"""

__version__ = "1.0.0"
