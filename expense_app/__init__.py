"""
Expense App - Source Package

Synchronization core for a personal finance tracker: wallets, assets,
categorized transactions, dashboard totals and settings, backed by a
remote Supabase table store with a local JSON cache for offline reads.

DESIGN PRINCIPLES:
1. The UI sees local changes immediately
2. The remote table store is the system of record
3. A failed remote call is rolled back locally, then a refresh follows
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense App Team"
