"""Sync logging package."""

from expense_app.audit.logger import SyncLogger

__all__ = ["SyncLogger"]
