"""
Sync Event Models for Expense App

Every significant step of the synchronization layer is recorded as a
SyncEvent. This provides:
1. A log channel for remote and cache failures (which never reach the UI)
2. Debugging information when local and remote state drift
3. A way for tests to check that a failure was reported

DESIGN DECISION: Events are plain records. They are logged locally and
kept in a bounded in-memory list; they are never written to the remote
store.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class SyncEventType(str, Enum):
    """Types of events the store reports."""
    # Local cache
    CACHE_LOADED = "cache_loaded"
    CACHE_LOAD_FAILED = "cache_load_failed"
    CACHE_SAVED = "cache_saved"
    CACHE_SAVE_FAILED = "cache_save_failed"

    # Refresh
    REFRESH_COMPLETED = "refresh_completed"
    REFRESH_FAILED = "refresh_failed"
    ROW_SKIPPED = "row_skipped"

    # Mutations
    MUTATION_APPLIED = "mutation_applied"
    MUTATION_ROLLED_BACK = "mutation_rolled_back"
    REMOTE_CALL_FAILED = "remote_call_failed"

    # Category ordering
    CATEGORY_SORT_PUSHED = "category_sort_pushed"
    CATEGORY_SORT_PUSH_FAILED = "category_sort_push_failed"
    CATEGORY_SORT_MERGED = "category_sort_merged"

    # Preferences
    PREFERENCES_LOAD_FAILED = "preferences_load_failed"
    PREFERENCES_SAVE_FAILED = "preferences_save_failed"


class SyncSeverity(str, Enum):
    """Severity level for sync events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class SyncEvent(BaseModel):
    """A single sync event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    event_type: SyncEventType
    severity: SyncSeverity = SyncSeverity.INFO

    # What the event is about, e.g. ("wallets", "7") or ("categories", None)
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class SyncEventBuilder:
    """
    Helper class to build sync events with common patterns.

    Usage:
        event = SyncEventBuilder.refresh_failed("wallets", str(exc))
        event = SyncEventBuilder.remote_call_failed("add_transaction", str(exc))
    """

    @staticmethod
    def cache_loaded(path: str, counts: dict[str, int]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_LOADED,
            description=f"Loaded cache from {path}",
            details={"path": path, "counts": counts},
        )

    @staticmethod
    def cache_load_failed(path: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_LOAD_FAILED,
            severity=SyncSeverity.WARNING,
            description="Could not load cache, starting empty",
            details={"path": path},
            error_message=error_message,
        )

    @staticmethod
    def cache_saved(path: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_SAVED,
            severity=SyncSeverity.DEBUG,
            description=f"Saved cache to {path}",
            details={"path": path},
        )

    @staticmethod
    def cache_save_failed(path: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CACHE_SAVE_FAILED,
            severity=SyncSeverity.ERROR,
            description="Could not save cache",
            details={"path": path},
            error_message=error_message,
        )

    @staticmethod
    def refresh_completed(counts: dict[str, int], failed: list[str]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REFRESH_COMPLETED,
            severity=SyncSeverity.WARNING if failed else SyncSeverity.INFO,
            description=(
                f"Refresh completed with {len(failed)} failed collections"
                if failed
                else "Refresh completed"
            ),
            details={"counts": counts, "failed": failed},
        )

    @staticmethod
    def refresh_failed(table: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REFRESH_FAILED,
            severity=SyncSeverity.ERROR,
            entity_type=table,
            description=f"Fetching {table} failed, keeping local copy",
            error_message=error_message,
        )

    @staticmethod
    def row_skipped(table: str, row_id: Optional[str], error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.ROW_SKIPPED,
            severity=SyncSeverity.WARNING,
            entity_type=table,
            entity_id=row_id,
            description=f"Skipped malformed row in {table}",
            error_message=error_message,
        )

    @staticmethod
    def mutation_applied(operation: str, entity_type: str, entity_id: Optional[str]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.MUTATION_APPLIED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{operation} synced",
            details={"operation": operation},
        )

    @staticmethod
    def mutation_rolled_back(operation: str, entity_type: str, entity_id: Optional[str]) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.MUTATION_ROLLED_BACK,
            severity=SyncSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{operation} rolled back locally",
            details={"operation": operation},
        )

    @staticmethod
    def remote_call_failed(
        operation: str,
        error_message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.REMOTE_CALL_FAILED,
            severity=SyncSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Remote call failed during {operation}",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def category_sort_pushed(count: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CATEGORY_SORT_PUSHED,
            entity_type="categories",
            description=f"Pushed order of {count} categories",
            details={"count": count},
        )

    @staticmethod
    def category_sort_push_failed(error_message: str, attempts: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CATEGORY_SORT_PUSH_FAILED,
            severity=SyncSeverity.ERROR,
            entity_type="categories",
            description="Category order push failed, flag stays pending",
            details={"attempts": attempts},
            error_message=error_message,
        )

    @staticmethod
    def category_sort_merged(kept: int, appended: int) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.CATEGORY_SORT_MERGED,
            entity_type="categories",
            description="Kept local category order over server order",
            details={"kept": kept, "appended": appended},
        )

    @staticmethod
    def preferences_load_failed(path: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PREFERENCES_LOAD_FAILED,
            severity=SyncSeverity.WARNING,
            description="Could not read preferences, using defaults",
            details={"path": path},
            error_message=error_message,
        )

    @staticmethod
    def preferences_save_failed(path: str, key: str, error_message: str) -> SyncEvent:
        return SyncEvent(
            event_type=SyncEventType.PREFERENCES_SAVE_FAILED,
            severity=SyncSeverity.ERROR,
            description=f"Could not save preference {key}, keeping it in memory",
            details={"path": path, "key": key},
            error_message=error_message,
        )
