"""
Sync Logger

DESIGN DECISION: Remote failures never reach the end user. They are
answered by a rollback and a refresh, so the log is the only place
where they become visible. Every such step is logged here.

The sync logger:
- Writes structured JSON logs through structlog
- Keeps a bounded list of recent events for diagnostics screens and tests
- Never raises
"""

from collections import deque
from typing import Optional

import structlog

from expense_app.models.sync import SyncEvent, SyncSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class SyncLogger:
    """
    Central log channel of the Entity Store.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory ring of recent events
    """

    def __init__(self, recent_limit: int = 200, name: Optional[str] = None):
        self._logger = structlog.get_logger(name or "expense_app.sync")
        self._recent: deque[SyncEvent] = deque(maxlen=recent_limit)

    def log(self, event: SyncEvent) -> None:
        """Log a sync event locally and remember it."""
        log_dict = event.to_log_dict()

        if event.severity == SyncSeverity.ERROR:
            self._logger.error("sync_event", **log_dict)
        elif event.severity == SyncSeverity.WARNING:
            self._logger.warning("sync_event", **log_dict)
        elif event.severity == SyncSeverity.DEBUG:
            self._logger.debug("sync_event", **log_dict)
        else:
            self._logger.info("sync_event", **log_dict)

        self._recent.append(event)

    @property
    def recent_events(self) -> list[SyncEvent]:
        """Most recent events, oldest first."""
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()
