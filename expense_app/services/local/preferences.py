"""
Persistent Preferences

A small JSON key/value file for state that must survive restarts but
does not belong to the synced collections:
- the pending category sort flag
- the selected theme
- whether amounts are hidden on the dashboard
"""

import json
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from expense_app.audit import SyncLogger
from expense_app.models.sync import SyncEventBuilder


PENDING_CATEGORY_SORT_KEY = "pending_category_sort"
THEME_KEY = "app_theme"
AMOUNT_HIDDEN_KEY = "amount_hidden"


class AppTheme(str, Enum):
    """Appearance setting."""
    SYSTEM = "System"
    LIGHT = "Light"
    DARK = "Dark"


DEFAULT_PREFERENCES: dict[str, Any] = {
    PENDING_CATEGORY_SORT_KEY: False,
    THEME_KEY: AppTheme.SYSTEM.value,
    AMOUNT_HIDDEN_KEY: False,
}


class PreferencesError(Exception):
    """The preferences file could not be written."""
    pass


class Preferences:
    """
    Write-through persistent key/value store.

    The file is read once on construction. Every change is written back
    immediately with an atomic replace.
    """

    def __init__(self, path: Path, logger: Optional[SyncLogger] = None):
        self._path = Path(path)
        self._logger = logger
        self._data = self._read()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        data = dict(DEFAULT_PREFERENCES)
        if not self._path.exists():
            return data
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                stored = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            if self._logger:
                self._logger.log(
                    SyncEventBuilder.preferences_load_failed(str(self._path), str(e))
                )
            return data
        if isinstance(stored, dict):
            data.update(stored)
        return data

    def _write(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", delete=False, dir=self._path.parent, encoding="utf-8"
            ) as tmp:
                json.dump(self._data, tmp, indent=2, sort_keys=True)
                tmp.flush()
            os.replace(tmp.name, self._path)
        except OSError as e:
            raise PreferencesError(f"Cannot write preferences file {self._path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """
        Change a value and write the whole file.

        The new value is kept in memory even if the write fails.

        Raises:
            PreferencesError: If the file cannot be written
        """
        self._data[key] = value
        self._write()

    # Pending category sort

    @property
    def pending_category_sort(self) -> bool:
        """True while a category order push has not been confirmed."""
        return bool(self._data.get(PENDING_CATEGORY_SORT_KEY, False))

    def set_pending_category_sort(self, pending: bool) -> None:
        self.set(PENDING_CATEGORY_SORT_KEY, bool(pending))

    # Settings

    @property
    def theme(self) -> AppTheme:
        try:
            return AppTheme(self._data.get(THEME_KEY))
        except ValueError:
            return AppTheme.SYSTEM

    def set_theme(self, theme: AppTheme) -> None:
        self.set(THEME_KEY, AppTheme(theme).value)

    @property
    def amount_hidden(self) -> bool:
        return bool(self._data.get(AMOUNT_HIDDEN_KEY, False))

    def set_amount_hidden(self, hidden: bool) -> None:
        self.set(AMOUNT_HIDDEN_KEY, bool(hidden))

    def toggle_amount_hidden(self) -> bool:
        """Flip the amount-hidden setting and return the new value."""
        hidden = not self.amount_hidden
        self.set_amount_hidden(hidden)
        return hidden
