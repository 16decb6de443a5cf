from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Set

from .models import Period

logger = logging.getLogger(__name__)

FORM_TYPES = ("period", "project", "contributor")
ACTIVE_TABS = ("form", "view")
VIEW_TABS = ("projects", "engineers")


class KeyValueStorage(Protocol):
    """String-keyed persistence for UI preferences."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStorage:
    """Key-value pairs kept in one JSON object on disk, rewritten on every change."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._values = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("ignoring unreadable preference file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.error("ignoring preference file %s: expected a JSON object", self.path)
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._values, f, indent=2)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            self._write()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is not None:
                self._write()


class Preferences:
    """Selected tabs, period and expanded projects, restored across sessions."""

    FORM_TYPE_KEY = "formType"
    ACTIVE_TAB_KEY = "activeTab"
    VIEW_TAB_KEY = "activeViewTab"
    PERIOD_KEY = "selectedPeriod"
    EXPANDED_KEY = "expandedProjects"

    def __init__(self, storage: KeyValueStorage) -> None:
        self.storage = storage
        self.expanded: Set[str] = set()

    def _choice(self, key: str, allowed: Sequence[str]) -> str:
        value = self.storage.get(key)
        return value if value in allowed else allowed[0]

    def _set_choice(self, key: str, value: str, allowed: Sequence[str]) -> None:
        if value not in allowed:
            raise ValueError(f"{key} must be one of: {', '.join(allowed)}")
        self.storage.set(key, value)

    @property
    def form_type(self) -> str:
        return self._choice(self.FORM_TYPE_KEY, FORM_TYPES)

    @form_type.setter
    def form_type(self, value: str) -> None:
        self._set_choice(self.FORM_TYPE_KEY, value, FORM_TYPES)

    @property
    def active_tab(self) -> str:
        return self._choice(self.ACTIVE_TAB_KEY, ACTIVE_TABS)

    @active_tab.setter
    def active_tab(self, value: str) -> None:
        self._set_choice(self.ACTIVE_TAB_KEY, value, ACTIVE_TABS)

    @property
    def active_view_tab(self) -> str:
        return self._choice(self.VIEW_TAB_KEY, VIEW_TABS)

    @active_view_tab.setter
    def active_view_tab(self, value: str) -> None:
        self._set_choice(self.VIEW_TAB_KEY, value, VIEW_TABS)

    @property
    def selected_period(self) -> Optional[str]:
        return self.storage.get(self.PERIOD_KEY)

    def select_period(self, period_id: str) -> None:
        self.storage.set(self.PERIOD_KEY, period_id)

    def restore_period(self, periods: Sequence[Period]) -> Optional[str]:
        """Saved period if it still exists, else the first period (persisted), else None."""
        saved = self.selected_period
        if saved and any(period.period_id == saved for period in periods):
            return saved
        if periods:
            first = periods[0].period_id
            self.select_period(first)
            return first
        return None

    def restore_expanded(self, project_ids: Iterable[str]) -> Set[str]:
        all_ids = [str(project_id) for project_id in project_ids]
        saved = self.storage.get(self.EXPANDED_KEY)
        parsed: List[str] = []
        if saved:
            try:
                loaded = json.loads(saved)
            except json.JSONDecodeError as exc:
                logger.error("error loading expanded projects: %s", exc)
                loaded = []
            if isinstance(loaded, list):
                parsed = [str(item) for item in loaded]
        if parsed:
            self.expanded = set(parsed)
        else:
            self.expanded = set(all_ids)
            self._save_expanded(all_ids)
        return set(self.expanded)

    def toggle_expanded(self, project_id: str) -> bool:
        if project_id in self.expanded:
            self.expanded.discard(project_id)
        else:
            self.expanded.add(project_id)
        self._save_expanded(sorted(self.expanded))
        return project_id in self.expanded

    def is_expanded(self, project_id: str) -> bool:
        return project_id in self.expanded

    def _save_expanded(self, project_ids: Iterable[str]) -> None:
        self.storage.set(self.EXPANDED_KEY, json.dumps(list(project_ids)))
