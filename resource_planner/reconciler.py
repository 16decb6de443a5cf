from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .client import PlanningServiceClient, PlanningServiceError
from .models import Component, ProjectData, replace_component_in_data, with_week_changes
from .tracker import EMPTY_CHANGES, PendingChangeSet, PendingChangeTracker

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    CLEAN = "clean"
    PENDING = "pending"
    SUBMITTING = "submitting"


@dataclass
class ProjectState:
    """Locally displayed project data for the active period."""

    period_id: Optional[str] = None
    data: ProjectData = field(default_factory=ProjectData)


@dataclass(frozen=True)
class SubmitResult:
    component_id: str
    submitted: bool
    changes: PendingChangeSet = EMPTY_CHANGES
    error: Optional[str] = None
    refreshed: bool = False

    @property
    def ok(self) -> bool:
        return self.submitted and self.error is None


class AssignmentReconciler:
    """Commits staged week toggles optimistically and reconciles with the service.

    Local state is patched and the pending batch cleared before the request
    goes out. Every submit ends with a refetch of the active period, so the
    displayed state converges to whatever the service reports. Submits for the
    same component run one at a time.
    """

    def __init__(
        self,
        client: PlanningServiceClient,
        tracker: Optional[PendingChangeTracker] = None,
        state: Optional[ProjectState] = None,
    ) -> None:
        self.client = client
        self.tracker = tracker if tracker is not None else PendingChangeTracker()
        self.state = state if state is not None else ProjectState()
        self._lock = threading.RLock()
        self._component_locks: Dict[str, threading.Lock] = {}
        self._in_flight: Dict[str, int] = defaultdict(int)

    # Local state

    @property
    def data(self) -> ProjectData:
        with self._lock:
            return self.state.data

    def load(self, period_id: Optional[str], data: ProjectData) -> None:
        with self._lock:
            self.state.period_id = period_id
            self.state.data = data

    def toggle(self, component_id: str, week_index: int) -> PendingChangeSet:
        with self._lock:
            component = self.state.data.find_component(component_id)
            if component is None:
                raise ValueError(f"unknown component: {component_id}")
            if week_index >= len(component.assignments):
                raise ValueError(f"week index {week_index} is outside the planning horizon")
            return self.tracker.toggle(component_id, week_index, component.is_assigned(week_index))

    def discard(self, component_id: str) -> bool:
        with self._lock:
            return self.tracker.discard(component_id)

    def pending(self, component_id: str) -> PendingChangeSet:
        with self._lock:
            return self.tracker.get(component_id)

    def pending_all(self) -> Dict[str, PendingChangeSet]:
        with self._lock:
            return self.tracker.snapshot()

    def state_of(self, component_id: str) -> SyncState:
        with self._lock:
            if self._in_flight.get(component_id):
                return SyncState.SUBMITTING
            if self.tracker.has_pending(component_id):
                return SyncState.PENDING
            return SyncState.CLEAN

    def states(self) -> Dict[str, SyncState]:
        """Sync state of every component that is not clean."""
        with self._lock:
            ids = set(self.tracker.component_ids())
            ids.update(cid for cid, count in self._in_flight.items() if count)
        return {component_id: self.state_of(component_id) for component_id in sorted(ids)}

    # Remote

    def refresh(self) -> ProjectData:
        """Replace local project data with the service's view of the active period."""
        with self._lock:
            period_id = self.state.period_id
        if period_id is None:
            return self.data
        logger.debug("refreshing projects for period %s", period_id)
        data = self.client.get_projects(period_id)
        with self._lock:
            if self.state.period_id == period_id:
                self.state.data = data
        return data

    def submit(self, component_id: str, contributor_id: Optional[str]) -> SubmitResult:
        if not contributor_id:
            return SubmitResult(component_id=component_id, submitted=False)
        with self._component_lock(component_id):
            with self._lock:
                self._in_flight[component_id] += 1
            try:
                return self._submit_locked(component_id, contributor_id)
            finally:
                with self._lock:
                    self._in_flight[component_id] -= 1
                    if not self._in_flight[component_id]:
                        del self._in_flight[component_id]

    def _component_lock(self, component_id: str) -> threading.Lock:
        with self._lock:
            return self._component_locks.setdefault(component_id, threading.Lock())

    def _apply_optimistic(self, component_id: str, changes: PendingChangeSet) -> Optional[Component]:
        component = self.state.data.find_component(component_id)
        if component is None:
            return None
        patched = with_week_changes(component, changes.added, changes.removed)
        self.state.data = replace_component_in_data(self.state.data, patched)
        return patched

    def _submit_locked(self, component_id: str, contributor_id: str) -> SubmitResult:
        with self._lock:
            changes = self.tracker.pop(component_id)
            self._apply_optimistic(component_id, changes)
        try:
            self.client.submit_assignment(
                component_id, contributor_id, changes.added_weeks(), changes.removed_weeks()
            )
        except PlanningServiceError as exc:
            logger.error("error updating assignments for component %s: %s", component_id, exc.message)
            refreshed = self._rollback(component_id)
            return SubmitResult(
                component_id=component_id,
                submitted=False,
                changes=changes,
                error=exc.message,
                refreshed=refreshed,
            )
        try:
            self.refresh()
        except PlanningServiceError as exc:
            logger.error("error refreshing projects after submit: %s", exc.message)
            return SubmitResult(
                component_id=component_id,
                submitted=True,
                changes=changes,
                error="Failed to refresh projects",
            )
        return SubmitResult(component_id=component_id, submitted=True, changes=changes, refreshed=True)

    def _rollback(self, component_id: str) -> bool:
        try:
            self.refresh()
        except PlanningServiceError as exc:
            logger.error("rollback refresh failed for component %s: %s", component_id, exc.message)
            return False
        return True
