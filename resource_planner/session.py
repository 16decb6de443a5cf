from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from . import projection
from .client import PlanningServiceClient, PlanningServiceError
from .config import ClientConfig
from .models import Contributor, Period, ProjectData
from .reconciler import AssignmentReconciler, SubmitResult
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage, Preferences
from .tracker import PendingChangeSet

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"


class PlanningSession:
    """Everything one planner UI works against: service data, staged edits and preferences.

    Actions never raise for service or validation failures. They record a
    user-visible message in ``error`` (and ``success_message`` for creates) and
    return a falsy value, so the caller can simply re-render.
    """

    def __init__(
        self,
        client: PlanningServiceClient,
        preferences: Optional[Preferences] = None,
        week_count: int = 12,
        planning_start: Optional[date] = None,
    ) -> None:
        self.client = client
        self.preferences = preferences or Preferences(InMemoryStorage())
        self.reconciler = AssignmentReconciler(client)
        self.week_count = week_count
        self.planning_start = planning_start
        self.periods: List[Period] = []
        self.skills: Dict[str, str] = {}
        self.contributors_by_skill: Dict[str, List[Contributor]] = {}
        self.error: Optional[str] = None
        self.success_message = ""

    @classmethod
    def from_config(
        cls, config: ClientConfig, storage: Optional[KeyValueStorage] = None
    ) -> "PlanningSession":
        if storage is None:
            storage = JsonFileStorage(config.storage_path) if config.storage_path else InMemoryStorage()
        client = PlanningServiceClient(config.backend_url, timeout_seconds=config.timeout_seconds)
        return cls(
            client,
            Preferences(storage),
            week_count=config.week_count,
            planning_start=config.planning_start,
        )

    def close(self) -> None:
        self.client.close()

    # Loading

    @property
    def period_id(self) -> Optional[str]:
        return self.reconciler.state.period_id

    @property
    def project_data(self) -> ProjectData:
        return self.reconciler.data

    def load(self) -> bool:
        """Fetch periods and skills, restore the saved period and load its projects."""
        self.error = None
        try:
            self.periods = self.client.list_periods()
            self.skills = {skill.skill_id: skill.name for skill in self.client.list_skills()}
        except PlanningServiceError as exc:
            self.error = exc.message
            return False
        period_id = self.preferences.restore_period(self.periods)
        if period_id is None:
            self.reconciler.load(None, ProjectData())
            return True
        return self._load_period(period_id)

    def select_period(self, period_id: str) -> bool:
        self.error = None
        self.preferences.select_period(period_id)
        return self._load_period(period_id)

    def _load_period(self, period_id: str) -> bool:
        try:
            data = self.client.get_projects(period_id)
        except PlanningServiceError as exc:
            logger.error("error fetching projects for period %s: %s", period_id, exc.message)
            self.error = exc.message
            return False
        self.reconciler.load(period_id, data)
        self.preferences.restore_expanded(data.project_ids())
        self._load_contributors(data)
        return True

    def _load_contributors(self, data: ProjectData) -> None:
        for skill_id in data.skill_ids():
            if skill_id in self.contributors_by_skill:
                continue
            try:
                self.contributors_by_skill[skill_id] = self.client.get_contributors_by_skill(skill_id)
            except PlanningServiceError as exc:
                logger.error("error fetching contributors for skill %s: %s", skill_id, exc.message)
                self.error = "Failed to load contributors"

    def refresh(self) -> bool:
        self.error = None
        try:
            data = self.reconciler.refresh()
        except PlanningServiceError as exc:
            self.error = exc.message
            return False
        self._load_contributors(data)
        return True

    # Staged assignment edits

    def toggle_cell(self, component_id: str, week_index: int) -> Optional[PendingChangeSet]:
        try:
            return self.reconciler.toggle(component_id, week_index)
        except ValueError as exc:
            self.error = str(exc)
            return None

    def submit_pending(self, component_id: str) -> SubmitResult:
        """Submit the staged batch without touching ``error``, for callers that report results themselves."""
        component = self.project_data.find_component(component_id)
        contributor_id = component.contributor_id if component else None
        return self.reconciler.submit(component_id, contributor_id)

    def submit(self, component_id: str) -> SubmitResult:
        self.error = None
        result = self.submit_pending(component_id)
        if result.error:
            self.error = result.error
        return result

    def discard(self, component_id: str) -> bool:
        return self.reconciler.discard(component_id)

    # Component and project edits

    def _mutate(self, action: Callable[[], None]) -> bool:
        self.error = None
        try:
            action()
            data = self.reconciler.refresh()
        except PlanningServiceError as exc:
            self.error = exc.message
            return False
        self._load_contributors(data)
        return True

    def assign_contributor(self, component_id: str, contributor_id: Optional[str]) -> bool:
        if contributor_id == UNASSIGNED:
            contributor_id = None
        return self._mutate(lambda: self.client.assign_contributor(component_id, contributor_id))

    def clear_assignments(self, component_id: str) -> bool:
        return self._mutate(lambda: self.client.clear_assignments(component_id))

    def delete_component(self, component_id: str) -> bool:
        ok = self._mutate(lambda: self.client.delete_component(component_id))
        if ok:
            self.reconciler.discard(component_id)
        return ok

    def delete_project(self, project_id: str) -> bool:
        project = next((p for p in self.project_data.projects if p.project_id == project_id), None)
        ok = self._mutate(lambda: self.client.delete_project(project_id))
        if ok and project is not None:
            for component in project.components:
                self.reconciler.discard(component.component_id)
        return ok

    def update_estimated_weeks(self, component_id: str, weeks: int) -> bool:
        if weeks < 0:
            self.error = "Estimated weeks must not be negative"
            return False
        return self._mutate(lambda: self.client.update_estimated_weeks(component_id, weeks))

    def add_component(
        self, project_id: str, skill_id: Optional[str], estimated_weeks: Optional[int], name: str = ""
    ) -> bool:
        if not skill_id or not estimated_weeks:
            self.error = "Please fill in all component fields"
            return False
        return self._mutate(
            lambda: self.client.add_component(project_id, skill_id, int(estimated_weeks), name=name)
        )

    # Create forms

    def _create(self, action: Callable[[], None], success: str) -> bool:
        self.error = None
        self.success_message = ""
        try:
            action()
        except (ValueError, PlanningServiceError) as exc:
            logger.error("error creating resource: %s", exc)
            self.error = str(exc)
            return False
        self.success_message = success
        return True

    def create_period(self, name: str, start_date: Optional[date], end_date: Optional[date]) -> bool:
        def action() -> None:
            if not name.strip() or start_date is None or end_date is None:
                raise ValueError("Period name, start date and end date are required")
            if end_date < start_date:
                raise ValueError("End date must not be earlier than start date")
            self.client.create_period(name.strip(), start_date, end_date)
            self.periods = self.client.list_periods()

        return self._create(action, "Period created successfully!")

    def create_project(
        self,
        name: str,
        period_id: Optional[str],
        components: Sequence[Tuple[str, int]],
        description: str = "",
    ) -> bool:
        def action() -> None:
            if not name.strip() or not period_id:
                raise ValueError("Project name and period are required")
            for skill_id, weeks in components:
                if not skill_id or weeks <= 0:
                    raise ValueError("Please fill in all component fields")
            self.client.create_project(name.strip(), period_id, components, description=description)
            if period_id == self.period_id:
                self.reconciler.refresh()

        return self._create(action, "Project created successfully!")

    def create_contributor(self, first_name: str, last_name: str, skill_ids: Sequence[str]) -> bool:
        def action() -> None:
            if not first_name.strip() or not last_name.strip():
                raise ValueError("First and last name are required")
            self.client.create_contributor(first_name.strip(), last_name.strip(), skill_ids)
            for skill_id in skill_ids:
                self.contributors_by_skill.pop(skill_id, None)
            self._load_contributors(self.project_data)

        return self._create(action, "Contributor created successfully!")

    # Views

    def week_headers(self) -> List[str]:
        start = self.planning_start
        if start is None:
            period = next((p for p in self.periods if p.period_id == self.period_id), None)
            start = period.start_date if period else None
        if start is None:
            return [str(index + 1) for index in range(self.week_count)]
        return projection.week_headers(start, self.week_count)

    def project_views(self) -> List[Dict[str, object]]:
        pending = self.reconciler.pending_all()
        states = {cid: state.value for cid, state in self.reconciler.states().items()}
        return [
            projection.project_view(
                project, pending, states, expanded=self.preferences.is_expanded(project.project_id)
            )
            for project in self.project_data.projects
        ]

    def contributor_load(self) -> pd.DataFrame:
        return projection.contributor_load(self.project_data, self.week_headers())

    def eligible_contributors(self, component_id: str) -> List[Contributor]:
        component = self.project_data.find_component(component_id)
        if component is None:
            return []
        return projection.eligible_contributors(component, self.contributors_by_skill)
