from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil import parser as dateparser


def _require_keys(payload: Mapping[str, object], required: Iterable[str], source: str) -> None:
    if not isinstance(payload, Mapping):
        raise ValueError(f"{source} must be an object")
    missing = [key for key in required if key not in payload]
    if missing:
        raise ValueError(f"{source} missing required fields: {', '.join(missing)}")


def _optional_id(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_int(value: object, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"invalid integer in '{field_name}': {value!r}")
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid integer in '{field_name}': {value!r}") from exc
    if number < 0:
        raise ValueError(f"'{field_name}' must not be negative")
    return number


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def _parse_assignments(value: object) -> Tuple[bool, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValueError("'assignments' must be an array of booleans")
    flags: List[bool] = []
    for item in value:
        if isinstance(item, bool):
            flags.append(item)
        elif isinstance(item, int) and item in (0, 1):
            flags.append(bool(item))
        else:
            raise ValueError(f"invalid assignment flag: {item!r}")
    return tuple(flags)


@dataclass(frozen=True)
class Period:
    """Scheduling horizon that owns projects."""

    period_id: str
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Period":
        _require_keys(payload, ("period_id", "name"), "period")
        return cls(
            period_id=str(payload["period_id"]),
            name=str(payload["name"]),
            start_date=_parse_optional_date(payload.get("start_date"), "start_date"),
            end_date=_parse_optional_date(payload.get("end_date"), "end_date"),
        )


@dataclass(frozen=True)
class Skill:
    skill_id: str
    name: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Skill":
        _require_keys(payload, ("skill_id", "name"), "skill")
        return cls(skill_id=str(payload["skill_id"]), name=str(payload["name"]))


@dataclass(frozen=True)
class Contributor:
    """Person who can be assigned to components needing one of their skills."""

    contributor_id: str
    first_name: str
    last_name: str
    skill_ids: Tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_skill(self, skill_id: Optional[str]) -> bool:
        return skill_id is not None and skill_id in self.skill_ids

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Contributor":
        _require_keys(payload, ("contributor_id", "first_name", "last_name"), "contributor")
        skill_ids = payload.get("skill_ids") or ()
        if isinstance(skill_ids, (str, bytes)) or not isinstance(skill_ids, Sequence):
            raise ValueError("'skill_ids' must be an array")
        return cls(
            contributor_id=str(payload["contributor_id"]),
            first_name=str(payload["first_name"] or ""),
            last_name=str(payload["last_name"] or ""),
            skill_ids=tuple(str(item) for item in skill_ids),
        )


@dataclass(frozen=True)
class Component:
    """Skill-tagged slice of project work with a weekly assignment bitmap."""

    component_id: str
    component_name: str
    skill_id: Optional[str]
    estimated_weeks: int
    contributor_id: Optional[str] = None
    contributor_name: Optional[str] = None
    assignments: Tuple[bool, ...] = ()
    assigned_weeks: int = 0

    @property
    def has_contributor(self) -> bool:
        return self.contributor_id is not None

    def is_assigned(self, week_index: int) -> bool:
        if 0 <= week_index < len(self.assignments):
            return self.assignments[week_index]
        return False

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Component":
        _require_keys(payload, ("component_id", "estimated_weeks"), "component")
        assignments = _parse_assignments(payload.get("assignments"))
        assigned_raw = payload.get("assigned_weeks")
        assigned_weeks = (
            _parse_int(assigned_raw, "assigned_weeks") if assigned_raw is not None else sum(assignments)
        )
        contributor_name = payload.get("contributor_name")
        return cls(
            component_id=str(payload["component_id"]),
            component_name=str(payload.get("component_name") or ""),
            skill_id=_optional_id(payload.get("skill_id")),
            estimated_weeks=_parse_int(payload["estimated_weeks"], "estimated_weeks"),
            contributor_id=_optional_id(payload.get("contributor_id")),
            contributor_name=str(contributor_name) if contributor_name else None,
            assignments=assignments,
            assigned_weeks=assigned_weeks,
        )


@dataclass(frozen=True)
class Project:
    project_id: str
    project_name: str
    components: Tuple[Component, ...] = ()

    def find_component(self, component_id: str) -> Optional[Component]:
        for component in self.components:
            if component.component_id == component_id:
                return component
        return None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "Project":
        _require_keys(payload, ("project_id",), "project")
        components = payload.get("components") or []
        if not isinstance(components, list):
            raise ValueError("'components' must be an array")
        return cls(
            project_id=str(payload["project_id"]),
            project_name=str(payload.get("project_name") or ""),
            components=tuple(Component.from_payload(item) for item in components),
        )


@dataclass(frozen=True)
class ProjectData:
    """All projects of the active period, as last reported by the backend."""

    projects: Tuple[Project, ...] = field(default_factory=tuple)

    def iter_components(self) -> Iterable[Component]:
        for project in self.projects:
            yield from project.components

    def find_component(self, component_id: str) -> Optional[Component]:
        for project in self.projects:
            component = project.find_component(component_id)
            if component is not None:
                return component
        return None

    def project_ids(self) -> List[str]:
        return [project.project_id for project in self.projects]

    def skill_ids(self) -> List[str]:
        seen: Dict[str, None] = {}
        for component in self.iter_components():
            if component.skill_id:
                seen.setdefault(component.skill_id, None)
        return list(seen)

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "ProjectData":
        _require_keys(payload, ("projects",), "project data")
        projects = payload["projects"]
        if not isinstance(projects, list):
            raise ValueError("'projects' must be an array")
        return cls(projects=tuple(Project.from_payload(item) for item in projects))


def with_week_changes(
    component: Component, added: Iterable[int], removed: Iterable[int]
) -> Component:
    """Return a copy with ``added`` weeks set, ``removed`` weeks cleared and the count recomputed.

    Indices outside the existing bitmap are ignored; the horizon never grows.
    """
    flags = list(component.assignments)
    for index in added:
        if 0 <= index < len(flags):
            flags[index] = True
    for index in removed:
        if 0 <= index < len(flags):
            flags[index] = False
    return replace(component, assignments=tuple(flags), assigned_weeks=sum(flags))


def replace_component(project: Project, component: Component) -> Project:
    components = tuple(
        component if existing.component_id == component.component_id else existing
        for existing in project.components
    )
    return replace(project, components=components)


def replace_component_in_data(data: ProjectData, component: Component) -> ProjectData:
    projects = tuple(
        replace_component(project, component)
        if project.find_component(component.component_id) is not None
        else project
        for project in data.projects
    )
    return replace(data, projects=projects)
