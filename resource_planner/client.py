from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar

import httpx

from .models import Contributor, Period, ProjectData, Skill

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_ERROR_MESSAGE = "Unable to reach the planning service"


class PlanningServiceError(RuntimeError):
    """Raised when the planning service is unreachable or answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, str) and error.strip():
            return error.strip()
    return default


def _parse_list(data: object, parse: Callable[[Mapping[str, object]], T], default_error: str) -> List[T]:
    if not isinstance(data, list):
        raise PlanningServiceError(default_error)
    try:
        return [parse(item) for item in data]
    except ValueError as exc:
        raise PlanningServiceError(f"{default_error}: {exc}") from exc


class PlanningServiceClient:
    """Thin synchronous wrapper around the planning service REST API."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(base_url=self.base_url, timeout=timeout_seconds)

    def __enter__(self) -> "PlanningServiceClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(
        self,
        method: str,
        path: str,
        default_error: str,
        payload: Optional[Dict[str, object]] = None,
    ) -> object:
        try:
            response = self._client.request(method, self._url(path), json=payload)
        except httpx.TransportError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise PlanningServiceError(NETWORK_ERROR_MESSAGE) from exc
        if not response.is_success:
            message = _error_message(response, default_error)
            logger.error("%s %s returned %s: %s", method, path, response.status_code, message)
            raise PlanningServiceError(message, status_code=response.status_code)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise PlanningServiceError(default_error, status_code=response.status_code) from exc

    # Reads

    def list_periods(self) -> List[Period]:
        data = self._request("GET", "/periods", "Failed to fetch periods")
        return _parse_list(data, Period.from_payload, "Failed to fetch periods")

    def list_skills(self) -> List[Skill]:
        data = self._request("GET", "/skills", "Failed to fetch skills")
        return _parse_list(data, Skill.from_payload, "Failed to fetch skills")

    def get_projects(self, period_id: str) -> ProjectData:
        data = self._request("GET", f"/period/{period_id}/projects", "Failed to fetch projects")
        try:
            return ProjectData.from_payload(data)  # type: ignore[arg-type]
        except ValueError as exc:
            raise PlanningServiceError(f"Failed to fetch projects: {exc}") from exc

    def get_contributors_by_skill(self, skill_id: str) -> List[Contributor]:
        data = self._request(
            "GET",
            f"/contributors/get_contributors_by_skill/{skill_id}",
            "Failed to fetch contributors",
        )
        items = data.get("contributors") if isinstance(data, dict) else None
        contributors = _parse_list(items, Contributor.from_payload, "Failed to fetch contributors")
        # Listed contributors hold the skill even when the payload omits skill_ids
        return [
            c if skill_id in c.skill_ids else replace(c, skill_ids=c.skill_ids + (skill_id,))
            for c in contributors
        ]

    # Writes

    def submit_assignment(
        self,
        component_id: str,
        contributor_id: str,
        added_weeks: Sequence[int],
        removed_weeks: Sequence[int],
    ) -> None:
        self._request(
            "POST",
            "/assignment",
            "Failed to update assignments",
            {
                "component_id": component_id,
                "contributor_id": contributor_id,
                "added_weeks": list(added_weeks),
                "removed_weeks": list(removed_weeks),
            },
        )

    def assign_contributor(self, component_id: str, contributor_id: Optional[str]) -> None:
        self._request(
            "POST",
            f"/component/{component_id}/assign_contributor",
            "Failed to assign contributor",
            {"contributor_id": contributor_id},
        )

    def clear_assignments(self, component_id: str) -> None:
        self._request("DELETE", f"/component/{component_id}/assignments", "Failed to clear assignments")

    def delete_component(self, component_id: str) -> None:
        self._request("DELETE", f"/component/{component_id}", "Failed to delete component")

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/project/{project_id}", "Failed to delete project")

    def update_estimated_weeks(self, component_id: str, weeks: int) -> None:
        self._request(
            "PUT",
            f"/component/{component_id}/estimated_weeks",
            "Failed to update estimated weeks",
            {"estimated_weeks": weeks},
        )

    def add_component(
        self,
        project_id: str,
        skill_id: str,
        estimated_weeks: int,
        name: str = "",
        description: str = "",
    ) -> None:
        self._request(
            "POST",
            "/component",
            "Failed to add component",
            {
                "name": name,
                "description": description,
                "project_id": project_id,
                "skill_id": skill_id,
                "estimated_weeks": estimated_weeks,
            },
        )

    def create_period(self, name: str, start_date: date, end_date: date) -> None:
        self._request(
            "POST",
            "/period",
            "Failed to create period",
            {"name": name, "start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    def create_project(
        self,
        name: str,
        period_id: str,
        components: Iterable[Tuple[str, int]],
        description: str = "",
    ) -> None:
        self._request(
            "POST",
            "/project",
            "Failed to create project",
            {
                "name": name,
                "description": description,
                "period_id": period_id,
                "components": [
                    {"skill_id": skill_id, "estimated_weeks": weeks} for skill_id, weeks in components
                ],
            },
        )

    def create_contributor(self, first_name: str, last_name: str, skill_ids: Sequence[str]) -> None:
        self._request(
            "POST",
            "/contributor",
            "Failed to create contributor",
            {"first_name": first_name, "last_name": last_name, "skill_ids": list(skill_ids)},
        )
