import pytest

from resource_planner.models import (
    Component,
    Project,
    ProjectData,
    replace_component_in_data,
    with_week_changes,
)
from tests.utils import PROJECTS


def test_component_payload_derives_assigned_weeks_when_missing():
    component = Component.from_payload(
        {"component_id": 7, "estimated_weeks": "3", "assignments": [True, 0, 1]}
    )
    assert component.component_id == "7"
    assert component.estimated_weeks == 3
    assert component.assignments == (True, False, True)
    assert component.assigned_weeks == 2
    assert component.contributor_id is None


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"estimated_weeks": 2}, "component_id"),
        ({"component_id": "c", "estimated_weeks": -1}, "estimated_weeks"),
        ({"component_id": "c", "estimated_weeks": 2, "assignments": "yes"}, "assignments"),
        ({"component_id": "c", "estimated_weeks": 2, "assignments": [2]}, "assignment flag"),
    ],
)
def test_invalid_component_payloads(payload, message):
    with pytest.raises(ValueError, match=message):
        Component.from_payload(payload)


def test_with_week_changes_recomputes_count():
    component = Component.from_payload(PROJECTS["projects"][0]["components"][0])

    patched = with_week_changes(component, added={1, 3}, removed={0})

    assert patched.assignments == (False, True, True, True)
    assert patched.assigned_weeks == 3
    assert component.assignments == (True, False, True, False)


def test_with_week_changes_ignores_weeks_past_the_horizon():
    component = Component("c", "x", "s1", 2, assignments=(True, False), assigned_weeks=1)
    patched = with_week_changes(component, added={1, 2}, removed={5})
    assert patched.assignments == (True, True)
    assert patched.assigned_weeks == 2


def test_replace_component_in_data_leaves_other_projects_alone():
    data = ProjectData.from_payload(PROJECTS)
    other = Project(project_id="11", project_name="Other")
    data = ProjectData(projects=data.projects + (other,))
    component = data.find_component("c2")

    updated = replace_component_in_data(data, with_week_changes(component, {0}, ()))

    assert updated.find_component("c2").assignments[0] is True
    assert updated.projects[1] is other
    assert data.find_component("c2").assignments[0] is False


def test_skill_ids_are_unique_and_ordered():
    data = ProjectData.from_payload(PROJECTS)
    assert data.skill_ids() == ["s1", "s2"]
