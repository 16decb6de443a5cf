import copy
from typing import Dict, List

BASE_URL = "http://planner.test"

PERIODS = [
    {"period_id": 1, "name": "Q1", "start_date": "2024-02-03", "end_date": "2024-04-28"},
    {"period_id": 2, "name": "Q2", "start_date": "2024-05-05", "end_date": "2024-07-28"},
]

SKILLS = [{"skill_id": "s1", "name": "Backend"}, {"skill_id": "s2", "name": "Frontend"}]

PROJECTS = {
    "projects": [
        {
            "project_id": 10,
            "project_name": "Billing",
            "components": [
                {
                    "component_id": "c1",
                    "component_name": "API",
                    "skill_id": "s1",
                    "contributor_id": "u1",
                    "contributor_name": "Ada Lovelace",
                    "estimated_weeks": 4,
                    "assigned_weeks": 2,
                    "assignments": [True, False, True, False],
                },
                {
                    "component_id": "c2",
                    "component_name": "UI",
                    "skill_id": "s2",
                    "contributor_id": None,
                    "contributor_name": None,
                    "estimated_weeks": 2,
                    "assigned_weeks": 0,
                    "assignments": [False, False, False, False],
                },
            ],
        }
    ]
}

CONTRIBUTORS: Dict[str, List[dict]] = {
    "s1": [{"contributor_id": "u1", "first_name": "Ada", "last_name": "Lovelace"}],
    "s2": [{"contributor_id": "u2", "first_name": "Grace", "last_name": "Hopper"}],
}


def projects_payload(**overrides) -> dict:
    """Fresh copy of PROJECTS with fields of component ``c1`` overridden."""
    payload = copy.deepcopy(PROJECTS)
    payload["projects"][0]["components"][0].update(overrides)
    return payload

