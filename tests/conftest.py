import httpx
import pytest
import respx

from resource_planner.client import PlanningServiceClient
from resource_planner.models import ProjectData
from resource_planner.reconciler import AssignmentReconciler
from resource_planner.session import PlanningSession
from resource_planner.storage import InMemoryStorage, Preferences
from tests.utils import BASE_URL, CONTRIBUTORS, PERIODS, PROJECTS, SKILLS


@pytest.fixture
def router():
    with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def backend(router):
    """Router with the read endpoints of a healthy service."""
    router.get("/periods").mock(return_value=httpx.Response(200, json=PERIODS))
    router.get("/skills").mock(return_value=httpx.Response(200, json=SKILLS))
    router.get("/period/1/projects").mock(return_value=httpx.Response(200, json=PROJECTS))
    router.get("/period/2/projects").mock(return_value=httpx.Response(200, json={"projects": []}))
    for skill_id, contributors in CONTRIBUTORS.items():
        router.get(f"/contributors/get_contributors_by_skill/{skill_id}").mock(
            return_value=httpx.Response(200, json={"contributors": contributors})
        )
    return router


@pytest.fixture
def client():
    planning_client = PlanningServiceClient(BASE_URL)
    yield planning_client
    planning_client.close()


@pytest.fixture
def reconciler(client):
    rec = AssignmentReconciler(client)
    rec.load("1", ProjectData.from_payload(PROJECTS))
    return rec


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def session(backend, client, storage):
    planning_session = PlanningSession(client, Preferences(storage))
    assert planning_session.load()
    return planning_session
