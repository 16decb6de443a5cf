import json

import pytest

from resource_planner.models import Period
from resource_planner.storage import InMemoryStorage, JsonFileStorage, Preferences

PERIODS = [Period("1", "Q1"), Period("2", "Q2")]


def test_defaults_when_nothing_saved():
    prefs = Preferences(InMemoryStorage())
    assert prefs.form_type == "period"
    assert prefs.active_tab == "form"
    assert prefs.active_view_tab == "projects"


def test_tab_choices_round_trip_and_validate():
    storage = InMemoryStorage()
    prefs = Preferences(storage)
    prefs.active_tab = "view"
    prefs.form_type = "contributor"

    assert Preferences(storage).active_tab == "view"
    assert storage.get("formType") == "contributor"
    with pytest.raises(ValueError):
        prefs.active_view_tab = "calendar"


def test_unknown_saved_tab_falls_back_to_default():
    prefs = Preferences(InMemoryStorage({"activeViewTab": "gantt"}))
    assert prefs.active_view_tab == "projects"


def test_saved_period_is_restored_when_it_still_exists():
    prefs = Preferences(InMemoryStorage({"selectedPeriod": "2"}))
    assert prefs.restore_period(PERIODS) == "2"


def test_missing_saved_period_falls_back_to_first_and_persists():
    storage = InMemoryStorage({"selectedPeriod": "99"})
    prefs = Preferences(storage)

    assert prefs.restore_period(PERIODS) == "1"
    assert storage.get("selectedPeriod") == "1"
    assert prefs.restore_period([]) is None


def test_no_saved_expanded_set_expands_everything():
    storage = InMemoryStorage()
    prefs = Preferences(storage)

    assert prefs.restore_expanded(["10", "11"]) == {"10", "11"}
    assert json.loads(storage.get("expandedProjects")) == ["10", "11"]


@pytest.mark.parametrize("saved", ["[]", "{broken", '"text"'])
def test_empty_or_corrupt_expanded_set_expands_everything(saved):
    prefs = Preferences(InMemoryStorage({"expandedProjects": saved}))
    assert prefs.restore_expanded(["10", "11"]) == {"10", "11"}


def test_saved_expanded_set_is_kept():
    prefs = Preferences(InMemoryStorage({"expandedProjects": "[11]"}))
    assert prefs.restore_expanded(["10", "11"]) == {"11"}
    assert not prefs.is_expanded("10")


def test_toggle_expanded_persists():
    storage = InMemoryStorage()
    prefs = Preferences(storage)
    prefs.restore_expanded(["10", "11"])

    assert prefs.toggle_expanded("10") is False
    assert json.loads(storage.get("expandedProjects")) == ["11"]
    assert prefs.toggle_expanded("10") is True


def test_json_file_storage_persists_across_instances(tmp_path):
    path = tmp_path / "state" / "prefs.json"
    first = JsonFileStorage(path)
    first.set("activeTab", "view")
    first.set("selectedPeriod", "2")
    first.remove("selectedPeriod")

    second = JsonFileStorage(path)
    assert second.get("activeTab") == "view"
    assert second.get("selectedPeriod") is None


def test_json_file_storage_ignores_unreadable_file(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("[1, 2]")
    assert JsonFileStorage(path).get("activeTab") is None
