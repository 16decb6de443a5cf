import json

import httpx
import pytest

from resource_planner.main import main
from tests.utils import BASE_URL


@pytest.fixture(autouse=True)
def planner_env(monkeypatch):
    monkeypatch.delenv("PLANNER_CONFIG", raising=False)
    monkeypatch.setenv("PLANNER_BACKEND_URL", BASE_URL)


def test_projects_command_prints_grid(backend, capsys):
    main(["projects"])

    out = capsys.readouterr().out
    assert "Billing [10]: 2/6 weeks (33%, low)" in out
    assert "  - API [c1] #.#. 2/4 Unassigned (Ada Lovelace)" in out
    assert "  - UI [c2] .... 0/2 Unassigned (unassigned)" in out


def test_periods_command_marks_selection(backend, capsys):
    main(["--period", "2", "periods"])

    out = capsys.readouterr().out.splitlines()
    assert out == ["  1\tQ1", "* 2\tQ2"]


def test_assign_submits_one_batch(backend, capsys):
    route = backend.post("/assignment").mock(return_value=httpx.Response(200, json={}))

    main(["assign", "c1", "--toggle", "1", "2"])

    assert json.loads(route.calls.last.request.content) == {
        "component_id": "c1",
        "contributor_id": "u1",
        "added_weeks": [1],
        "removed_weeks": [2],
    }
    assert "Updated c1: added [1], removed [2]" in capsys.readouterr().out


def test_assign_without_contributor_fails(backend, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["assign", "c2", "--toggle", "0"])

    assert excinfo.value.code == 1
    assert "assign one before submitting" in capsys.readouterr().err


def test_invalid_config_exits_with_usage_code(tmp_path, capsys):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"week_count": 0}))

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(path), "periods"])

    assert excinfo.value.code == 2
    assert "week_count" in capsys.readouterr().err
