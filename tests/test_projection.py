from datetime import date

from resource_planner import projection
from resource_planner.models import Component, Contributor, Project, ProjectData
from resource_planner.projection import CellState, StatusTier
from resource_planner.tracker import PendingChangeSet


def _component(assignments, estimated=4, contributor_id="u1", component_id="c1", name="Ada"):
    return Component(
        component_id=component_id,
        component_name="API",
        skill_id="s1",
        estimated_weeks=estimated,
        contributor_id=contributor_id,
        contributor_name=name if contributor_id else None,
        assignments=tuple(assignments),
        assigned_weeks=sum(assignments),
    )


def test_cell_state_precedence():
    component = _component([True, False, True])
    changes = PendingChangeSet(added=frozenset({1}), removed=frozenset({0}))

    states = projection.cell_states(component, changes)

    assert states == [CellState.REMOVED, CellState.ADDED, CellState.ASSIGNED]


def test_pending_add_wins_over_assigned_flag():
    assert projection.cell_state(True, 0, PendingChangeSet(added=frozenset({0}))) == CellState.ADDED
    assert projection.cell_state(False, 0) == CellState.EMPTY


def test_status_tiers():
    assert projection.status_tier(0) == StatusTier.NONE
    assert projection.status_tier(25) == StatusTier.LOW
    assert projection.status_tier(50) == StatusTier.PARTIAL
    assert projection.status_tier(99.9) == StatusTier.PARTIAL
    assert projection.status_tier(100) == StatusTier.COMPLETE
    assert projection.status_tier(150) == StatusTier.COMPLETE


def test_status_percentage():
    assert projection.status_percentage(1, 4) == 25
    assert projection.status_percentage(0, 0) == 100.0


def test_project_summary_totals():
    project = Project(
        project_id="10",
        project_name="Billing",
        components=(
            _component([True, True, False, False], estimated=4),
            _component([False, False], estimated=2, contributor_id=None, component_id="c2"),
        ),
    )

    summary = projection.project_summary(project)

    assert summary.total_scheduled_weeks == 2
    assert summary.total_estimated_weeks == 6
    assert round(summary.percentage, 2) == 33.33
    assert summary.tier == StatusTier.LOW
    assert [c.tier for c in summary.components] == [StatusTier.PARTIAL, StatusTier.NONE]


def test_project_without_estimates_is_zero_percent():
    summary = projection.project_summary(Project(project_id="1", project_name="Empty"))
    assert summary.percentage == 0.0
    assert summary.tier == StatusTier.NONE


def test_component_label():
    assert projection.component_label(_component([True, True], estimated=2)) == "Scheduled"
    assert projection.component_label(_component([True, False], estimated=2)) == "Unassigned"


def test_week_headers_step_by_week():
    headers = projection.week_headers(date(2024, 2, 3), 5)
    assert headers == ["2/3", "2/10", "2/17", "2/24", "3/2"]


def test_eligible_contributors_filters_by_skill():
    ada = Contributor("u1", "Ada", "Lovelace", ("s1",))
    grace = Contributor("u2", "Grace", "Hopper", ("s2",))
    by_skill = {"s1": [ada], "s2": [grace]}

    assert projection.eligible_contributors(_component([]), by_skill) == [ada]


def test_component_view_reports_pending_and_submit_flag():
    view = projection.component_view(
        _component([True, False]), PendingChangeSet(added=frozenset({1})), "pending"
    )
    assert view["cells"] == ["assigned", "added"]
    assert view["can_submit"] is True
    assert view["sync_state"] == "pending"

    unassigned = projection.component_view(
        _component([False], contributor_id=None), PendingChangeSet(added=frozenset({0}))
    )
    assert unassigned["can_submit"] is False


def test_contributor_load_counts_components_per_week():
    data = ProjectData(
        projects=(
            Project(
                project_id="10",
                project_name="Billing",
                components=(
                    _component([True, True, False, False], component_id="c1"),
                    _component([False, True, True, False], component_id="c2"),
                    _component([True, True, True, True], contributor_id="u2", name="Grace", component_id="c3"),
                    _component([True, False, False, False], contributor_id=None, component_id="c4"),
                ),
            ),
        )
    )

    df = projection.contributor_load(data, ["2/3", "2/10", "2/17", "2/24"])

    assert list(df["contributor"]) == ["Ada", "Grace"]
    ada = df[df["contributor_id"] == "u1"].iloc[0]
    assert [ada[label] for label in ["2/3", "2/10", "2/17", "2/24"]] == [1, 2, 1, 0]
    assert ada["avg"] == 1.0
    grace = df[df["contributor_id"] == "u2"].iloc[0]
    assert grace["avg"] == 1.0


def test_load_and_avg_tiers():
    assert [projection.load_tier(v) for v in (0, 1, 2, 3)] == ["idle", "booked", "overbooked", "overbooked"]
    assert projection.avg_tier(0.62) == "under"
    assert projection.avg_tier(0.85) == "near"
    assert projection.avg_tier(1.08) == "full"


def test_contributor_load_with_no_assignments_is_empty():
    df = projection.contributor_load(ProjectData())
    assert df.empty
    assert list(df.columns) == ["contributor_id", "contributor", "avg"]
