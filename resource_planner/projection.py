"""Display data derived from project state and staged changes.

Nothing here holds state: callers recompute whenever the project data or the
pending changes move.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd
from dateutil.relativedelta import relativedelta

from .models import Component, Contributor, Project, ProjectData
from .tracker import EMPTY_CHANGES, PendingChangeSet


class CellState(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    ASSIGNED = "assigned"
    EMPTY = "empty"


class StatusTier(str, Enum):
    NONE = "none"
    LOW = "low"
    PARTIAL = "partial"
    COMPLETE = "complete"


def cell_state(assigned: bool, week_index: int, changes: PendingChangeSet = EMPTY_CHANGES) -> CellState:
    if week_index in changes.added:
        return CellState.ADDED
    if week_index in changes.removed:
        return CellState.REMOVED
    if assigned:
        return CellState.ASSIGNED
    return CellState.EMPTY


def cell_states(component: Component, changes: PendingChangeSet = EMPTY_CHANGES) -> List[CellState]:
    return [cell_state(assigned, index, changes) for index, assigned in enumerate(component.assignments)]


def status_percentage(assigned_weeks: int, estimated_weeks: int) -> float:
    # Nothing estimated means nothing left to schedule
    if estimated_weeks <= 0:
        return 100.0
    return assigned_weeks / estimated_weeks * 100


def status_tier(percentage: float) -> StatusTier:
    if percentage == 0:
        return StatusTier.NONE
    if percentage < 50:
        return StatusTier.LOW
    if percentage < 100:
        return StatusTier.PARTIAL
    return StatusTier.COMPLETE


def component_label(component: Component) -> str:
    return "Scheduled" if component.assigned_weeks >= component.estimated_weeks else "Unassigned"


@dataclass(frozen=True)
class ComponentSummary:
    name: str
    contributor: Optional[str]
    scheduled_weeks: int
    estimated_weeks: int
    tier: StatusTier


@dataclass(frozen=True)
class ProjectSummary:
    components: List[ComponentSummary]
    total_scheduled_weeks: int
    total_estimated_weeks: int
    percentage: float
    tier: StatusTier


def project_summary(project: Project) -> ProjectSummary:
    summaries = [
        ComponentSummary(
            name=component.component_name,
            contributor=component.contributor_name,
            scheduled_weeks=component.assigned_weeks,
            estimated_weeks=component.estimated_weeks,
            tier=status_tier(status_percentage(component.assigned_weeks, component.estimated_weeks)),
        )
        for component in project.components
    ]
    total_scheduled = sum(component.assigned_weeks for component in project.components)
    total_estimated = sum(component.estimated_weeks for component in project.components)
    percentage = total_scheduled / total_estimated * 100 if total_estimated > 0 else 0.0
    return ProjectSummary(
        components=summaries,
        total_scheduled_weeks=total_scheduled,
        total_estimated_weeks=total_estimated,
        percentage=percentage,
        tier=status_tier(percentage),
    )


def week_headers(start: date, count: int) -> List[str]:
    """Column labels ``M/D`` for ``count`` weeks beginning at ``start``."""
    labels = []
    for offset in range(count):
        day = start + relativedelta(weeks=offset)
        labels.append(f"{day.month}/{day.day}")
    return labels


def eligible_contributors(
    component: Component, contributors_by_skill: Mapping[str, Sequence[Contributor]]
) -> List[Contributor]:
    if not component.skill_id:
        return []
    return list(contributors_by_skill.get(component.skill_id, ()))


def component_view(
    component: Component,
    changes: PendingChangeSet = EMPTY_CHANGES,
    sync_state: str = "clean",
) -> Dict[str, object]:
    percentage = status_percentage(component.assigned_weeks, component.estimated_weeks)
    return {
        "component_id": component.component_id,
        "component_name": component.component_name,
        "skill_id": component.skill_id,
        "contributor_id": component.contributor_id,
        "contributor_name": component.contributor_name,
        "estimated_weeks": component.estimated_weeks,
        "assigned_weeks": component.assigned_weeks,
        "cells": [state.value for state in cell_states(component, changes)],
        "added_weeks": changes.added_weeks(),
        "removed_weeks": changes.removed_weeks(),
        "can_submit": component.has_contributor and not changes.is_empty(),
        "percentage": round(percentage, 2),
        "tier": status_tier(percentage).value,
        "label": component_label(component),
        "sync_state": sync_state,
    }


def project_view(
    project: Project,
    pending: Mapping[str, PendingChangeSet],
    sync_states: Mapping[str, str],
    expanded: bool = True,
) -> Dict[str, object]:
    summary = project_summary(project)
    return {
        "project_id": project.project_id,
        "project_name": project.project_name,
        "expanded": expanded,
        "total_scheduled_weeks": summary.total_scheduled_weeks,
        "total_estimated_weeks": summary.total_estimated_weeks,
        "percentage": round(summary.percentage, 2),
        "tier": summary.tier.value,
        "components": [
            component_view(
                component,
                pending.get(component.component_id, EMPTY_CHANGES),
                sync_states.get(component.component_id, "clean"),
            )
            for component in project.components
        ],
    }


def load_tier(value: float) -> str:
    if value <= 0:
        return "idle"
    if value < 2:
        return "booked"
    return "overbooked"


def avg_tier(value: float) -> str:
    if value < 0.7:
        return "under"
    if value < 0.9:
        return "near"
    return "full"


def contributor_load(data: ProjectData, week_labels: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Weekly number of assigned components per contributor, plus the average."""
    week_count = max((len(c.assignments) for c in data.iter_components()), default=0)
    if week_labels is not None:
        week_count = max(week_count, len(week_labels))
        labels = list(week_labels) + [f"week_{i}" for i in range(len(week_labels), week_count)]
    else:
        labels = [f"week_{i}" for i in range(week_count)]
    names: Dict[str, str] = {}
    totals: Dict[str, List[int]] = {}
    for component in data.iter_components():
        if not component.contributor_id:
            continue
        contributor_id = component.contributor_id
        names.setdefault(contributor_id, component.contributor_name or contributor_id)
        weeks = totals.setdefault(contributor_id, [0] * week_count)
        for index, assigned in enumerate(component.assignments):
            if assigned:
                weeks[index] += 1
    columns = ["contributor_id", "contributor", *labels, "avg"]
    rows = []
    for contributor_id, weeks in totals.items():
        avg = sum(weeks) / week_count if week_count else 0.0
        rows.append([contributor_id, names[contributor_id], *weeks, round(avg, 2)])
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values("contributor", kind="stable").reset_index(drop=True)
