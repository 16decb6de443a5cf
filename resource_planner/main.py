from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .config import ClientConfig, default_config, load_config
from .projection import CellState
from .session import PlanningSession

_CELL_MARKS = {
    CellState.ADDED: "+",
    CellState.REMOVED: "-",
    CellState.ASSIGNED: "#",
    CellState.EMPTY: ".",
}


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resource planner client: inspect periods and projects, commit week assignments."
    )
    parser.add_argument("--config", help="Path to client configuration JSON (default: $PLANNER_CONFIG)")
    parser.add_argument("--backend-url", help="Planning service base URL (overrides configuration)")
    parser.add_argument("--period", help="Period id to work on (default: last selected or first period)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("periods", help="List planning periods")
    sub.add_parser("skills", help="List skills")
    sub.add_parser("projects", help="Show projects and weekly assignments for the period")
    sub.add_parser("load", help="Show weekly load per contributor for the period")

    assign = sub.add_parser("assign", help="Toggle weeks on a component and submit them as one batch")
    assign.add_argument("component_id")
    assign.add_argument(
        "--toggle",
        type=int,
        nargs="+",
        required=True,
        metavar="WEEK",
        help="Zero-based week indices to flip",
    )

    clear = sub.add_parser("clear", help="Remove every week assignment from a component")
    clear.add_argument("component_id")
    return parser.parse_args(argv)


def _resolve_config(args: argparse.Namespace) -> ClientConfig:
    config = load_config(Path(args.config)) if args.config else default_config()
    if args.backend_url:
        config = replace(config, backend_url=args.backend_url.rstrip("/"))
    return config


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _print_projects(session: PlanningSession) -> None:
    headers = session.week_headers()
    if not session.project_data.projects:
        print("No projects in this period.")
        return
    print(f"Weeks: {' '.join(headers)}")
    for view in session.project_views():
        print(
            f"{view['project_name']} [{view['project_id']}]: "
            f"{view['total_scheduled_weeks']}/{view['total_estimated_weeks']} weeks "
            f"({view['percentage']:.0f}%, {view['tier']})"
        )
        for component in view["components"]:
            cells = "".join(_CELL_MARKS[CellState(state)] for state in component["cells"])
            contributor = component["contributor_name"] or "unassigned"
            print(
                f"  - {component['component_name']} [{component['component_id']}] "
                f"{cells} {component['assigned_weeks']}/{component['estimated_weeks']} "
                f"{component['label']} ({contributor})"
            )


def _run(session: PlanningSession, args: argparse.Namespace) -> int:
    if args.command == "periods":
        for period in session.periods:
            marker = "*" if period.period_id == session.period_id else " "
            print(f"{marker} {period.period_id}\t{period.name}")
        return 0
    if args.command == "skills":
        for skill_id, name in session.skills.items():
            print(f"{skill_id}\t{name}")
        return 0
    if args.command == "projects":
        _print_projects(session)
        return 0
    if args.command == "load":
        df = session.contributor_load()
        if df.empty:
            print("No contributors assigned in this period.")
        else:
            print(df.drop(columns=["contributor_id"]).to_string(index=False))
        return 0
    if args.command == "assign":
        for week in args.toggle:
            if session.toggle_cell(args.component_id, week) is None:
                return 1
        pending = session.reconciler.pending(args.component_id)
        result = session.submit(args.component_id)
        if not result.submitted and result.error is None:
            session.error = "Component has no contributor; assign one before submitting weeks"
            return 1
        if result.error:
            return 1
        print(
            f"Updated {args.component_id}: added {pending.added_weeks()}, removed {pending.removed_weeks()}"
        )
        return 0
    if args.command == "clear":
        if not session.clear_assignments(args.component_id):
            return 1
        print(f"Cleared assignments for {args.component_id}")
        return 0
    raise ValueError(f"unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        config = _resolve_config(args)
    except (OSError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)
    _configure_logging(config.logging_level)

    session = PlanningSession.from_config(config)
    try:
        loaded = session.load()
        if loaded and args.period and args.period != session.period_id:
            loaded = session.select_period(args.period)
        code = _run(session, args) if loaded else 1
    finally:
        session.close()
    if session.error:
        print(session.error, file=sys.stderr)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
