from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from dateutil import parser as dateparser
from flask import Flask, jsonify, request, url_for

from resource_planner import projection
from resource_planner.config import default_config
from resource_planner.session import PlanningSession

from .jobs import JobStore


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _json_body() -> Dict[str, object]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    return data


def _int_field(data: Mapping[str, object], name: str) -> int:
    value = data.get(name)
    if value is None or isinstance(value, bool):
        raise ValueError(f"{name} is required")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _str_field(data: Mapping[str, object], name: str, required: bool = True) -> Optional[str]:
    value = data.get(name)
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValueError(f"{name} is required")
        return None
    return str(value).strip()


def _date_field(data: Mapping[str, object], name: str) -> Optional[date]:
    value = data.get(name)
    if value is None or value == "":
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"{name} must be an ISO date string") from exc


def _component_specs(data: Mapping[str, object]) -> List[Tuple[str, int]]:
    raw = data.get("components") or []
    if not isinstance(raw, list):
        raise ValueError("components must be an array")
    specs: List[Tuple[str, int]] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValueError("components entries must be objects")
        specs.append((str(entry.get("skill_id") or ""), _int_field(entry, "estimated_weeks")))
    return specs


def create_app(session: Optional[PlanningSession] = None) -> Flask:
    app = Flask(__name__)
    if session is None:
        config = default_config()
        _configure_logging(config.logging_level)
        session = PlanningSession.from_config(config)
        session.load()
    job_store = JobStore(session.submit_pending)
    app.config["PLANNING_SESSION"] = session
    app.config["JOB_STORE"] = job_store

    # Session actions report through session.error, so run them one at a time
    session_lock = threading.Lock()

    def _outcome(action: Callable[[], bool], with_message: bool = False, **extra: object):
        with session_lock:
            ok = action()
            error = session.error
            message = session.success_message
        if ok:
            if with_message:
                extra["message"] = message
            return jsonify({"success": True, **extra})
        return jsonify({"error": error or "Request failed"}), 400

    @app.get("/")
    def index():
        prefs = session.preferences
        return jsonify(
            {
                "periods": [{"period_id": p.period_id, "name": p.name} for p in session.periods],
                "selected_period": session.period_id,
                "form_type": prefs.form_type,
                "active_tab": prefs.active_tab,
                "active_view_tab": prefs.active_view_tab,
                "week_headers": session.week_headers(),
                "error": session.error,
                "success_message": session.success_message,
                "jobs": [job.to_dict() for job in job_store.list_jobs()],
            }
        )

    @app.get("/api/periods")
    def periods():
        return jsonify(
            [
                {
                    "period_id": p.period_id,
                    "name": p.name,
                    "start_date": p.start_date.isoformat() if p.start_date else None,
                    "end_date": p.end_date.isoformat() if p.end_date else None,
                }
                for p in session.periods
            ]
        )

    @app.post("/api/period/select")
    def select_period():
        try:
            period_id = _str_field(_json_body(), "period_id")
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(lambda: session.select_period(period_id), selected_period=period_id)

    @app.get("/api/skills")
    def skills():
        return jsonify([{"skill_id": k, "name": v} for k, v in session.skills.items()])

    @app.get("/api/projects")
    def projects():
        return jsonify(
            {
                "period_id": session.period_id,
                "week_headers": session.week_headers(),
                "projects": session.project_views(),
                "error": session.error,
            }
        )

    @app.post("/api/refresh")
    def refresh():
        return _outcome(session.refresh)

    @app.get("/api/contributors/load")
    def contributor_load():
        df = session.contributor_load()
        week_columns = [c for c in df.columns if c not in ("contributor_id", "contributor", "avg")]
        rows = []
        for record in df.to_dict(orient="records"):
            rows.append(
                {
                    "contributor_id": record["contributor_id"],
                    "contributor": record["contributor"],
                    "weeks": [
                        {"value": int(record[c]), "tier": projection.load_tier(record[c])}
                        for c in week_columns
                    ],
                    "avg": float(record["avg"]),
                    "avg_tier": projection.avg_tier(record["avg"]),
                }
            )
        return jsonify({"week_headers": week_columns, "contributors": rows})

    @app.get("/api/component/<component_id>/contributors")
    def component_contributors(component_id: str):
        return jsonify(
            [
                {"contributor_id": c.contributor_id, "name": c.display_name}
                for c in session.eligible_contributors(component_id)
            ]
        )

    @app.post("/api/toggle")
    def toggle():
        try:
            data = _json_body()
            component_id = _str_field(data, "component_id")
            week_index = _int_field(data, "week_index")
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        with session_lock:
            changes = session.toggle_cell(component_id, week_index)
            error = session.error
        if changes is None:
            return jsonify({"error": error}), 400
        return jsonify(
            {
                "component_id": component_id,
                "added_weeks": changes.added_weeks(),
                "removed_weeks": changes.removed_weeks(),
                "sync_state": session.reconciler.state_of(component_id).value,
            }
        )

    @app.post("/api/submit/<component_id>")
    def submit(component_id: str):
        job = job_store.create_job(component_id)
        job_store.start_job(job)
        status_url = url_for("status_job", job_id=job.id)
        return jsonify({"job_id": job.id, "status_url": status_url}), 202

    @app.get("/status/<job_id>")
    def status_job(job_id: str):
        job = job_store.get_job(job_id)
        if not job:
            return jsonify({"error": "job not found"}), 404
        return jsonify(job.to_dict())

    @app.delete("/api/pending/<component_id>")
    def discard_pending(component_id: str):
        return jsonify({"success": True, "discarded": session.discard(component_id)})

    @app.post("/api/project/<project_id>/expand")
    def toggle_expanded(project_id: str):
        return jsonify({"project_id": project_id, "expanded": session.preferences.toggle_expanded(project_id)})

    @app.post("/api/preferences")
    def save_preferences():
        try:
            data = _json_body()
            prefs = session.preferences
            if "form_type" in data:
                prefs.form_type = str(data["form_type"])
                session.error = None
                session.success_message = ""
            if "active_tab" in data:
                prefs.active_tab = str(data["active_tab"])
            if "active_view_tab" in data:
                prefs.active_view_tab = str(data["active_view_tab"])
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return jsonify({"success": True})

    @app.post("/api/component/<component_id>/assign_contributor")
    def assign_contributor(component_id: str):
        try:
            contributor_id = _str_field(_json_body(), "contributor_id", required=False)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(lambda: session.assign_contributor(component_id, contributor_id))

    @app.delete("/api/component/<component_id>/assignments")
    def clear_assignments(component_id: str):
        return _outcome(lambda: session.clear_assignments(component_id))

    @app.delete("/api/component/<component_id>")
    def delete_component(component_id: str):
        return _outcome(lambda: session.delete_component(component_id))

    @app.delete("/api/project/<project_id>")
    def delete_project(project_id: str):
        return _outcome(lambda: session.delete_project(project_id))

    @app.put("/api/component/<component_id>/estimated_weeks")
    def update_estimated_weeks(component_id: str):
        try:
            weeks = _int_field(_json_body(), "estimated_weeks")
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(lambda: session.update_estimated_weeks(component_id, weeks))

    @app.post("/api/component")
    def add_component():
        try:
            data = _json_body()
            project_id = _str_field(data, "project_id")
            skill_id = _str_field(data, "skill_id", required=False)
            weeks_raw = data.get("estimated_weeks")
            weeks = _int_field(data, "estimated_weeks") if weeks_raw not in (None, "") else None
            name = _str_field(data, "name", required=False) or ""
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(lambda: session.add_component(project_id, skill_id, weeks, name=name))

    @app.post("/api/period")
    def create_period():
        try:
            data = _json_body()
            name = _str_field(data, "name", required=False) or ""
            start_date = _date_field(data, "start_date")
            end_date = _date_field(data, "end_date")
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(lambda: session.create_period(name, start_date, end_date), with_message=True)

    @app.post("/api/project")
    def create_project():
        try:
            data = _json_body()
            name = _str_field(data, "name", required=False) or ""
            period_id = _str_field(data, "period_id", required=False)
            description = _str_field(data, "description", required=False) or ""
            components = _component_specs(data)
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        return _outcome(
            lambda: session.create_project(name, period_id, components, description=description),
            with_message=True,
        )

    @app.post("/api/contributor")
    def create_contributor():
        try:
            data = _json_body()
            first_name = _str_field(data, "first_name", required=False) or ""
            last_name = _str_field(data, "last_name", required=False) or ""
            skill_ids = data.get("skill_ids") or []
            if not isinstance(skill_ids, list):
                raise ValueError("skill_ids must be an array")
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400
        selected_skills = [str(s) for s in skill_ids]
        return _outcome(
            lambda: session.create_contributor(first_name, last_name, selected_skills),
            with_message=True,
        )

    return app


if __name__ == "__main__":
    create_app().run(debug=True)
