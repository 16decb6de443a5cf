from __future__ import annotations

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Literal, Optional

from resource_planner.reconciler import SubmitResult

JobState = Literal["queued", "running", "done", "failed"]
MAX_MESSAGE_LENGTH = 2000
MAX_FINISHED_JOBS = 100

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Return current UTC timestamp as ISO string with second precision."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _trim_message(text: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """Clamp message length to avoid unbounded memory growth."""
    if len(text) <= limit:
        return text
    return text[-limit:]


def _final_message(result: SubmitResult) -> str:
    if not result.submitted and result.error is None:
        return "Nothing submitted: component has no contributor"
    if result.error:
        return result.error
    added = len(result.changes.added)
    removed = len(result.changes.removed)
    return f"Assignments updated (+{added}/-{removed})"


@dataclass
class Job:
    id: str
    component_id: str
    state: JobState = "queued"
    created_at: str = field(default_factory=_now_iso)
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    added_weeks: List[int] = field(default_factory=list)
    removed_weeks: List[int] = field(default_factory=list)
    refreshed: bool = False
    message: str = ""

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "component_id": self.component_id,
            "state": self.state,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "added_weeks": list(self.added_weeks),
            "removed_weeks": list(self.removed_weeks),
            "refreshed": self.refreshed,
            "message": self.message,
        }


class JobStore:
    """In-memory registry of batch submits, each run on a background thread."""

    def __init__(
        self, submit: Callable[[str], SubmitResult], max_finished_jobs: int = MAX_FINISHED_JOBS
    ) -> None:
        self._submit = submit
        self._max_finished_jobs = max_finished_jobs
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create_job(self, component_id: str) -> Job:
        job = Job(id=str(uuid.uuid4()), component_id=component_id)
        with self._lock:
            self._prune_finished()
            self._jobs[job.id] = job
        return job

    def _prune_finished(self) -> None:
        """Drop the oldest finished jobs beyond the retention limit. Caller holds the lock."""
        finished = [job_id for job_id, job in self._jobs.items() if job.state in ("done", "failed")]
        for job_id in finished[: max(0, len(finished) - self._max_finished_jobs)]:
            del self._jobs[job_id]

    def start_job(self, job: Job) -> threading.Thread:
        thread = threading.Thread(target=self._run_job, args=(job.id,), daemon=True)
        thread.start()
        return thread

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job else None

    def list_jobs(self) -> List[Job]:
        with self._lock:
            jobs = list(self._jobs.values())
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return [copy.deepcopy(job) for job in jobs]

    def _get_component_id(self, job_id: str) -> str:
        with self._lock:
            return self._jobs[job_id].component_id

    def _update_job(self, job_id: str, **changes: object) -> None:
        with self._lock:
            job = self._jobs[job_id]
            for key, value in changes.items():
                if key == "message" and isinstance(value, str):
                    value = _trim_message(value)
                setattr(job, key, value)

    def _run_job(self, job_id: str) -> None:
        self._update_job(job_id, state="running", started_at=_now_iso())
        component_id = self._get_component_id(job_id)
        try:
            result = self._submit(component_id)
        except Exception as exc:  # pragma: no cover - keeps the job record consistent
            logger.exception("submit job %s crashed", job_id)
            self._update_job(
                job_id,
                state="failed",
                finished_at=_now_iso(),
                message=_trim_message(str(exc)),
            )
            return
        state: JobState = "done" if result.ok else "failed"
        self._update_job(
            job_id,
            state=state,
            finished_at=_now_iso(),
            added_weeks=result.changes.added_weeks(),
            removed_weeks=result.changes.removed_weeks(),
            refreshed=result.refreshed,
            message=_final_message(result),
        )
