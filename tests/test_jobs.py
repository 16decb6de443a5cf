from resource_planner.reconciler import SubmitResult
from resource_planner.tracker import PendingChangeSet
from webapp.jobs import JobStore, _trim_message


def _run(store, component_id="c1"):
    job = store.create_job(component_id)
    store.start_job(job).join(timeout=5)
    return store.get_job(job.id)


def test_successful_submit_marks_job_done():
    changes = PendingChangeSet(added=frozenset({3, 1}), removed=frozenset({0}))
    store = JobStore(lambda cid: SubmitResult(cid, submitted=True, changes=changes, refreshed=True))

    job = _run(store)

    assert job.state == "done"
    assert job.added_weeks == [1, 3]
    assert job.removed_weeks == [0]
    assert job.refreshed is True
    assert job.message == "Assignments updated (+2/-1)"
    assert job.started_at is not None and job.finished_at is not None


def test_failed_submit_marks_job_failed_with_error():
    store = JobStore(lambda cid: SubmitResult(cid, submitted=False, error="Week is locked"))

    job = _run(store)

    assert job.state == "failed"
    assert job.message == "Week is locked"


def test_component_without_contributor_is_reported():
    store = JobStore(lambda cid: SubmitResult(cid, submitted=False))
    assert _run(store).message == "Nothing submitted: component has no contributor"


def test_get_job_returns_a_copy():
    store = JobStore(lambda cid: SubmitResult(cid, submitted=True))
    job = store.create_job("c1")

    copy = store.get_job(job.id)
    copy.state = "done"

    assert store.get_job(job.id).state == "queued"
    assert store.get_job("missing") is None
    assert [j.id for j in store.list_jobs()] == [job.id]


def test_trim_message_keeps_the_tail():
    assert _trim_message("abcdef", limit=3) == "def"
    assert _trim_message("abc", limit=3) == "abc"


def test_oldest_finished_jobs_are_pruned():
    store = JobStore(lambda cid: SubmitResult(cid, submitted=True), max_finished_jobs=2)
    finished = [_run(store, f"c{i}").id for i in range(4)]

    pending = store.create_job("c9")

    remaining = {job.id for job in store.list_jobs()}
    assert remaining == {finished[2], finished[3], pending.id}
    assert store.get_job(finished[0]) is None
