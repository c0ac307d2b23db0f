import asyncio

from jobs import Job, JobRegistry, JobState


def test_create_returns_fresh_running_job():
    registry = JobRegistry()
    ids = {registry.create() for _ in range(200)}
    assert len(ids) == 200

    job = registry.get(next(iter(ids)))
    assert job.state is JobState.RUNNING
    assert job.progress == 0
    assert not job.terminal
    assert job.snapshot() == {"progress": 0, "done": False, "file": None, "error": None}


def test_get_unknown_returns_none():
    assert JobRegistry().get("missing") is None


def test_get_returns_detached_copy():
    registry = JobRegistry()
    job_id = registry.create()
    registry.get(job_id).progress = 99
    assert registry.get(job_id).progress == 0


def test_update_overwrites_progress():
    registry = JobRegistry()
    job_id = registry.create()

    def set_to(value):
        def _mutate(job):
            job.progress = value
        return _mutate

    assert registry.update(job_id, set_to(55.5))
    assert registry.update(job_id, set_to(30.0))
    assert registry.get(job_id).progress == 30.0


def test_terminal_job_is_immutable():
    registry = JobRegistry()
    job_id = registry.create()
    assert registry.update(job_id, lambda job: job.mark_done("abc_Title.mp4"))

    before = registry.get(job_id)
    assert before.finished_at is not None
    assert not registry.update(job_id, lambda job: setattr(job, "progress", 12.0))
    assert not registry.update(job_id, lambda job: job.mark_failed("late"))

    after = registry.get(job_id)
    assert after == before
    assert after.snapshot() == {"progress": 100, "done": True, "file": "abc_Title.mp4", "error": None}


def test_failed_snapshot_keeps_progress():
    job = Job(id="x", state=JobState.RUNNING, progress=41.6)
    job.mark_failed("Download failed with code 1")
    assert job.snapshot() == {"progress": 42, "done": False, "file": None, "error": "Download failed with code 1"}


def test_update_unknown_job_returns_false():
    assert not JobRegistry().update("missing", lambda job: None)


def test_delete():
    registry = JobRegistry()
    job_id = registry.create()
    assert job_id in registry
    assert registry.delete(job_id)
    assert not registry.delete(job_id)
    assert registry.get(job_id) is None
    assert len(registry) == 0


def test_expire_removes_job_after_grace():
    async def scenario():
        registry = JobRegistry()
        job_id = registry.create()
        registry.update(job_id, lambda job: job.mark_done("f.mp4"))
        registry.expire(job_id, 0.05)
        # A second schedule does not push the deadline back
        registry.expire(job_id, 60)
        first = registry.get(job_id).snapshot()
        second = registry.get(job_id).snapshot()
        await asyncio.sleep(0.1)
        return first, second, registry.get(job_id)

    first, second, gone = asyncio.run(scenario())
    assert first == second
    assert gone is None
