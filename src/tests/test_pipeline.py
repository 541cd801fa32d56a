import os
import time

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from engine.errors import CloneFailed, ToolFailed
from engine.job_store import JobStore
from engine.models import FAILED, RUNNING, SUCCEEDED, ScanJob
from engine.pipeline import PipelineExecutor
from engine.repo_fetcher import FetchedRepo
from engine.worker_pool import WorkerPool


class FakeFetcher:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.dir_contents = None

    def fetch(self, repo_url, ref, work_root, job_id, timeout):
        job_dir = os.path.abspath(os.path.join(work_root, job_id))
        self.calls.append((repo_url, ref, job_id, timeout))
        self.dir_contents = os.listdir(job_dir)
        if self.error:
            raise self.error
        return FetchedRepo(job_dir=job_dir, repo_dir=os.path.join(job_dir, "repo"))


class FakeAdapter:
    def __init__(self, name, store, error=None):
        self.name = name
        self.store = store
        self.error = error
        self.scans = []
        self.status_during_scan = None

    def scan(self, job_dir, image, timeout):
        self.scans.append((job_dir, image, timeout))
        job_id = os.path.basename(job_dir)
        self.status_during_scan = self.store.read_job(job_id).status
        if self.error:
            raise self.error
        return {"tool": self.name, "items": [1, 2]}

    def summarize(self, raw):
        return {"count": len(raw["items"])}


def _claim(store, repo_url="https://github.com/org/repo", ref=None):
    store.create(repo_url, ref)
    return store.claim_next()


def _adapters(store, failing=None):
    return [
        FakeAdapter(name, store, error=ToolFailed(name, 1, "rule crash") if name == failing else None)
        for name in ("trivy", "semgrep", "grype")
    ]


def test_successful_pipeline(store, settings):
    adapters = _adapters(store)
    fetcher = FakeFetcher()
    job = _claim(store, ref="v2")

    status = PipelineExecutor(store, fetcher, adapters, settings).execute(job)

    assert status == SUCCEEDED
    stored = store.read_job(job.job_id)
    assert stored.status == SUCCEEDED
    assert stored.finished_at is not None
    assert stored.error is None
    assert stored.workdir == os.path.abspath(os.path.join(settings.work_root, job.job_id))
    assert fetcher.calls == [("https://github.com/org/repo", "v2", job.job_id, settings.clone_timeout)]
    assert [f.tool for f in store.read_findings(job.job_id)] == ["trivy", "semgrep", "grype"]
    assert all(a.status_during_scan == RUNNING for a in adapters)
    assert adapters[0].scans[0][1:] == (settings.img_trivy, settings.scan_timeout)

    lines = [entry.line for entry in store.read_logs_since(job.job_id, 0)]
    assert lines[0] == "Starting job: https://github.com/org/repo @ v2"
    assert lines[1] == "Cloning repository..."
    running = [line for line in lines if line.startswith("Running ")]
    assert running == ["Running trivy...", "Running semgrep...", "Running grype..."]
    assert lines[-1] == "Job finished"


def test_failing_tool_skips_the_rest(store, settings):
    adapters = _adapters(store, failing="semgrep")
    job = _claim(store)

    status = PipelineExecutor(store, FakeFetcher(), adapters, settings).execute(job)

    assert status == FAILED
    stored = store.read_job(job.job_id)
    assert stored.status == FAILED
    assert "semgrep failed" in stored.error
    assert stored.finished_at is not None
    findings = store.read_findings(job.job_id)
    assert [f.tool for f in findings] == ["trivy"]
    assert len(adapters[1].scans) == 1
    assert adapters[2].scans == []

    entries = store.read_logs_since(job.job_id, 0)
    assert entries[-1].level == "error"
    assert "rule crash" in entries[-1].line


def test_fetch_failure_fails_job(store, settings):
    adapters = _adapters(store)
    job = _claim(store)

    status = PipelineExecutor(store, FakeFetcher(CloneFailed("git clone failed", "not found")), adapters, settings).execute(job)

    assert status == FAILED
    assert store.read_job(job.job_id).error == "git clone failed: not found"
    assert store.read_findings(job.job_id) == []
    assert all(a.scans == [] for a in adapters)


def test_stale_workdir_is_cleared(store, settings):
    job = _claim(store)
    stale_dir = os.path.join(settings.work_root, job.job_id)
    os.makedirs(stale_dir)
    with open(os.path.join(stale_dir, "stale.txt"), "w") as f:
        f.write("previous attempt")
    fetcher = FakeFetcher()

    PipelineExecutor(store, fetcher, [], settings).execute(job)

    assert fetcher.dir_contents == []
    assert store.read_job(job.job_id).status == SUCCEEDED


def test_database_errors_propagate(store, settings):
    adapter = _adapters(store)[0]
    adapter.error = OperationalError("UPDATE scan_jobs", {}, Exception("database is locked"))
    job = _claim(store)

    with pytest.raises(SQLAlchemyError):
        PipelineExecutor(store, FakeFetcher(), [adapter], settings).execute(job)
    assert store.read_job(job.job_id).status == RUNNING


class DeletingStore(JobStore):
    """Deletes a job at the moment the pipeline tries to mark it succeeded."""

    def __init__(self, session_factory, doomed):
        super().__init__(session_factory)
        self.doomed = doomed

    def set_status(self, job_id, status, **fields):
        if job_id in self.doomed and status == SUCCEEDED:
            with self.session_factory() as db:
                db.delete(db.get(ScanJob, job_id))
                db.commit()
        return super().set_status(job_id, status, **fields)


def test_job_deleted_before_finalize(store, settings):
    job = _claim(store)
    deleting = DeletingStore(store.session_factory, {job.job_id})

    status = PipelineExecutor(deleting, FakeFetcher(), _adapters(deleting), settings).execute(job)

    assert status == SUCCEEDED
    assert store.read_job(job.job_id) is None


def test_pool_keeps_claiming_after_job_deleted(store, settings):
    first = store.create("https://github.com/org/gone", job_id="1-gone")
    second = store.create("https://github.com/org/repo", job_id="2-kept")
    deleting = DeletingStore(store.session_factory, {first.job_id})
    executor = PipelineExecutor(deleting, FakeFetcher(), _adapters(deleting), settings)
    pool = WorkerPool(deleting, executor, concurrency=1, idle_sleep=0.02)

    pool.start()
    deadline = time.monotonic() + 10
    while time.monotonic() < deadline and store.read_job(second.job_id).status != SUCCEEDED:
        time.sleep(0.02)
    pool.stop()
    pool.join(timeout=5)

    assert store.read_job(first.job_id) is None
    assert store.read_job(second.job_id).status == SUCCEEDED
