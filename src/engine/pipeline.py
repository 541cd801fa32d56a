# src/engine/pipeline.py
"""
PipelineExecutor: drives one claimed job to a terminal state.

Preparing -> Fetching -> Scanning(tool 1..n) -> Finalizing -> succeeded | failed

Scanners run one after another in the configured order. Each finding is stored
as soon as its tool finishes; the first failing stage fails the job and the
remaining tools are skipped. Database errors are not handled here: they escape
to the worker pool, which stops.
"""

import logging
import os
import shutil
from typing import List

from sqlalchemy.exc import SQLAlchemyError

from config import Settings
from engine.errors import JobNotFound
from engine.job_store import JobStore
from engine.models import FAILED, RUNNING, SUCCEEDED, ScanJob, utcnow
from engine.repo_fetcher import RepoFetcher
from tools.base import SecurityToolAdapter


class PipelineExecutor:
    def __init__(
        self,
        store: JobStore,
        fetcher: RepoFetcher,
        adapters: List[SecurityToolAdapter],
        settings: Settings,
    ):
        self.store = store
        self.fetcher = fetcher
        self.adapters = adapters
        self.settings = settings

    def job_dir(self, job_id: str) -> str:
        return os.path.abspath(os.path.join(self.settings.work_root, job_id))

    def _prepare(self, job_dir: str) -> None:
        # never scan into a directory holding a previous attempt's files
        shutil.rmtree(job_dir, ignore_errors=True)
        os.makedirs(job_dir)

    def execute(self, job: ScanJob) -> str:
        """Run all stages for `job`; returns the terminal status."""
        job_id = job.job_id
        job_dir = self.job_dir(job_id)
        target = f"{job.repo_url} @ {job.ref}" if job.ref else job.repo_url
        try:
            self._prepare(job_dir)
            self.store.set_status(job_id, RUNNING, workdir=job_dir)
            self.store.append_log(job_id, "info", f"Starting job: {target}")
            logging.info(f"[job_id={job_id}] Started scan job. target={target}")

            self.store.append_log(job_id, "info", "Cloning repository...")
            fetched = self.fetcher.fetch(
                job.repo_url, job.ref, self.settings.work_root, job_id, self.settings.clone_timeout
            )

            for adapter in self.adapters:
                self.store.append_log(job_id, "info", f"Running {adapter.name}...")
                raw = adapter.scan(fetched.job_dir, self.settings.image_for(adapter.name), self.settings.scan_timeout)
                summary = adapter.summarize(raw)
                self.store.record_finding(job_id, adapter.name, summary, raw)
                self.store.append_log(job_id, "info", f"{adapter.name} done: {summary}")
        except SQLAlchemyError:
            raise
        except Exception as e:
            return self._fail(job_id, e)

        if not self.store.set_status(job_id, SUCCEEDED, finished_at=utcnow(), error=None):
            logging.warning(f"[job_id={job_id}] Job disappeared while running")
            return SUCCEEDED
        self.store.append_log(job_id, "info", "Job finished")
        logging.info(f"[job_id={job_id}] Completed scan job.")
        return SUCCEEDED

    def _fail(self, job_id: str, exc: Exception) -> str:
        message = str(exc) or exc.__class__.__name__
        logging.error(f"[job_id={job_id}] Scan job failed: {message}")
        try:
            self.store.append_log(job_id, "error", message)
        except JobNotFound:
            logging.warning(f"[job_id={job_id}] Job disappeared while running")
        self.store.set_status(job_id, FAILED, finished_at=utcnow(), error=message)
        return FAILED
