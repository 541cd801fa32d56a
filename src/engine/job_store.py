# src/engine/job_store.py
"""
JobStore: durable job queue backed by SQLAlchemy.

Jobs, their append-only log lines and their findings live in one database.
All state changes are conditional updates so that concurrent workers (threads
or processes sharing the database) can never hand the same job to two callers.
"""

import json
import logging
import time
import uuid
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from engine.errors import DuplicateJobId, JobNotFound
from engine.models import (
    FAILED,
    LOG_LEVELS,
    QUEUED,
    RUNNING,
    SUCCEEDED,
    Finding,
    JobLog,
    ScanJob,
    utcnow,
)

# status -> statuses it may be entered from
_ALLOWED_FROM = {
    RUNNING: (QUEUED, RUNNING),
    SUCCEEDED: (RUNNING,),
    FAILED: (RUNNING,),
}

_STATUS_FIELDS = ("started_at", "finished_at", "error", "workdir")


def new_job_id() -> str:
    # creation-sortable: epoch millis + random suffix
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:16]}"


class JobStore:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create(self, repo_url: str, ref: Optional[str] = None, job_id: Optional[str] = None) -> ScanJob:
        job = ScanJob(job_id=job_id or new_job_id(), status=QUEUED, repo_url=repo_url, ref=ref, created_at=utcnow())
        with self.session_factory() as db:
            db.add(job)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise DuplicateJobId(job.job_id)
        logging.info(f"[job_id={job.job_id}] Queued scan job. repo_url={repo_url} ref={ref}")
        return job

    def append_log(self, job_id: str, level: str, message: str) -> JobLog:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        with self.session_factory() as db:
            if db.query(ScanJob.job_id).filter(ScanJob.job_id == job_id).first() is None:
                raise JobNotFound(job_id)
            entry = JobLog(job_id=job_id, ts=utcnow(), level=level, line=message)
            db.add(entry)
            db.commit()
            return entry

    def record_finding(self, job_id: str, tool: str, summary: Any, raw: Any) -> Finding:
        with self.session_factory() as db:
            if db.query(ScanJob.job_id).filter(ScanJob.job_id == job_id).first() is None:
                raise JobNotFound(job_id)
            finding = Finding(
                job_id=job_id,
                tool=tool,
                created_at=utcnow(),
                summary_json=json.dumps(summary),
                raw_json=json.dumps(raw),
            )
            db.add(finding)
            db.commit()
            return finding

    def set_status(self, job_id: str, status: str, **fields) -> bool:
        """
        Move a job to `status`, only along queued -> running -> succeeded|failed.

        Returns False without raising when the job is gone or the transition
        would go backwards.
        """
        if status not in _ALLOWED_FROM:
            raise ValueError(f"Cannot transition a job to {status!r}")
        unknown = set(fields) - set(_STATUS_FIELDS)
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")

        values = {ScanJob.status: status}
        for name, value in fields.items():
            values[getattr(ScanJob, name)] = value
        with self.session_factory() as db:
            updated = (
                db.query(ScanJob)
                .filter(ScanJob.job_id == job_id, ScanJob.status.in_(_ALLOWED_FROM[status]))
                .update(values, synchronize_session=False)
            )
            db.commit()
        return updated == 1

    def claim_next(self) -> Optional[ScanJob]:
        """
        Take the oldest queued job and mark it running.

        The update only applies while the row is still queued; a caller that
        loses the race to another claimer gets None.
        """
        with self.session_factory() as db:
            candidate = (
                db.query(ScanJob.job_id)
                .filter(ScanJob.status == QUEUED)
                .order_by(ScanJob.created_at.asc(), ScanJob.job_id.asc())
                .first()
            )
            if candidate is None:
                return None
            claimed = (
                db.query(ScanJob)
                .filter(ScanJob.job_id == candidate.job_id, ScanJob.status == QUEUED)
                .update({ScanJob.status: RUNNING, ScanJob.started_at: utcnow()}, synchronize_session=False)
            )
            db.commit()
            if claimed != 1:
                return None
            return db.get(ScanJob, candidate.job_id)

    def read_job(self, job_id: str) -> Optional[ScanJob]:
        with self.session_factory() as db:
            return db.get(ScanJob, job_id)

    def list_recent_jobs(self, limit: int = 20, offset: int = 0, status: Optional[str] = None) -> List[ScanJob]:
        with self.session_factory() as db:
            query = db.query(ScanJob)
            if status:
                query = query.filter(ScanJob.status == status)
            return (
                query.order_by(ScanJob.created_at.desc(), ScanJob.job_id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )

    def read_findings(self, job_id: str) -> List[Finding]:
        with self.session_factory() as db:
            return db.query(Finding).filter(Finding.job_id == job_id).order_by(Finding.id.asc()).all()

    def read_logs_since(self, job_id: str, cursor: int = 0, limit: int = 500) -> List[JobLog]:
        with self.session_factory() as db:
            return (
                db.query(JobLog)
                .filter(JobLog.job_id == job_id, JobLog.id > cursor)
                .order_by(JobLog.id.asc())
                .limit(limit)
                .all()
            )
