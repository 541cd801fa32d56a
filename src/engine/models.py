# src/engine/models.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

QUEUED = "queued"
RUNNING = "running"
SUCCEEDED = "succeeded"
FAILED = "failed"
JOB_STATUSES = (QUEUED, RUNNING, SUCCEEDED, FAILED)
TERMINAL_STATUSES = (SUCCEEDED, FAILED)

LOG_LEVELS = ("info", "warn", "error")


def utcnow():
    return datetime.now(timezone.utc)


class ScanJob(Base):
    __tablename__ = 'scan_jobs'
    job_id = Column(String, primary_key=True)
    status = Column(String, nullable=False, default=QUEUED)
    repo_url = Column(String, nullable=False)
    ref = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)
    workdir = Column(String, nullable=True)
    error = Column(Text, nullable=True)

    logs = relationship("JobLog", back_populates="job", cascade="all, delete-orphan", passive_deletes=True)
    findings = relationship("Finding", back_populates="job", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_scan_jobs_status_created", "status", "created_at"),
    )


class JobLog(Base):
    __tablename__ = 'job_logs'
    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String, ForeignKey("scan_jobs.job_id", ondelete="CASCADE"), nullable=False)
    ts = Column(DateTime, nullable=False, default=utcnow)
    level = Column(String, nullable=False)
    line = Column(Text, nullable=False)

    job = relationship("ScanJob", back_populates="logs")

    __table_args__ = (
        Index("ix_job_logs_job_id_id", "job_id", "id"),
    )


class Finding(Base):
    __tablename__ = 'findings'
    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String, ForeignKey("scan_jobs.job_id", ondelete="CASCADE"), nullable=False)
    tool = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    summary_json = Column(Text, nullable=False)  # JSON string of the canonical summary
    raw_json = Column(Text, nullable=False)  # JSON string of the full tool output

    job = relationship("ScanJob", back_populates="findings")

    __table_args__ = (
        Index("ix_findings_job_id_tool", "job_id", "tool"),
    )
