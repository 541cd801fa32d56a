# src/api/schemas.py
import json
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from engine.models import Finding, JobLog, ScanJob


class ScanSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    repo_url: str = Field("", alias="repoUrl", description="http(s) URL of the repository to clone")
    ref: Optional[str] = Field(None, description="Branch, tag or commit to check out (optional)")

    @field_validator("ref")
    @classmethod
    def blank_ref_means_default_branch(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        # SQLite drops tzinfo; timestamps are written in UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def job_to_dict(job: ScanJob) -> dict:
    # the work directory is a host path and stays internal
    return {
        "jobId": job.job_id,
        "status": job.status,
        "repoUrl": job.repo_url,
        "ref": job.ref,
        "createdAt": _iso(job.created_at),
        "startedAt": _iso(job.started_at),
        "finishedAt": _iso(job.finished_at),
        "error": job.error,
    }


def finding_to_dict(finding: Finding, include_raw: bool = False) -> dict:
    data = {
        "tool": finding.tool,
        "createdAt": _iso(finding.created_at),
        "summary": json.loads(finding.summary_json),
    }
    if include_raw:
        data["raw"] = json.loads(finding.raw_json)
    return data


def log_to_dict(entry: JobLog) -> dict:
    return {"id": entry.id, "ts": _iso(entry.ts), "level": entry.level, "line": entry.line}
