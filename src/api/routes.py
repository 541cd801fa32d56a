# src/api/routes.py
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from api.schemas import ScanSubmission, finding_to_dict, job_to_dict, log_to_dict
from api.validation import check_bearer_token, validate_ref, validate_repo_url
from config import Settings
from engine.job_store import JobStore
from engine.models import JOB_STATUSES

router = APIRouter()


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_token(authorization: Optional[str] = Header(None), settings: Settings = Depends(get_settings)) -> None:
    check_bearer_token(authorization, settings.webhook_token)


def _not_found() -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "Not found"})


@router.get("/health")
def health_check():
    return {"ok": True}


@router.post(
    "/scan",
    summary="Submit a repository scan job",
    response_description="Job ID and queued status",
    tags=["Scan Jobs"],
    status_code=202,
    response_model=dict,
    dependencies=[Depends(require_token)],
    responses={
        202: {"description": "Job queued"},
        400: {"description": "Invalid repository URL, host or ref"},
        401: {"description": "Missing or wrong bearer token"},
    },
)
def submit_scan(
    submission: ScanSubmission = Body(...),
    store: JobStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Queue a scan of `repoUrl` (optionally at `ref`). Workers pick the job up
    in submission order; poll /jobs/{id} and /jobs/{id}/logs for progress.
    """
    validate_repo_url(submission.repo_url, settings.allowed_hosts)
    validate_ref(submission.ref)

    job = store.create(submission.repo_url, submission.ref)
    target = f"{job.repo_url} @ {job.ref}" if job.ref else job.repo_url
    store.append_log(job.job_id, "info", f"Job queued for {target}")
    return {"jobId": job.job_id, "status": job.status}


@router.get(
    "/scans",
    summary="List recent scan jobs",
    tags=["Scan Jobs"],
    response_model=dict,
)
def list_scans(
    limit: int = Query(20, ge=1),
    offset: int = Query(0, ge=0),
    status: Optional[str] = Query(None),
    store: JobStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Newest first. `limit` is capped at the configured page size."""
    if status is not None and status not in JOB_STATUSES:
        return JSONResponse(status_code=400, content={"error": f"Unknown status: {status}"})
    limit = min(limit, settings.scans_page_size)
    jobs = store.list_recent_jobs(limit=limit, offset=offset, status=status)
    return {"jobs": [job_to_dict(job) for job in jobs]}


@router.get(
    "/jobs/{job_id}",
    summary="Get scan job status",
    tags=["Scan Jobs"],
    response_model=dict,
    responses={404: {"description": "Job not found"}},
)
def get_job(job_id: str, store: JobStore = Depends(get_store)):
    job = store.read_job(job_id)
    if job is None:
        return _not_found()
    return job_to_dict(job)


@router.get(
    "/jobs/{job_id}/results",
    summary="Per-tool summaries of a scan job",
    tags=["Results"],
    response_model=dict,
    responses={404: {"description": "Job not found"}},
)
def get_job_results(job_id: str, store: JobStore = Depends(get_store)):
    if store.read_job(job_id) is None:
        return _not_found()
    findings = store.read_findings(job_id)
    return {"jobId": job_id, "findings": [finding_to_dict(f) for f in findings]}


@router.get(
    "/jobs/{job_id}/findings",
    summary="Per-tool summaries and raw reports of a scan job",
    tags=["Results"],
    response_model=dict,
    responses={404: {"description": "Job not found"}},
)
def get_job_findings(job_id: str, store: JobStore = Depends(get_store)):
    if store.read_job(job_id) is None:
        return _not_found()
    findings = store.read_findings(job_id)
    return {"jobId": job_id, "findings": [finding_to_dict(f, include_raw=True) for f in findings]}


@router.get(
    "/jobs/{job_id}/logs",
    summary="Poll job log lines after a cursor",
    tags=["Scan Jobs"],
    response_model=dict,
    responses={404: {"description": "Job not found"}},
)
def get_job_logs(
    job_id: str,
    after: int = Query(0, ge=0, description="Return lines with id greater than this cursor"),
    store: JobStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Pass the returned `next` value as `after` on the following poll."""
    if store.read_job(job_id) is None:
        return _not_found()
    entries = store.read_logs_since(job_id, cursor=after, limit=settings.logs_page_size)
    logging.debug(f"[job_id={job_id}] {len(entries)} log lines after {after}")
    return {
        "jobId": job_id,
        "logs": [log_to_dict(e) for e in entries],
        "next": entries[-1].id if entries else after,
    }
