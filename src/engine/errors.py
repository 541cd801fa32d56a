# src/engine/errors.py
"""
Exception taxonomy for the scan engine.

Store errors describe misuse of the job store. Stage failures are raised by
the repository fetcher and the tool adapters and end the job they belong to;
`detail` keeps the captured process output for the job log.
"""


class ScanCoreError(Exception):
    """Base class for all scan engine errors."""


class JobNotFound(ScanCoreError):
    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class DuplicateJobId(ScanCoreError):
    def __init__(self, job_id: str):
        super().__init__(f"Job already exists: {job_id}")
        self.job_id = job_id


class StageFailure(ScanCoreError):
    """A pipeline stage failed. `detail` holds stderr/stdout for diagnostics."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(f"{message}: {detail}" if detail else message)
        self.detail = detail


class CloneFailed(StageFailure):
    pass


class CloneTimeout(StageFailure):
    pass


class CheckoutFailed(StageFailure):
    pass


class CheckoutTimeout(StageFailure):
    pass


class ToolFailed(StageFailure):
    def __init__(self, tool: str, exit_code: int, detail: str = ""):
        super().__init__(f"{tool} failed (exit code {exit_code})", detail)
        self.tool = tool
        self.exit_code = exit_code


class ToolTimeout(StageFailure):
    def __init__(self, tool: str, timeout: float, detail: str = ""):
        super().__init__(f"{tool} timed out after {timeout}s", detail)
        self.tool = tool
        self.timeout = timeout


class ParseError(StageFailure):
    pass


class SubmissionRejected(ScanCoreError):
    """A client request was refused before any job was created."""

    def __init__(self, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code
