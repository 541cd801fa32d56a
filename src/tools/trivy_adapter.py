# src/tools/trivy_adapter.py
from engine.repo_fetcher import REPO_PATH, WORK_MOUNT
from utils.severity import count_severities

from .base import SecurityToolAdapter, as_dict, as_list

SEVERITIES = ("CRITICAL", "HIGH", "MEDIUM", "LOW")


class TrivyAdapter(SecurityToolAdapter):
    """Filesystem vulnerability scan. Summary: {vulns, critical, high, medium, low}."""

    name = "trivy"

    def build_args(self):
        return ["fs", REPO_PATH, "--format", "json", "--quiet"]

    def build_env(self):
        # keep the vulnerability DB inside the job dir, not on the host
        return {"TRIVY_CACHE_DIR": f"{WORK_MOUNT}/.trivy-cache"}

    def summarize(self, raw) -> dict:
        vulnerabilities = []
        for result in as_list(as_dict(raw).get("Results")):
            vulnerabilities.extend(as_list(as_dict(result).get("Vulnerabilities")))
        counts = count_severities((as_dict(v).get("Severity") for v in vulnerabilities), SEVERITIES)
        return {"vulns": len(vulnerabilities), **counts}
