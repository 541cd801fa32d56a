# src/tools/grype_adapter.py
from engine.repo_fetcher import REPO_PATH
from utils.severity import count_severities

from .base import SecurityToolAdapter, as_dict, as_list

SEVERITIES = ("Critical", "High", "Medium", "Low")


class GrypeAdapter(SecurityToolAdapter):
    """Dependency vulnerability matching. Summary: {matches, critical, high, medium, low}."""

    name = "grype"

    def build_args(self):
        return [f"dir:{REPO_PATH}", "-o", "json"]

    def summarize(self, raw) -> dict:
        matches = as_list(as_dict(raw).get("matches"))
        counts = count_severities(
            (as_dict(as_dict(m).get("vulnerability")).get("severity") for m in matches), SEVERITIES
        )
        return {"matches": len(matches), **counts}
