# src/tools/semgrep_adapter.py
from engine.repo_fetcher import REPO_PATH
from utils.severity import count_severities

from .base import SecurityToolAdapter, as_dict, as_list

SEVERITIES = ("ERROR", "WARNING", "INFO")


class SemgrepAdapter(SecurityToolAdapter):
    """Static analysis with the `auto` ruleset. Summary: {findings, error, warning, info}."""

    name = "semgrep"

    def build_args(self):
        return ["semgrep", "--config", "auto", "--json", REPO_PATH]

    def summarize(self, raw) -> dict:
        results = as_list(as_dict(raw).get("results"))
        counts = count_severities((as_dict(as_dict(r).get("extra")).get("severity") for r in results), SEVERITIES)
        return {"findings": len(results), **counts}
