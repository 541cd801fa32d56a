# src/tools/syft_adapter.py
from engine.repo_fetcher import REPO_PATH

from .base import SecurityToolAdapter, as_dict, as_list


class SyftAdapter(SecurityToolAdapter):
    """SBOM generation (syft native JSON). Summary: {packages}."""

    name = "syft"

    def build_args(self):
        return [f"dir:{REPO_PATH}", "-o", "json"]

    def summarize(self, raw) -> dict:
        return {"packages": len(as_list(as_dict(raw).get("artifacts")))}
