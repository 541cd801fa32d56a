# src/tools/registry.py
from typing import List

from config import Settings
from engine.container import ContainerRuntime

from .base import SecurityToolAdapter
from .grype_adapter import GrypeAdapter
from .semgrep_adapter import SemgrepAdapter
from .syft_adapter import SyftAdapter
from .trivy_adapter import TrivyAdapter

ADAPTERS = {
    adapter.name: adapter
    for adapter in (TrivyAdapter, SemgrepAdapter, GrypeAdapter, SyftAdapter)
}


def build_adapters(settings: Settings, runtime: ContainerRuntime) -> List[SecurityToolAdapter]:
    """Adapters for `settings.scan_tools`, in the configured order."""
    unknown = [name for name in settings.tool_names if name not in ADAPTERS]
    if unknown:
        raise ValueError(f"Unsupported scan tools: {', '.join(unknown)}")
    return [ADAPTERS[name](runtime) for name in settings.tool_names]
