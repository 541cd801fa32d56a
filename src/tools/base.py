# src/tools/base.py
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from engine.container import ContainerRuntime, Mount, RunResult, captured_output
from engine.errors import ParseError, ToolFailed, ToolTimeout
from engine.repo_fetcher import WORK_MOUNT
from utils.json_extract import parse_tool_json


class SecurityToolAdapter(ABC):
    """
    Runs one scanner image against a fetched repository.

    The job directory is mounted at /work and the checkout is at /work/repo.
    Subclasses provide the tool arguments and the summary of its report.
    """

    name: str = ""

    def __init__(self, runtime: ContainerRuntime):
        self.runtime = runtime

    @abstractmethod
    def build_args(self) -> List[str]:
        pass

    def build_env(self) -> Optional[Dict[str, str]]:
        return None

    @abstractmethod
    def summarize(self, raw) -> dict:
        """Reduce a raw report to a small fixed-shape dict. Must never raise."""

    def scan(self, job_dir: str, image: str, timeout: float) -> dict:
        result = self.runtime.run(
            image,
            self.build_args(),
            mounts=[Mount(job_dir, WORK_MOUNT)],
            env=self.build_env(),
            timeout=timeout,
        )
        self.check_result(result, timeout)
        try:
            return parse_tool_json(result.stdout)
        except ParseError as e:
            raise ParseError(f"{self.name} output is not valid JSON", captured_output(result)) from e

    def check_result(self, result: RunResult, timeout: float) -> None:
        output = captured_output(result)
        if result.timed_out:
            raise ToolTimeout(self.name, timeout, output)
        if result.exit_code != 0:
            raise ToolFailed(self.name, result.exit_code, output)


def as_list(value) -> list:
    return value if isinstance(value, list) else []


def as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}
