import pytest

from config import Settings
from engine.container import RunResult
from engine.db import create_session_factory
from engine.job_store import JobStore


class FakeRuntime:
    """Stands in for ContainerRuntime: records calls and replays canned results."""

    def __init__(self, results=None):
        self.calls = []
        self.results = list(results or [])

    def run(self, image, args, mounts=(), workdir=None, env=None, timeout=None, entrypoint=None):
        self.calls.append({
            "image": image,
            "args": list(args),
            "mounts": list(mounts),
            "workdir": workdir,
            "env": env,
            "timeout": timeout,
            "entrypoint": entrypoint,
        })
        if self.results:
            return self.results.pop(0)
        return RunResult(exit_code=0, stdout="{}", stderr="")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'scanner.sqlite'}",
        work_root=str(tmp_path / "work"),
        idle_sleep=0.05,
        pull_images=False,
        webhook_token="",
        allowed_git_hosts="github.com",
    )


@pytest.fixture
def store(settings):
    return JobStore(create_session_factory(settings.database_url))


@pytest.fixture
def fake_runtime():
    return FakeRuntime
