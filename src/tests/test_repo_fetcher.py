import os

import pytest

from engine.container import RunResult
from engine.errors import CheckoutFailed, CheckoutTimeout, CloneFailed, CloneTimeout
from engine.repo_fetcher import RepoFetcher

IMAGE = "alpine/git:2.45.2"


def test_shallow_clone_into_fresh_repo_dir(tmp_path, fake_runtime):
    stale = tmp_path / "job-1" / "repo" / "old.txt"
    stale.parent.mkdir(parents=True)
    stale.write_text("left over")
    runtime = fake_runtime()

    fetched = RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/repo", None, str(tmp_path), "job-1", 60)

    assert fetched.job_dir == str(tmp_path / "job-1")
    assert fetched.repo_dir == str(tmp_path / "job-1" / "repo")
    assert not stale.exists()
    assert os.path.isdir(fetched.repo_dir)
    assert len(runtime.calls) == 1
    call = runtime.calls[0]
    assert call["image"] == IMAGE
    assert call["args"] == ["clone", "--depth", "1", "--", "https://github.com/org/repo", "/work/repo"]
    assert call["mounts"][0].host_path == fetched.job_dir
    assert call["mounts"][0].container_path == "/work"
    assert call["timeout"] == 60


def test_checkout_quotes_ref(tmp_path, fake_runtime):
    runtime = fake_runtime()
    ref = "main'; touch /pwned; echo '"

    RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/repo", ref, str(tmp_path), "job-2", 60)

    assert len(runtime.calls) == 2
    checkout = runtime.calls[1]
    assert checkout["entrypoint"] == "sh"
    assert checkout["args"][0] == "-lc"
    script = checkout["args"][1]
    assert script.startswith("cd /work/repo && git fetch --all --tags && git checkout ")
    assert script.endswith("'main'\"'\"'; touch /pwned; echo '\"'\"''")


def test_clone_timeout(tmp_path, fake_runtime):
    runtime = fake_runtime([RunResult(exit_code=-9, stdout="", stderr="Cloning into...", timed_out=True)])
    with pytest.raises(CloneTimeout):
        RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/repo", "main", str(tmp_path), "job-3", 1)
    assert len(runtime.calls) == 1


def test_clone_failure_carries_output(tmp_path, fake_runtime):
    runtime = fake_runtime([RunResult(exit_code=128, stdout="", stderr="fatal: repository not found")])
    with pytest.raises(CloneFailed) as excinfo:
        RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/missing", None, str(tmp_path), "job-4", 60)
    assert excinfo.value.detail == "fatal: repository not found"
    assert "repository not found" in str(excinfo.value)


def test_checkout_failure(tmp_path, fake_runtime):
    runtime = fake_runtime([
        RunResult(exit_code=0, stdout="", stderr=""),
        RunResult(exit_code=1, stdout="error: pathspec 'nope' did not match", stderr=""),
    ])
    with pytest.raises(CheckoutFailed) as excinfo:
        RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/repo", "nope", str(tmp_path), "job-5", 60)
    assert "did not match" in excinfo.value.detail


def test_checkout_timeout(tmp_path, fake_runtime):
    runtime = fake_runtime([
        RunResult(exit_code=0, stdout="", stderr=""),
        RunResult(exit_code=-9, stdout="", stderr="remote: Enumerating objects", timed_out=True),
    ])
    with pytest.raises(CheckoutTimeout) as excinfo:
        RepoFetcher(runtime, IMAGE).fetch("https://github.com/org/repo", "v1.0", str(tmp_path), "job-6", 30)
    assert len(runtime.calls) == 2
    assert "timed out after 30s" in str(excinfo.value)
    assert excinfo.value.detail == "remote: Enumerating objects"
