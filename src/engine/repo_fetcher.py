# src/engine/repo_fetcher.py
import logging
import os
import shlex
import shutil
from dataclasses import dataclass
from typing import Optional

from engine.container import ContainerRuntime, Mount, captured_output
from engine.errors import CheckoutFailed, CheckoutTimeout, CloneFailed, CloneTimeout

# job dir is mounted here; the clone lands in <mount>/repo
WORK_MOUNT = "/work"
REPO_PATH = f"{WORK_MOUNT}/repo"


@dataclass
class FetchedRepo:
    job_dir: str
    repo_dir: str


class RepoFetcher:
    """Shallow-clones repositories inside a git container."""

    def __init__(self, runtime: ContainerRuntime, image: str):
        self.runtime = runtime
        self.image = image

    def fetch(self, repo_url: str, ref: Optional[str], work_root: str, job_id: str, timeout: float) -> FetchedRepo:
        job_dir = os.path.abspath(os.path.join(work_root, job_id))
        repo_dir = os.path.join(job_dir, "repo")

        os.makedirs(job_dir, exist_ok=True)
        shutil.rmtree(repo_dir, ignore_errors=True)
        os.makedirs(repo_dir)
        mounts = [Mount(job_dir, WORK_MOUNT)]

        logging.info(f"[job_id={job_id}] Cloning {repo_url}")
        # "--" keeps a URL starting with "-" from being read as an option
        clone = self.runtime.run(
            self.image,
            ["clone", "--depth", "1", "--", repo_url, REPO_PATH],
            mounts=mounts,
            timeout=timeout,
        )
        if clone.timed_out:
            raise CloneTimeout(f"git clone timed out after {timeout}s", captured_output(clone))
        if clone.exit_code != 0:
            raise CloneFailed("git clone failed", captured_output(clone))

        if ref:
            script = f"cd {REPO_PATH} && git fetch --all --tags && git checkout {shlex.quote(ref)}"
            checkout = self.runtime.run(
                self.image,
                ["-lc", script],
                mounts=mounts,
                timeout=timeout,
                entrypoint="sh",
            )
            if checkout.timed_out:
                raise CheckoutTimeout(f"git checkout timed out after {timeout}s", captured_output(checkout))
            if checkout.exit_code != 0:
                raise CheckoutFailed(f"git checkout of {ref!r} failed", captured_output(checkout))

        return FetchedRepo(job_dir=job_dir, repo_dir=repo_dir)
