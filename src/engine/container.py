# src/engine/container.py
"""
ContainerRuntime: run a tool image as a throw-away container with a hard timeout.

Containers are started through the docker CLI (`docker run --rm`) so output is
buffered exactly as the tool prints it. Each run gets a unique container name;
when the deadline passes the CLI is killed and the container is force-removed
through the docker SDK, which `--rm` alone does not guarantee.
"""
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence

import docker
from docker.errors import DockerException, ImageNotFound, NotFound

from config import Settings
from utils.process import ProcessResult, run_bounded


@dataclass(frozen=True)
class Mount:
    host_path: str
    container_path: str
    read_only: bool = False


@dataclass
class RunResult:
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False


def captured_output(result: RunResult) -> str:
    """Both streams of a finished run, stderr first, empty ones left out."""
    parts = [result.stderr.strip(), result.stdout.strip()]
    return "\n".join(part for part in parts if part)


def build_docker_args(
    image: str,
    args: Sequence[str],
    mounts: Sequence[Mount] = (),
    workdir: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    name: Optional[str] = None,
    entrypoint: Optional[str] = None,
) -> List[str]:
    """Arguments for `docker` (without the binary) that run `image args...` and auto-remove it."""
    out = ["run", "--rm"]
    if name:
        out += ["--name", name]
    if entrypoint:
        out += ["--entrypoint", entrypoint]
    for mount in mounts:
        suffix = ":ro" if mount.read_only else ""
        out += ["-v", f"{os.path.abspath(mount.host_path)}:{mount.container_path}{suffix}"]
    if workdir:
        out += ["-w", workdir]
    for key, value in (env or {}).items():
        out += ["-e", f"{key}={value}"]
    out.append(image)
    out.extend(args)
    return out


class ContainerRuntime:
    def __init__(
        self,
        settings: Settings,
        runner: Callable[..., ProcessResult] = run_bounded,
        docker_client=None,
    ):
        self.docker_binary = settings.docker_binary
        self.pull_images = settings.pull_images
        self._runner = runner
        self._client = docker_client

    @property
    def client(self):
        # created lazily: from_env() talks to the daemon
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def ensure_image(self, image: str) -> None:
        """Pull `image` if it is not present locally."""
        try:
            self.client.images.get(image)
        except ImageNotFound:
            logging.info(f"Pulling image {image}")
            self.client.images.pull(image)

    def run(
        self,
        image: str,
        args: Sequence[str],
        mounts: Sequence[Mount] = (),
        workdir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        entrypoint: Optional[str] = None,
    ) -> RunResult:
        if self.pull_images:
            try:
                self.ensure_image(image)
            except DockerException as e:
                # docker run reports the real problem if the image is still missing
                logging.warning(f"Could not pull image {image}: {e}")

        name = f"scan-{uuid.uuid4().hex[:12]}"
        cmd = [self.docker_binary] + build_docker_args(
            image, args, mounts, workdir, env, name=name, entrypoint=entrypoint
        )
        logging.debug(f"Running container {name}: {' '.join(cmd)}")
        result = self._runner(cmd, timeout=timeout)

        if result.timed_out:
            self._force_remove(name)
        return RunResult(
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            timed_out=result.timed_out,
        )

    def _force_remove(self, name: str) -> None:
        try:
            self.client.containers.get(name).remove(force=True)
            logging.info(f"Removed timed out container {name}")
        except NotFound:
            pass  # the CLI's --rm already cleaned it up
        except DockerException as e:
            logging.error(f"Failed to remove timed out container {name}: {e}")
