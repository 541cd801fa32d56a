# src/utils/process.py
"""
Bounded subprocess execution.

run_bounded() starts a command in its own process group, waits for it with a
deadline, kills the whole group when the deadline passes and always returns
whatever output was captured. It never raises for a non-zero exit or a timeout.
"""
import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from typing import Dict, List, Optional


_DRAIN_TIMEOUT = 5


@dataclass
class ProcessResult:
    args: List[str]
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False
    duration_seconds: float = 0.0


def _kill_process_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(os.getpgid(process.pid), signal.SIGKILL)
    except ProcessLookupError:
        pass  # already gone
    except PermissionError:
        process.kill()


def _decode(data: Optional[bytes]) -> str:
    return data.decode("utf-8", errors="replace") if data else ""


def run_bounded(
    cmd: List[str],
    timeout: Optional[float] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
) -> ProcessResult:
    """
    Run `cmd` (argv list, no shell) and capture stdout/stderr.

    Args:
        cmd: Command and arguments.
        timeout: Seconds before the process group is killed. None or <= 0 waits forever.
        env: Extra environment variables merged over the current environment.
        cwd: Working directory for the process.
    """
    start = time.monotonic()
    full_env = os.environ.copy()
    if env:
        full_env.update(env)

    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            cwd=cwd,
            env=full_env,
            start_new_session=True,
        )
    except FileNotFoundError:
        return ProcessResult(args=cmd, exit_code=127, stdout="", stderr=f"Command not found: {cmd[0]}")
    except PermissionError:
        return ProcessResult(args=cmd, exit_code=126, stdout="", stderr=f"Permission denied: {cmd[0]}")

    timed_out = False
    wait_for = timeout if timeout and timeout > 0 else None
    try:
        stdout_bytes, stderr_bytes = process.communicate(timeout=wait_for)
    except subprocess.TimeoutExpired:
        timed_out = True
        logging.warning(f"Process timed out after {timeout}s: {' '.join(cmd[:3])}...")
        _kill_process_group(process)
        # pipes close once the group is dead; collect what was written so far
        try:
            stdout_bytes, stderr_bytes = process.communicate(timeout=_DRAIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            # a descendant left the process group and still holds the pipes
            process.kill()
            process.wait()
            stdout_bytes, stderr_bytes = b"", b""
    except BaseException:
        _kill_process_group(process)
        process.wait()
        raise

    return ProcessResult(
        args=cmd,
        exit_code=process.returncode if process.returncode is not None else -1,
        stdout=_decode(stdout_bytes),
        stderr=_decode(stderr_bytes),
        timed_out=timed_out,
        duration_seconds=time.monotonic() - start,
    )
