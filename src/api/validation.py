# src/api/validation.py
import secrets
from typing import Iterable, Optional
from urllib.parse import urlparse

from engine.errors import SubmissionRejected


def check_bearer_token(authorization: Optional[str], token: str) -> None:
    """No-op when no token is configured; otherwise require `Bearer <token>`."""
    if not token:
        return
    expected = f"Bearer {token}".encode()
    if not secrets.compare_digest((authorization or "").encode(), expected):
        raise SubmissionRejected("Unauthorized", status_code=401)


def validate_repo_url(repo_url: str, allowed_hosts: Iterable[str]) -> None:
    try:
        parsed = urlparse(repo_url)
        host = parsed.hostname
    except ValueError:
        raise SubmissionRejected("Invalid URL")
    if not repo_url or not parsed.scheme or not host:
        raise SubmissionRejected("Invalid URL")
    if parsed.scheme not in ("http", "https"):
        raise SubmissionRejected("Only http/https URLs allowed")
    if host not in allowed_hosts:
        raise SubmissionRejected(f"Host not allowed: {host}")


def validate_ref(ref: Optional[str]) -> None:
    if ref is None:
        return
    # refs are quoted for the shell, but git would still read "-x" as an option
    if not ref.strip() or ref.startswith("-") or any(ord(c) < 32 or ord(c) == 127 for c in ref):
        raise SubmissionRejected("Invalid ref")
