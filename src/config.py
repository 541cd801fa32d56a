# src/config.py
"""
Settings: process-wide configuration, read once from the environment / .env
and passed explicitly into every component.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = "sqlite:///./data/scanner.sqlite"
    work_root: str = "./data/work"

    # Worker
    worker_concurrency: int = 1
    idle_sleep: float = 0.8
    clone_timeout: float = 600
    scan_timeout: float = 900

    # Container images
    img_git: str = "alpine/git:2.45.2"
    img_trivy: str = "aquasec/trivy:0.50.2"
    img_semgrep: str = "returntocorp/semgrep:1.78.0"
    img_grype: str = "anchore/grype:v0.78.0"
    img_syft: str = "anchore/syft:v1.4.1"
    scan_tools: str = "trivy,semgrep,grype"
    docker_binary: str = "docker"
    pull_images: bool = True

    # API
    api_host: str = "0.0.0.0"
    port: int = 3000
    webhook_token: str = ""
    allowed_git_hosts: str = "github.com"
    scans_page_size: int = 50
    logs_page_size: int = 500

    log_level: str = "INFO"

    @property
    def allowed_hosts(self) -> List[str]:
        return [h.strip().lower() for h in self.allowed_git_hosts.split(",") if h.strip()]

    @property
    def tool_names(self) -> List[str]:
        return [t.strip().lower() for t in self.scan_tools.split(",") if t.strip()]

    def image_for(self, tool: str) -> str:
        """Container image configured for a scan tool (or 'git')."""
        return getattr(self, f"img_{tool}")
