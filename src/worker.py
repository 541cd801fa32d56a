# src/worker.py

import logging
import os
import sys

from config import Settings
from engine.container import ContainerRuntime
from engine.db import create_session_factory
from engine.job_store import JobStore
from engine.pipeline import PipelineExecutor
from engine.repo_fetcher import RepoFetcher
from engine.worker_pool import WorkerPool
from tools.registry import build_adapters


def build_pool(settings: Settings) -> WorkerPool:
    store = JobStore(create_session_factory(settings.database_url))
    runtime = ContainerRuntime(settings)
    fetcher = RepoFetcher(runtime, settings.img_git)
    executor = PipelineExecutor(store, fetcher, build_adapters(settings, runtime), settings)
    return WorkerPool(store, executor, concurrency=settings.worker_concurrency, idle_sleep=settings.idle_sleep)


def main() -> None:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s %(message)s'
    )
    os.makedirs(settings.work_root, exist_ok=True)
    pool = build_pool(settings)
    logging.info(f"Starting {pool.concurrency} worker(s), tools={settings.tool_names}")
    try:
        pool.run()
    except Exception:
        logging.exception("Worker pool stopped on a fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
