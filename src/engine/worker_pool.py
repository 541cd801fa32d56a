# src/engine/worker_pool.py
"""
WorkerPool: a fixed number of threads that claim and execute queued jobs.

Workers share nothing but the job store. An idle worker waits `idle_sleep`
seconds before polling again. Any exception escaping the executor (a database
outage, typically) stops the whole pool and is re-raised from run(), so the
process exits and its supervisor can restart it instead of jobs being skipped.
"""

import logging
import threading
from typing import List, Optional

from engine.job_store import JobStore
from engine.pipeline import PipelineExecutor


class WorkerPool:
    def __init__(self, store: JobStore, executor: PipelineExecutor, concurrency: int = 1, idle_sleep: float = 0.8):
        self.store = store
        self.executor = executor
        self.concurrency = max(1, concurrency)
        self.idle_sleep = idle_sleep
        self._stop = threading.Event()
        self._threads: List[threading.Thread] = []
        self._fatal: Optional[BaseException] = None
        self._lock = threading.Lock()

    def _worker_loop(self, worker_id: int) -> None:
        logging.info(f"Worker #{worker_id} up")
        try:
            while not self._stop.is_set():
                job = self.store.claim_next()
                if job is None:
                    self._stop.wait(self.idle_sleep)
                    continue
                logging.info(f"[job_id={job.job_id}] Worker #{worker_id} claimed job")
                status = self.executor.execute(job)
                logging.info(f"[job_id={job.job_id}] Worker #{worker_id} finished job: {status}")
        except Exception as e:
            logging.critical(f"Worker #{worker_id} stopping on fatal error: {e}")
            with self._lock:
                if self._fatal is None:
                    self._fatal = e
            self._stop.set()
        logging.info(f"Worker #{worker_id} down")

    def start(self) -> None:
        for worker_id in range(1, self.concurrency + 1):
            thread = threading.Thread(target=self._worker_loop, args=(worker_id,), name=f"worker-{worker_id}", daemon=True)
            self._threads.append(thread)
            thread.start()

    def stop(self) -> None:
        """Ask workers to exit after their current job."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        for thread in self._threads:
            thread.join(timeout)
        if self._fatal is not None:
            raise self._fatal

    def run(self) -> None:
        """Start the workers and block until they stop; re-raises a fatal worker error."""
        self.start()
        try:
            # wake periodically so KeyboardInterrupt reaches the main thread
            while not self._stop.wait(1.0):
                pass
        except KeyboardInterrupt:
            logging.info("Interrupted, waiting for running jobs to finish")
            self.stop()
        self.join()
