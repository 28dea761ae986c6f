from __future__ import annotations

import logging
import queue
import secrets
import threading
import time
from typing import Callable

from .models import DiscoveryOptions, DiscoveryReport, Job
from .store import MemoryStore

logger = logging.getLogger(__name__)

JOB_TTL_S = 3600

Runner = Callable[[str, DiscoveryOptions, Callable[[str, str], None]], DiscoveryReport]


def new_job_id() -> str:
    return f"job_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


class JobQueue:
    """Background discovery runs, one at a time, without a deadline.

    Jobs live in the store under ``job:<id>``; a brand with a queued or running
    job holds ``active:<brand>`` so repeat submissions get the same job back.
    Stored jobs are replaced, never mutated, so readers always see a
    consistent snapshot.
    """

    def __init__(
        self,
        runner: Runner,
        store: MemoryStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._runner = runner
        self._owns_store = store is None
        self._store = store or MemoryStore(name="job-store")
        self._clock = clock
        self._pending: queue.Queue[str | None] = queue.Queue()
        self._processing = threading.Event()
        self._worker = threading.Thread(target=self._work, name="job-worker", daemon=True)
        self._worker.start()

    def submit(self, brand: str, options: DiscoveryOptions | None = None) -> Job:
        brand = brand.strip()
        options = (options or DiscoveryOptions()).model_copy(update={"timeout_ms": 0})
        job = Job(id=new_job_id(), brand=brand, options=options, created_at=self._clock())

        active_key = f"active:{brand.lower()}"
        holder = self._store.setdefault(active_key, job.id)
        if holder != job.id:
            existing = self.get(holder)
            if existing is not None and existing.status in ("queued", "running"):
                logger.info("job for %r already %s: %s", brand, existing.status, existing.id)
                return existing
            self._store.put(active_key, job.id)

        self._store.put(f"job:{job.id}", job)
        self._pending.put(job.id)
        logger.info("queued %s for %r", job.id, brand)
        return job

    def get(self, job_id: str) -> Job | None:
        return self._store.get(f"job:{job_id}")

    def stats(self) -> dict:
        jobs = [j for j in (self._store.get(k) for k in self._store.keys("job:")) if j is not None]
        return {
            "jobs_total": len(jobs),
            "jobs_queued": sum(1 for j in jobs if j.status == "queued"),
            "jobs_running": sum(1 for j in jobs if j.status == "running"),
            "is_processing": self._processing.is_set(),
        }

    def close(self) -> None:
        self._pending.put(None)
        self._worker.join(timeout=5)
        if self._owns_store:
            self._store.close()

    def _update(self, job_id: str, ttl_s: float | None = None, **changes) -> Job | None:
        job = self.get(job_id)
        if job is None:
            return None
        job = job.model_copy(update=changes)
        self._store.put(f"job:{job_id}", job, ttl_s)
        return job

    def _progress(self, job_id: str, stage: str, detail: str) -> None:
        self._update(job_id, progress=f"[{stage}] {detail}")

    def _finish(self, job: Job, **changes) -> None:
        self._update(job.id, JOB_TTL_S, completed_at=self._clock(), **changes)
        active_key = f"active:{job.brand.lower()}"
        if self._store.get(active_key) == job.id:
            self._store.delete(active_key)

    def _work(self) -> None:
        while True:
            job_id = self._pending.get()
            if job_id is None:
                break
            job = self._update(job_id, status="running", progress="Starting", started_at=self._clock())
            if job is None:
                continue

            self._processing.set()
            logger.info("running %s for %r", job.id, job.brand)
            try:
                report = self._runner(
                    job.brand,
                    job.options,
                    lambda stage, detail: self._progress(job_id, stage, detail),
                )
            except Exception as e:
                logger.exception("job %s failed", job_id)
                self._finish(job, status="error", progress="Failed", error=str(e))
            else:
                if report.success:
                    self._finish(job, status="completed", progress="Done", result=report)
                else:
                    self._finish(job, status="error", progress="Failed", result=report, error=report.error)
            finally:
                self._processing.clear()
