from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

from .config import Settings
from .jobs import JobQueue, Runner
from .models import BatchDiscoverRequest, DiscoverRequest, DiscoveryOptions, DiscoveryReport, Job
from .pipeline import discover
from .store import MemoryStore


# Load environment variables from the repo root .env (META_ACCESS_TOKEN, GEMINI_API_KEY in local dev)
_HERE = Path(__file__).resolve()
_AGENT_ROOT = _HERE.parents[1]
load_dotenv(_AGENT_ROOT / ".env", override=False)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_store: MemoryStore | None = None
_jobs: JobQueue | None = None


def get_settings() -> Settings:
    return Settings.from_env()


def get_store() -> MemoryStore:
    global _store
    if _store is None:
        _store = MemoryStore()
    return _store


def _run_discovery(brand: str, options: DiscoveryOptions, progress=None) -> DiscoveryReport:
    return discover(brand, options, progress=progress, settings=get_settings(), store=get_store())


def get_runner() -> Runner:
    return _run_discovery


def get_jobs() -> JobQueue:
    global _jobs
    if _jobs is None:
        _jobs = JobQueue(_run_discovery, store=get_store())
    return _jobs


def require_ad_source(settings: Settings = Depends(get_settings)) -> Settings:
    if not settings.meta_access_token:
        raise HTTPException(status_code=503, detail="Ad source not configured (META_ACCESS_TOKEN missing).")
    return settings


@asynccontextmanager
async def _lifespan(app: FastAPI):
    yield
    global _jobs, _store
    if _jobs is not None:
        _jobs.close()
        _jobs = None
    if _store is not None:
        _store.close()
        _store = None


app = FastAPI(title="AdTrace Agent", version="0.1.0", lifespan=_lifespan)


def _cors_allow_origins() -> list[str]:
    raw = os.getenv("ADTRACE_CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:3000"]
    return [o.strip() for o in raw.split(",") if o.strip()]


# Set ADTRACE_CORS_ORIGINS to the deployed frontend origins in production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _options(req: DiscoveryOptions) -> DiscoveryOptions:
    return DiscoveryOptions(**req.model_dump(include=set(DiscoveryOptions.model_fields)))


@app.get("/healthz")
def healthz(jobs: JobQueue = Depends(get_jobs)):
    stats = jobs.stats()
    return {
        "ok": True,
        "jobs_total": stats["jobs_total"],
        "jobs_queued": stats["jobs_queued"],
        "is_processing": stats["is_processing"],
    }


@app.post("/discover", response_model=DiscoveryReport, dependencies=[Depends(require_ad_source)])
def discover_endpoint(req: DiscoverRequest, runner: Runner = Depends(get_runner)):
    return runner(req.brand, _options(req), None)


@app.post("/jobs", status_code=202, dependencies=[Depends(require_ad_source)])
def submit_job(req: DiscoverRequest, jobs: JobQueue = Depends(get_jobs)):
    job = jobs.submit(req.brand, _options(req))
    return {"status": job.status, "job_id": job.id, "progress": job.progress}


@app.post("/jobs/batch", status_code=202, dependencies=[Depends(require_ad_source)])
def submit_batch(req: BatchDiscoverRequest, jobs: JobQueue = Depends(get_jobs)):
    options = _options(req)
    out = []
    for brand in req.brands:
        if not brand.strip():
            continue
        job = jobs.submit(brand, options)
        out.append({"brand": job.brand, "job_id": job.id, "status": job.status})
    return {"jobs": out}


@app.get("/jobs/{job_id}", response_model=Job)
def get_job(job_id: str, jobs: JobQueue = Depends(get_jobs)):
    job = jobs.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
    return job
