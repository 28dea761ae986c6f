import re
import threading
import time

import pytest

from adtrace_agent.jobs import JobQueue, new_job_id
from adtrace_agent.models import DiscoveryOptions, DiscoveryReport


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class Runner:
    def __init__(self, release: threading.Event | None = None, fail: bool = False):
        self.release = release
        self.fail = fail
        self.calls = []

    def __call__(self, brand, options, progress):
        self.calls.append((brand, options.timeout_ms))
        progress("brand_search", f"Searching ads for {brand}")
        if self.release is not None:
            self.release.wait(5)
        if self.fail:
            raise RuntimeError("ad library unavailable")
        return DiscoveryReport(success=True, status="completed", brand=brand, brand_domain="glow25.de")


@pytest.fixture
def make_queue():
    queues = []

    def factory(runner):
        q = JobQueue(runner)
        queues.append(q)
        return q

    yield factory
    for q in queues:
        q.close()


def test_job_id_format():
    assert re.fullmatch(r"job_\d+_[0-9a-f]{6}", new_job_id())


def test_job_runs_to_completion_without_deadline(make_queue):
    runner = Runner()
    jobs = make_queue(runner)

    job = jobs.submit("Glow25", DiscoveryOptions(timeout_ms=55_000))

    assert job.status == "queued"
    assert wait_for(lambda: jobs.get(job.id).status == "completed")
    done = jobs.get(job.id)
    assert done.result.brand_domain == "glow25.de"
    assert done.progress == "Done"
    assert done.started_at is not None and done.completed_at is not None
    assert runner.calls == [("Glow25", 0)]


def test_same_brand_while_active_returns_existing_job(make_queue):
    release = threading.Event()
    runner = Runner(release=release)
    jobs = make_queue(runner)

    first = jobs.submit("Glow25")
    assert wait_for(lambda: jobs.get(first.id).progress == "[brand_search] Searching ads for Glow25")
    assert jobs.get(first.id).status == "running"

    again = jobs.submit("glow25")
    assert again.id == first.id
    assert jobs.stats()["is_processing"]

    release.set()
    assert wait_for(lambda: jobs.get(first.id).status == "completed")

    fresh = jobs.submit("Glow25")
    assert fresh.id != first.id


def test_failed_job_records_error(make_queue):
    jobs = make_queue(Runner(fail=True))

    job = jobs.submit("Glow25")

    assert wait_for(lambda: jobs.get(job.id).status == "error")
    assert jobs.get(job.id).error == "ad library unavailable"


def test_stats_counts_jobs(make_queue):
    release = threading.Event()
    jobs = make_queue(Runner(release=release))

    a = jobs.submit("Glow25")
    jobs.submit("Monapure")
    assert wait_for(lambda: jobs.get(a.id).status == "running")

    stats = jobs.stats()
    assert stats["jobs_total"] == 2
    assert stats["jobs_queued"] == 1
    assert stats["jobs_running"] == 1

    release.set()
