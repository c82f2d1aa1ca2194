"""Tests for JobStore."""

from listing_scraper.jobs import JobStatus, JobStore
from listing_scraper.schemas.responses import ScrapeResponse


def test_create_and_get_job():
    store = JobStore()
    job = store.create_job(url_count=3)
    assert store.get_job(job.job_id) is job
    assert job.status == JobStatus.pending
    assert job.url_count == 3


def test_lifecycle_completed():
    store = JobStore()
    job = store.create_job()
    store.mark_running(job.job_id)
    assert job.status == JobStatus.running

    store.mark_completed(job.job_id, ScrapeResponse(count=0, properties=[]))
    assert job.status == JobStatus.completed
    assert job.result.count == 0
    assert job.finished_at is not None


def test_lifecycle_failed():
    store = JobStore()
    job = store.create_job()
    store.mark_failed(job.job_id, "disk full")
    assert job.status == JobStatus.failed
    assert job.error == "disk full"


def test_unknown_job_is_ignored():
    store = JobStore()
    store.mark_running("nope")
    assert store.get_job("nope") is None


def test_evicts_oldest_finished_jobs_only():
    store = JobStore(max_jobs=2)
    first = store.create_job()
    active = store.create_job()
    store.mark_completed(first.job_id, ScrapeResponse(count=0, properties=[]))

    newest = store.create_job()

    assert store.get_job(first.job_id) is None
    assert store.get_job(active.job_id) is active
    assert store.get_job(newest.job_id) is newest
