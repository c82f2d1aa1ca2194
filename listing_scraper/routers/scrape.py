import asyncio
import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from listing_scraper.dependencies import JobStoreDep, ScraperDep
from listing_scraper.exceptions.custom import ValidationError
from listing_scraper.jobs import JobStore
from listing_scraper.schemas.property import HTML_ORIGIN
from listing_scraper.schemas.responses import (
    JobStatusResponse,
    JobSubmittedResponse,
    ScrapeResponse,
)
from listing_scraper.services.scraper import ScraperService, parse_bulk_urls

logger = logging.getLogger(__name__)

router = APIRouter()

# Keeps background tasks referenced until they finish
_background_tasks: set[asyncio.Task] = set()


class ScrapeUrlRequest(BaseModel):
    url: str


class ScrapeHtmlRequest(BaseModel):
    html: str
    original_url: str = HTML_ORIGIN


class ScrapeBulkRequest(BaseModel):
    urls: str  # newline separated


async def _run_bulk(
    job_id: str,
    service: ScraperService,
    store: JobStore,
    urls: list[str],
) -> None:
    store.mark_running(job_id)
    try:
        records = await service.run_bulk(urls)
        store.mark_completed(job_id, ScrapeResponse(count=len(records), properties=records))
    except Exception as exc:
        logger.exception("Bulk job %s failed", job_id)
        store.mark_failed(job_id, str(exc))


@router.post("/scrape/url", response_model=ScrapeResponse)
async def scrape_url(request: ScrapeUrlRequest, service: ScraperDep) -> ScrapeResponse:
    records = await service.scrape_url(request.url)
    return ScrapeResponse(count=len(records), properties=records)


@router.post("/scrape/html", response_model=ScrapeResponse)
async def scrape_html(request: ScrapeHtmlRequest, service: ScraperDep) -> ScrapeResponse:
    records = await service.scrape_html(request.html, request.original_url)
    return ScrapeResponse(count=len(records), properties=records)


@router.post("/scrape/bulk/sync", response_model=ScrapeResponse)
async def scrape_bulk_sync(request: ScrapeBulkRequest, service: ScraperDep) -> ScrapeResponse:
    records = await service.scrape_bulk(request.urls)
    return ScrapeResponse(count=len(records), properties=records)


@router.post("/scrape/bulk", response_model=JobSubmittedResponse, status_code=202)
async def scrape_bulk(
    request: ScrapeBulkRequest,
    service: ScraperDep,
    store: JobStoreDep,
) -> JobSubmittedResponse:
    urls = parse_bulk_urls(request.urls)
    if not urls:
        raise ValidationError("No valid URLs found in bulk input.")

    job = store.create_job(url_count=len(urls))
    task = asyncio.create_task(_run_bulk(job.job_id, service, store, urls))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return JobSubmittedResponse(
        job_id=job.job_id,
        status=job.status,
        message=f"Bulk scrape of {len(urls)} URLs submitted",
    )


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str, store: JobStoreDep) -> JobStatusResponse:
    job = store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(**job.model_dump())
