from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from listing_scraper.schemas.property import PropertyRecord


class ScrapeResponse(BaseModel):
    count: int
    properties: list[PropertyRecord]


class JobSubmittedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    created_at: datetime
    finished_at: datetime | None = None
    url_count: int = 0
    result: ScrapeResponse | None = None
    error: str | None = None
