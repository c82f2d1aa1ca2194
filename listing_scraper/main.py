import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from listing_scraper.config import Settings
from listing_scraper.exceptions.custom import (
    FetchError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from listing_scraper.exceptions.handlers import (
    fetch_error_handler,
    not_found_error_handler,
    storage_error_handler,
    validation_error_handler,
)
from listing_scraper.jobs import JobStore
from listing_scraper.routers.properties import router as properties_router
from listing_scraper.routers.scrape import router as scrape_router
from listing_scraper.services.claude import ClaudeService
from listing_scraper.services.enhancer import PropertyEnhancer
from listing_scraper.services.extractor import PropertyExtractor
from listing_scraper.services.fetcher import PageFetcher
from listing_scraper.services.image_pipeline import ImagePipeline
from listing_scraper.services.image_store import build_image_store
from listing_scraper.services.scraper import ScraperService
from listing_scraper.services.store import PropertyStore

STATIC_IMAGES_ROUTE = "property-images"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if settings.storage_backend == "local" and not any(
        getattr(route, "name", None) == STATIC_IMAGES_ROUTE for route in app.routes
    ):
        settings.image_dir.mkdir(parents=True, exist_ok=True)
        app.mount(
            "/static/property-images",
            StaticFiles(directory=settings.image_dir),
            name=STATIC_IMAGES_ROUTE,
        )

    async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
        claude = ClaudeService(settings.anthropic_api_key, model=settings.anthropic_model)
        images = ImagePipeline(
            client,
            build_image_store(settings),
            placeholder_url=settings.placeholder_image_url,
            validate_uploads=settings.validate_uploads,
            max_image_bytes=settings.max_image_bytes,
        )

        app.state.scraper_service = ScraperService(
            fetcher=PageFetcher(client),
            extractor=PropertyExtractor(
                claude,
                max_tokens=settings.extraction_max_tokens,
                max_html_chars=settings.max_html_chars,
                placeholder_url=settings.placeholder_image_url,
            ),
            images=images,
            enhancer=PropertyEnhancer(claude, max_tokens=settings.enhancement_max_tokens),
            store=PropertyStore(settings.data_dir, history_limit=settings.history_limit),
            placeholder_url=settings.placeholder_image_url,
        )
        app.state.job_store = JobStore()

        yield


app = FastAPI(title="Listing Scraper", lifespan=lifespan)

app.add_exception_handler(FetchError, fetch_error_handler)
app.add_exception_handler(ValidationError, validation_error_handler)
app.add_exception_handler(NotFoundError, not_found_error_handler)
app.add_exception_handler(StorageError, storage_error_handler)

app.include_router(scrape_router)
app.include_router(properties_router)
