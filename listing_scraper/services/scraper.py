import asyncio
import logging

from listing_scraper.exceptions.custom import ValidationError
from listing_scraper.mappers.property_assembler import assemble_property, generate_property_id
from listing_scraper.schemas.history import HistoryEntry, HistoryType
from listing_scraper.schemas.property import (
    HTML_ORIGIN,
    PLACEHOLDER_IMAGE_URL,
    CandidateProperty,
    PropertyRecord,
)
from listing_scraper.services.enhancer import PropertyEnhancer
from listing_scraper.services.extractor import PropertyExtractor
from listing_scraper.services.fetcher import PageFetcher
from listing_scraper.services.image_pipeline import ImagePipeline
from listing_scraper.services.store import PropertyStore

logger = logging.getLogger(__name__)

MIN_HTML_LENGTH = 100


def parse_bulk_urls(urls: str) -> list[str]:
    return [line.strip() for line in urls.splitlines() if line.strip()]


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url.startswith(("http://", "https://")):
        raise ValidationError("Invalid URL provided.")
    return url


class ScraperService:
    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: PropertyExtractor,
        images: ImagePipeline,
        enhancer: PropertyEnhancer,
        store: PropertyStore,
        placeholder_url: str = PLACEHOLDER_IMAGE_URL,
    ):
        self._fetcher = fetcher
        self._extractor = extractor
        self._images = images
        self._enhancer = enhancer
        self._store = store
        self._placeholder = placeholder_url

    # --- scraping ---

    async def scrape_url(self, url: str) -> list[PropertyRecord]:
        url = _validate_url(url)
        logger.info("Scraping URL: %s", url)
        records = await self._scrape_page(url)
        await self._store.append_history(HistoryType.URL, url, len(records))
        return records

    async def scrape_html(self, html: str, original_url: str = HTML_ORIGIN) -> list[PropertyRecord]:
        if not html or len(html) < MIN_HTML_LENGTH:
            raise ValidationError("Invalid HTML provided.")
        original_url = (original_url or "").strip() or HTML_ORIGIN
        logger.info("Scraping pasted HTML (%d chars) for %s", len(html), original_url)

        candidates = await self._extractor.extract(html)
        records = await self._ingest(candidates, original_url)
        await self._store.append_history(HistoryType.HTML, "Pasted HTML content", len(records))
        return records

    async def scrape_bulk(self, urls: str) -> list[PropertyRecord]:
        url_list = parse_bulk_urls(urls)
        if not url_list:
            raise ValidationError("No valid URLs found in bulk input.")
        return await self.run_bulk(url_list)

    async def run_bulk(self, urls: list[str]) -> list[PropertyRecord]:
        """Scrape URLs one after another; a failing URL contributes nothing."""
        logger.info("Bulk scraping %d URLs", len(urls))
        all_records: list[PropertyRecord] = []
        failed = 0

        for url in urls:
            try:
                records = await self._scrape_page(url)
            except Exception:
                logger.exception("Failed to scrape %s during bulk operation", url)
                failed += 1
                continue
            all_records.extend(records)

        logger.info(
            "Bulk run finished: %d properties from %d URLs (%d failed)",
            len(all_records), len(urls), failed,
        )
        await self._store.append_history(
            HistoryType.BULK,
            f"Bulk operation: {len(urls)} URLs ({failed} failed)",
            len(all_records),
        )
        return all_records

    async def _scrape_page(self, url: str) -> list[PropertyRecord]:
        html = await self._fetcher.fetch_html(url)
        candidates = await self._extractor.extract(html)
        return await self._ingest(candidates, url)

    async def _ingest(
        self, candidates: list[CandidateProperty], original_url: str
    ) -> list[PropertyRecord]:
        if not candidates:
            logger.info("AI extraction returned no properties for %s", original_url)
            return []

        logger.info("Processing %d properties from %s", len(candidates), original_url)
        results = await asyncio.gather(
            *(
                self._build_record(i, candidate, original_url)
                for i, candidate in enumerate(candidates)
            ),
            return_exceptions=True,
        )

        records: list[PropertyRecord] = []
        for candidate, result in zip(candidates, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Failed to build property %r from %s: %s",
                    candidate.title, original_url, result,
                )
                continue
            records.append(result)
        return await self._store.merge(records)

    async def _build_record(
        self, index: int, candidate: CandidateProperty, original_url: str
    ) -> PropertyRecord:
        property_id = generate_property_id(index)
        images, content = await asyncio.gather(
            self._images.process_images(candidate, original_url, property_id=property_id),
            self._enhancer.enhance(candidate.title, candidate.description),
        )
        return assemble_property(property_id, candidate, images, content, original_url)

    # --- record management ---

    async def list_properties(self) -> list[PropertyRecord]:
        return await self._store.list_properties()

    async def get(self, record_id: str) -> PropertyRecord:
        return await self._store.get(record_id)

    async def save(self, record: PropertyRecord) -> PropertyRecord:
        stored = await self._store.merge([self._with_placeholder(record)])
        return stored[0]

    async def update(self, record: PropertyRecord) -> PropertyRecord:
        return await self._store.update(self._with_placeholder(record))

    def _with_placeholder(self, record: PropertyRecord) -> PropertyRecord:
        """Swap the built-in default image for the configured placeholder."""
        if self._placeholder == PLACEHOLDER_IMAGE_URL:
            return record
        if record.image_urls != [PLACEHOLDER_IMAGE_URL]:
            return record
        return record.model_copy(
            update={"image_urls": [self._placeholder], "image_url": self._placeholder}
        )

    async def delete(self, record_id: str) -> None:
        await self._store.delete(record_id)

    async def clear_properties(self) -> None:
        await self._store.clear()

    async def re_enhance(self, record: PropertyRecord) -> PropertyRecord:
        """Enhance the original copy again and persist the result."""
        if not record.original_title or not record.original_description:
            raise ValidationError("Property has no original title/description to enhance.")

        content = await self._enhancer.enhance(record.original_title, record.original_description)
        if not content.enhanced:
            logger.warning("Re-enhancement of %s produced nothing; keeping current copy", record.id)
            return record

        updated = record.model_copy(
            update={
                "title": content.title,
                "description": content.description,
                "enhanced_title": content.title,
                "enhanced_description": content.description,
            }
        )
        return await self._store.update(updated)

    # --- history ---

    async def list_history(self) -> list[HistoryEntry]:
        return await self._store.list_history()

    async def clear_history(self) -> None:
        await self._store.clear_history()
