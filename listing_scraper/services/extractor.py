import json
import logging

from bs4 import BeautifulSoup, Comment
from pydantic import ValidationError as PydanticValidationError

from listing_scraper.exceptions.custom import ExtractionError
from listing_scraper.schemas.property import PLACEHOLDER_IMAGE_URL, CandidateProperty
from listing_scraper.services.claude import ClaudeService

logger = logging.getLogger(__name__)

_NOISE_TAGS = ["script", "style", "noscript", "svg", "iframe"]

_FIELD_GUIDE = {
    "title": "main title of the listing",
    "description": "full description of the property",
    "price": "listing price as shown",
    "location": "address or general location",
    "city": "city",
    "county": "county",
    "neighborhood": "neighborhood",
    "bedrooms": "number of bedrooms (integer)",
    "bathrooms": "number of bathrooms (integer)",
    "area": 'total area as text, e.g. "2,500 sqft"',
    "property_type": "House, Apartment, Villa, ...",
    "floor_number": "floor number (integer)",
    "features": "list of key features or amenities",
    "terms_and_condition": "terms and conditions mentioned",
    "mortgage": "mortgage information",
    "what_do": "For Rent / For Sale",
    "tenant_type": "preferred tenant type, e.g. Family",
    "rental_timing": "e.g. Immediately, Flexible",
    "furnish_type": "Furnished / Unfurnished / Partly furnished",
    "page_link": "direct link to the property details page",
    "reference_id": "listing reference or ID shown on the page",
    "permit_number": "advertising or listing permit number",
    "agency_registration_number": "agency registration / license number",
    "agency_name": "agency name",
    "agent_name": "agent name",
    "agent_phone": "agent phone",
    "agent_email": "agent email",
    "image_url": "URL of the main image",
    "image_urls": "list of all image URLs of this listing",
}

SYSTEM_PROMPT = (
    "You are an expert at extracting structured data from real estate web pages. "
    "Return ONLY valid JSON, no markdown fences, no explanation."
)

USER_PROMPT_TEMPLATE = """Analyze the HTML below and extract every property listed on the page.

Return a JSON object {{"properties": [...]}} where each item has exactly these fields:
{fields}

Rules:
- For text fields you cannot find, return "".
- For number fields you cannot find, return 0.
- For list fields you cannot find, return [].
- Copy image URLs exactly as they appear in the HTML (src, data-src or srcset).
- If there are no properties on the page, return {{"properties": []}}.

HTML Content:
```html
{html}
```"""


def clean_html(html: str, max_chars: int) -> str:
    """Drop non-content markup and cap the size sent to the model."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(_NOISE_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    cleaned = str(soup)
    if len(cleaned) > max_chars:
        logger.info("Truncating HTML from %d to %d chars", len(cleaned), max_chars)
        cleaned = cleaned[:max_chars]
    return cleaned


def collect_image_sources(html: str) -> list[str]:
    """All <img> sources of a page, in document order, de-duplicated."""
    soup = BeautifulSoup(html, "html.parser")
    seen: set[str] = set()
    sources: list[str] = []
    for img in soup.find_all("img"):
        src = (img.get("src") or img.get("data-src") or "").strip()
        if src and not src.startswith("data:") and src not in seen:
            seen.add(src)
            sources.append(src)
    return sources


class PropertyExtractor:
    def __init__(
        self,
        claude: ClaudeService,
        max_tokens: int = 8192,
        max_html_chars: int = 150_000,
        placeholder_url: str = PLACEHOLDER_IMAGE_URL,
    ):
        self._claude = claude
        self._placeholder = placeholder_url
        self._max_tokens = max_tokens
        self._max_html_chars = max_html_chars

    async def extract(self, html: str) -> list[CandidateProperty]:
        """Extract candidate listings. Fail-open: any failure yields []."""
        try:
            candidates = await self._do_extract(html)
        except ExtractionError as exc:
            logger.warning("Extraction failed: %s", exc.message)
            return []
        except Exception:
            logger.exception("Unexpected extraction failure")
            return []

        if len(candidates) == 1 and not candidates[0].raw_image_urls(self._placeholder):
            sources = collect_image_sources(html)
            if sources:
                logger.info("Using %d <img> sources for the single listing", len(sources))
                candidates[0] = candidates[0].model_copy(update={"image_urls": sources})

        return candidates

    async def _do_extract(self, html: str) -> list[CandidateProperty]:
        prompt = USER_PROMPT_TEMPLATE.format(
            fields=json.dumps(_FIELD_GUIDE, indent=2),
            html=clean_html(html, self._max_html_chars),
        )
        data = await self._claude.analyze(SYSTEM_PROMPT, prompt, max_tokens=self._max_tokens)
        if data is None:
            raise ExtractionError("model returned no parseable output")
        return self._parse_properties(data)

    def _parse_properties(self, data: dict) -> list[CandidateProperty]:
        items = data.get("properties")
        if items is None:
            raise ExtractionError("output has no 'properties' field")
        if not isinstance(items, list):
            raise ExtractionError(f"'properties' is {type(items).__name__}, expected list")

        candidates: list[CandidateProperty] = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning("Skipping candidate %d: not an object", i)
                continue
            try:
                candidate = CandidateProperty.model_validate(item)
            except (PydanticValidationError, TypeError, ValueError) as exc:
                logger.warning("Skipping candidate %d: %s", i, exc)
                continue
            if candidate.image_url in (self._placeholder, PLACEHOLDER_IMAGE_URL):
                candidate.image_url = ""
            candidates.append(candidate)

        logger.info("Extracted %d candidate properties", len(candidates))
        return candidates
