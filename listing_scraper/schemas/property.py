from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field, model_validator

PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x400.png"
HTML_ORIGIN = "scraped-from-html"

_INT_RE = re.compile(r"-?\d+(?:\.\d+)?")


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(text for text in (_to_text(v) for v in value) if text)
    return str(value)


def _to_int(value: Any) -> int:
    """Best-effort integer: "3", "3.0", "4+ beds" and 2.6 all coerce, junk is 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else 0
    match = _INT_RE.search(str(value).replace(",", ""))
    return int(float(match.group(0))) if match else 0


def _to_count(value: Any) -> int:
    return max(_to_int(value), 0)


def _to_text_list(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        value = [value]
    return [text for text in (_to_text(v) for v in value) if text]


Text = Annotated[str, BeforeValidator(_to_text)]
Count = Annotated[int, BeforeValidator(_to_count)]
Whole = Annotated[int, BeforeValidator(_to_int)]
TextList = Annotated[list[str], BeforeValidator(_to_text_list)]


class ListingFields(BaseModel):
    title: Text = ""
    description: Text = ""
    price: Text = ""
    location: Text = ""
    city: Text = ""
    county: Text = ""
    neighborhood: Text = ""
    bedrooms: Count = 0
    bathrooms: Count = 0
    area: Text = ""  # free text, e.g. "2,500 sqft"
    property_type: Text = ""
    floor_number: Whole = 0
    features: TextList = []
    terms_and_condition: Text = ""
    mortgage: Text = ""
    what_do: Text = ""  # "For Rent" / "For Sale"
    tenant_type: Text = ""
    rental_timing: Text = ""
    furnish_type: Text = ""
    page_link: Text = ""
    reference_id: Text = ""
    permit_number: Text = ""
    agency_registration_number: Text = ""
    agency_name: Text = ""
    agent_name: Text = ""
    agent_phone: Text = ""
    agent_email: Text = ""


class CandidateProperty(ListingFields):
    """One listing as returned by the extraction model, zero-values applied."""

    image_url: Text = ""
    image_urls: TextList = []

    def raw_image_urls(self, placeholder: str = PLACEHOLDER_IMAGE_URL) -> list[str]:
        """Primary image first, then the rest, without duplicates or placeholders."""
        seen: set[str] = set()
        urls: list[str] = []
        for url in (self.image_url, *self.image_urls):
            if url and url not in (placeholder, PLACEHOLDER_IMAGE_URL) and url not in seen:
                seen.add(url)
                urls.append(url)
        return urls


class PropertyRecord(ListingFields):
    id: str
    original_url: Text = HTML_ORIGIN
    original_title: Text = ""
    original_description: Text = ""
    enhanced_title: str | None = None
    enhanced_description: str | None = None
    image_url: Text = ""
    image_urls: TextList = []
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _primary_image(self) -> PropertyRecord:
        if not self.image_urls:
            self.image_urls = [self.image_url or PLACEHOLDER_IMAGE_URL]
        self.image_url = self.image_urls[0]
        return self


class ImageSet(BaseModel):
    image_urls: list[str]
    image_url: str


class EnhancedContent(BaseModel):
    title: str
    description: str
    enhanced: bool = False
