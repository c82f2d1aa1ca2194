import time
import uuid
from datetime import datetime, timezone

from listing_scraper.schemas.property import (
    CandidateProperty,
    EnhancedContent,
    ImageSet,
    PropertyRecord,
)


def generate_property_id(index: int) -> str:
    """prop-{epoch_ms}-{index}-{random}; the suffix keeps rapid batches apart."""
    return f"prop-{int(time.time() * 1000)}-{index}-{uuid.uuid4().hex[:8]}"


def assemble_property(
    property_id: str,
    candidate: CandidateProperty,
    images: ImageSet,
    content: EnhancedContent,
    original_url: str,
) -> PropertyRecord:
    """Combine extracted fields, hosted images and enhanced copy into one record."""
    fields = candidate.model_dump(exclude={"image_url", "image_urls"})
    fields.update(
        id=property_id,
        original_url=original_url,
        original_title=candidate.title,
        original_description=candidate.description,
        title=content.title,
        description=content.description,
        enhanced_title=content.title if content.enhanced else None,
        enhanced_description=content.description if content.enhanced else None,
        image_urls=images.image_urls,
        image_url=images.image_url,
        scraped_at=datetime.now(timezone.utc),
    )
    return PropertyRecord.model_validate(fields)
