from collections.abc import Callable, Iterable

from listing_scraper.schemas.property import HTML_ORIGIN, PropertyRecord


def _source_url(record: PropertyRecord) -> str | None:
    url = record.original_url.strip()
    if not url or url == HTML_ORIGIN:
        return None
    return url


def _reference_id(record: PropertyRecord) -> str | None:
    return record.reference_id.strip() or None


def _page_link(record: PropertyRecord) -> str | None:
    return record.page_link.strip() or None


def _title_location(record: PropertyRecord) -> tuple[str, str] | None:
    if not record.original_title.strip():
        return None
    return record.original_title.strip(), record.location.strip()


# Highest priority first
IDENTITY_SIGNALS: tuple[Callable[[PropertyRecord], object | None], ...] = (
    _source_url,
    _reference_id,
    _page_link,
    _title_location,
)


def is_same_listing(a: PropertyRecord, b: PropertyRecord) -> bool:
    """Decide on the first identity signal present on both records."""
    for signal in IDENTITY_SIGNALS:
        value_a, value_b = signal(a), signal(b)
        if value_a is not None and value_b is not None:
            return value_a == value_b
    return False


def _agreement(a: PropertyRecord, b: PropertyRecord) -> int:
    """How many identity signals present on both records are equal."""
    score = 0
    for signal in IDENTITY_SIGNALS:
        value_a, value_b = signal(a), signal(b)
        if value_a is not None and value_a == value_b:
            score += 1
    return score


def find_match(
    record: PropertyRecord,
    existing: list[PropertyRecord],
    skip_ids: Iterable[str] = (),
) -> int | None:
    """Index of the existing record describing the same listing, or None.

    When several records match (listings sharing one search page URL), the one
    agreeing on the most identity signals wins, the earliest on a tie.
    """
    skipped = set(skip_ids)
    best: int | None = None
    best_score = -1
    for i, candidate in enumerate(existing):
        if candidate.id in skipped or not is_same_listing(record, candidate):
            continue
        score = _agreement(record, candidate)
        if score > best_score:
            best, best_score = i, score
    return best
