import logging

import httpx

from listing_scraper.exceptions.custom import FetchError

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

PAGE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Connection": "keep-alive",
}


class PageFetcher:
    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def fetch_html(self, url: str) -> str:
        """GET a page with browser-like headers. No retries; raises FetchError."""
        try:
            resp = await self._client.get(url, headers=PAGE_HEADERS, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Network error fetching %s: %s", url, exc)
            raise FetchError(
                f"Could not retrieve content from {url}. Reason: {exc}", url
            ) from exc

        if not resp.is_success:
            raise FetchError(
                f"Could not retrieve content from {url}. "
                f"Reason: {resp.status_code} {resp.reason_phrase}",
                url,
                status_code=resp.status_code,
            )

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return resp.text
