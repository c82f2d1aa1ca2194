import asyncio
import logging
import mimetypes
import uuid
from pathlib import PurePosixPath
from urllib.parse import urljoin, urlparse

import httpx

from listing_scraper.exceptions.custom import FetchError, StorageError
from listing_scraper.schemas.property import PLACEHOLDER_IMAGE_URL, CandidateProperty, ImageSet
from listing_scraper.services.fetcher import BROWSER_USER_AGENT
from listing_scraper.services.image_store import ImageStore

logger = logging.getLogger(__name__)

IMAGE_HEADERS = {
    "User-Agent": BROWSER_USER_AGENT,
    "Accept": "image/avif,image/webp,image/*,*/*;q=0.8",
}

_DEFAULT_EXTENSION = "jpg"
_EXTENSION_OVERRIDES = {".jpe": "jpg", ".jpeg": "jpg"}


def resolve_image_url(raw: str, base_url: str) -> str | None:
    """Absolute http(s) URL for raw, resolved against base_url, or None."""
    try:
        absolute = urljoin(base_url, raw.strip())
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return absolute


def _extension_from_url(url: str) -> str | None:
    suffix = PurePosixPath(urlparse(url).path).suffix.lower()
    if not suffix or len(suffix) > 6:
        return None
    return _EXTENSION_OVERRIDES.get(suffix, suffix.lstrip("."))


def _extension_for(content_type: str) -> str | None:
    guessed = mimetypes.guess_extension(content_type)
    if not guessed:
        return None
    return _EXTENSION_OVERRIDES.get(guessed, guessed.lstrip("."))


def _is_image_extension(ext: str) -> bool:
    guessed, _ = mimetypes.guess_type(f"image.{ext}")
    return bool(guessed) and guessed.startswith("image/")


def detect_image_type(url: str, header: str | None) -> tuple[str, str]:
    """Return (content_type, extension). Header wins; the URL extension is the fallback.

    With an image header, the URL extension is kept only when it names an image
    type itself, so ``photo.php`` served as ``image/jpeg`` is stored as ``.jpg``.
    """
    content_type = (header or "").split(";")[0].strip().lower()
    url_ext = _extension_from_url(url)

    if content_type.startswith("image/"):
        if url_ext and _is_image_extension(url_ext):
            return content_type, url_ext
        return content_type, _extension_for(content_type) or _DEFAULT_EXTENSION

    ext = url_ext or _DEFAULT_EXTENSION
    guessed, _ = mimetypes.guess_type(f"image.{ext}")
    if not guessed or not guessed.startswith("image/"):
        guessed = f"image/{ext}"
    return guessed, ext


class ImagePipeline:
    def __init__(
        self,
        client: httpx.AsyncClient,
        store: ImageStore,
        placeholder_url: str = PLACEHOLDER_IMAGE_URL,
        validate_uploads: bool = True,
        max_image_bytes: int = 10 * 1024 * 1024,
    ):
        self._client = client
        self._store = store
        self._placeholder = placeholder_url
        self._validate = validate_uploads
        self._max_bytes = max_image_bytes

    async def process_images(
        self,
        candidate: CandidateProperty,
        source_page_url: str,
        property_id: str | None = None,
    ) -> ImageSet:
        """Host every image of a candidate. Never raises; falls back to the placeholder."""
        property_id = property_id or f"prop-{uuid.uuid4().hex[:8]}"

        absolute_urls: list[str] = []
        for raw in candidate.raw_image_urls(self._placeholder):
            resolved = resolve_image_url(raw, source_page_url)
            if resolved is None:
                logger.warning(
                    "Dropping image %r: cannot resolve against %r", raw, source_page_url
                )
                continue
            absolute_urls.append(resolved)

        results = await asyncio.gather(
            *(self._host_image(url, property_id) for url in absolute_urls)
        )
        hosted = [url for url in results if url is not None]

        logger.info(
            "Property %s: %d/%d images hosted", property_id, len(hosted), len(absolute_urls)
        )
        if not hosted:
            hosted = [self._placeholder]
        return ImageSet(image_urls=hosted, image_url=hosted[0])

    async def _host_image(self, url: str, property_id: str) -> str | None:
        try:
            data, header = await self._download(url)
            content_type, ext = detect_image_type(url, header)
            key = f"{property_id}-{uuid.uuid4()}.{ext}"
            handle = await self._store.put(key, data, content_type)
            public_url = self._store.public_url(handle)
        except (FetchError, StorageError) as exc:
            logger.warning("Image %s dropped: %s", url, exc.message)
            return None
        except Exception:
            logger.exception("Image %s dropped after unexpected error", url)
            return None

        if self._validate:
            await self._check_public_url(public_url)
        return public_url

    async def _download(self, url: str) -> tuple[bytes, str | None]:
        try:
            resp = await self._client.get(url, headers=IMAGE_HEADERS, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(f"Could not download image {url}: {exc}", url) from exc

        if not resp.is_success:
            raise FetchError(
                f"Could not download image {url}: {resp.status_code} {resp.reason_phrase}",
                url,
                status_code=resp.status_code,
            )
        if len(resp.content) > self._max_bytes:
            raise FetchError(f"Image {url} exceeds {self._max_bytes} bytes", url)

        header = resp.headers.get("content-type")
        if header and not header.startswith("image/"):
            logger.warning("Unexpected content type %s for image %s", header, url)
        return resp.content, header

    async def _check_public_url(self, public_url: str) -> None:
        if not public_url.startswith(("http://", "https://")):
            return
        try:
            resp = await self._client.head(public_url, follow_redirects=True)
        except Exception as exc:
            logger.warning("Could not validate public URL %s: %s", public_url, exc)
            return
        if not resp.is_success:
            logger.warning("Public URL %s answered %d", public_url, resp.status_code)
