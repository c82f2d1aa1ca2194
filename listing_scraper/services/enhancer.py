import logging

from listing_scraper.exceptions.custom import EnhancementError
from listing_scraper.schemas.property import EnhancedContent
from listing_scraper.services.claude import ClaudeService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a real estate copywriter. Improve listing copy for clarity and appeal "
    "without inventing facts. Keep the language of the original. "
    "Return ONLY valid JSON, no markdown fences, no explanation."
)

USER_PROMPT_TEMPLATE = (
    "Rewrite the title and description of this property listing.\n\n"
    "Title: {title}\n\n"
    "Description:\n{description}\n\n"
    'Return a JSON object with exactly these fields: "title", "description".'
)


class PropertyEnhancer:
    def __init__(self, claude: ClaudeService, max_tokens: int = 2048):
        self._claude = claude
        self._max_tokens = max_tokens

    async def enhance(self, title: str, description: str) -> EnhancedContent:
        """Improve title/description. Fail-safe: returns the originals on any failure."""
        original = EnhancedContent(title=title, description=description)
        if not title or not description:
            return original

        try:
            return await self._do_enhance(title, description)
        except EnhancementError as exc:
            logger.warning("Enhancement skipped for %r: %s", title[:60], exc.message)
        except Exception:
            logger.exception("Unexpected enhancement failure for %r", title[:60])
        return original

    async def _do_enhance(self, title: str, description: str) -> EnhancedContent:
        prompt = USER_PROMPT_TEMPLATE.format(title=title, description=description)
        data = await self._claude.analyze(SYSTEM_PROMPT, prompt, max_tokens=self._max_tokens)
        if data is None:
            raise EnhancementError("model returned no parseable output")

        new_title = data.get("title")
        new_description = data.get("description")
        if not isinstance(new_title, str) or not new_title.strip():
            raise EnhancementError("missing 'title' in output")
        if not isinstance(new_description, str) or not new_description.strip():
            raise EnhancementError("missing 'description' in output")

        return EnhancedContent(
            title=new_title.strip(),
            description=new_description.strip(),
            enhanced=True,
        )
