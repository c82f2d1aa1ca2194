from unittest.mock import AsyncMock

import pytest

from listing_scraper.services.claude import ClaudeService
from listing_scraper.services.enhancer import PropertyEnhancer


@pytest.fixture
def claude():
    return AsyncMock(spec=ClaudeService)


@pytest.fixture
def enhancer(claude):
    return PropertyEnhancer(claude)


async def test_enhance_success(enhancer, claude):
    claude.analyze.return_value = {"title": " Bright Loft ", "description": "A bright loft."}
    result = await enhancer.enhance("loft", "nice loft")
    assert result.title == "Bright Loft"
    assert result.description == "A bright loft."
    assert result.enhanced is True


async def test_skipped_when_title_or_description_empty(enhancer, claude):
    result = await enhancer.enhance("loft", "")
    assert result.title == "loft"
    assert result.enhanced is False
    claude.analyze.assert_not_called()


async def test_model_failure_returns_originals(enhancer, claude):
    claude.analyze.return_value = None
    result = await enhancer.enhance("loft", "nice loft")
    assert (result.title, result.description, result.enhanced) == ("loft", "nice loft", False)


async def test_malformed_output_returns_originals(enhancer, claude):
    claude.analyze.return_value = {"title": "New", "description": 42}
    result = await enhancer.enhance("loft", "nice loft")
    assert result.title == "loft"
    assert result.enhanced is False


async def test_exception_returns_originals(enhancer, claude):
    claude.analyze.side_effect = RuntimeError("down")
    result = await enhancer.enhance("loft", "nice loft")
    assert result.description == "nice loft"
    assert result.enhanced is False
