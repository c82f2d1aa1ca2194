from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from listing_scraper.services.claude import ClaudeService


def _make_response(text: str):
    """Build a mock Anthropic response."""
    block = MagicMock()
    block.text = text
    resp = MagicMock()
    resp.content = [block]
    return resp


@pytest.fixture
def service():
    return ClaudeService(api_key="test-key")


async def test_analyze_success(service):
    mock_resp = _make_response('{"title": "Sunny flat", "description": "Two rooms"}')
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, return_value=mock_resp):
        result = await service.analyze("system", "user")
    assert result == {"title": "Sunny flat", "description": "Two rooms"}


async def test_analyze_passes_model_and_max_tokens():
    service = ClaudeService(api_key="test-key", model="claude-test")
    mock_resp = _make_response("{}")
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, return_value=mock_resp) as create:
        await service.analyze("system", "user", max_tokens=4000)
    kwargs = create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["max_tokens"] == 4000
    assert kwargs["system"] == "system"


async def test_analyze_with_markdown_fences(service):
    mock_resp = _make_response('```json\n{"properties": []}\n```')
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, return_value=mock_resp):
        result = await service.analyze("system", "user")
    assert result == {"properties": []}


async def test_analyze_with_surrounding_text_and_nesting(service):
    mock_resp = _make_response(
        'Here you go: {"properties": [{"title": "A", "features": ["pool"]}]} done.'
    )
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, return_value=mock_resp):
        result = await service.analyze("system", "user")
    assert result == {"properties": [{"title": "A", "features": ["pool"]}]}


async def test_analyze_api_error_returns_none(service):
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, side_effect=Exception("API error")):
        result = await service.analyze("system", "user")
    assert result is None


async def test_analyze_unparseable_returns_none(service):
    mock_resp = _make_response("I could not find any listings.")
    with patch.object(service._client.messages, "create", new_callable=AsyncMock, return_value=mock_resp):
        result = await service.analyze("system", "user")
    assert result is None


def test_try_parse_json_direct():
    assert ClaudeService._try_parse_json('{"a": 1}') == {"a": 1}


def test_try_parse_json_fenced():
    assert ClaudeService._try_parse_json('```json\n{"a": 1}\n```') == {"a": 1}


def test_try_parse_json_list_is_rejected():
    assert ClaudeService._try_parse_json("[1, 2]") is None


def test_try_parse_json_invalid():
    assert ClaudeService._try_parse_json("no json here") is None
