import asyncio
from unittest.mock import AsyncMock, patch

import respx
from httpx import AsyncClient, Response

from listing_scraper.services.claude import ClaudeService

PAGE_URL = "https://homes.example.com/listing/42"

LISTING_HTML = (
    "<html><body><h1>Canal apartment</h1>"
    "<p>Two bedroom apartment on the canal with balcony and lift access.</p>"
    '<img src="/img/1.jpg"><img src="/img/2.jpg"></body></html>'
)


def _extraction(*items):
    return {"properties": list(items)}


def _analyze(extraction):
    async def _side_effect(system_prompt, user_prompt, max_tokens=1024):
        if "extracting structured data" in system_prompt:
            return extraction
        return {"title": "Canal Apartment with Balcony", "description": "Bright two bedroom flat."}

    return AsyncMock(side_effect=_side_effect)


def _mock_images():
    for name in ("1.jpg", "2.jpg"):
        respx.get(f"https://homes.example.com/img/{name}").mock(
            return_value=Response(200, content=b"img", headers={"content-type": "image/jpeg"})
        )
    respx.head(host="cdn.test").mock(return_value=Response(200))


async def submit_and_wait(client: AsyncClient, json=None, timeout: float = 5.0):
    """POST /scrape/bulk -> 202, then poll GET /jobs/{job_id} until terminal state."""
    resp = await client.post("/scrape/bulk", json=json)
    assert resp.status_code == 202

    data = resp.json()
    job_id = data["job_id"]
    assert data["status"] == "pending"

    deadline = asyncio.get_event_loop().time() + timeout
    while asyncio.get_event_loop().time() < deadline:
        await asyncio.sleep(0.05)
        status_resp = await client.get(f"/jobs/{job_id}")
        assert status_resp.status_code == 200
        job = status_resp.json()
        if job["status"] in ("completed", "failed"):
            return job

    raise TimeoutError(f"Job {job_id} did not complete within {timeout}s")


@respx.mock
async def test_scrape_url(client):
    respx.get(PAGE_URL).mock(return_value=Response(200, html=LISTING_HTML))
    _mock_images()

    with patch.object(ClaudeService, "analyze", _analyze(_extraction({"title": "Canal apartment", "description": "Two bedrooms", "bedrooms": "2"}))):
        resp = await client.post("/scrape/url", json={"url": PAGE_URL})

    assert resp.status_code == 200
    data = resp.json()
    assert data["count"] == 1
    prop = data["properties"][0]
    assert prop["original_url"] == PAGE_URL
    assert prop["bedrooms"] == 2
    assert prop["title"] == "Canal Apartment with Balcony"
    assert len(prop["image_urls"]) == 2
    assert prop["image_urls"][0].startswith("https://cdn.test/property-images/")
    assert prop["image_url"] == prop["image_urls"][0]

    listing = await client.get("/properties")
    assert [p["id"] for p in listing.json()] == [prop["id"]]
    history = await client.get("/history")
    assert history.json()[0]["type"] == "URL"
    assert history.json()[0]["propertyCount"] == 1


@respx.mock
async def test_scrape_url_fetch_error_is_502(client):
    respx.get(PAGE_URL).mock(return_value=Response(503))
    resp = await client.post("/scrape/url", json={"url": PAGE_URL})
    assert resp.status_code == 502
    assert PAGE_URL in resp.json()["detail"]
    assert resp.json()["upstream_status"] == 503


async def test_scrape_url_invalid_is_422(client):
    resp = await client.post("/scrape/url", json={"url": "not a url"})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Invalid URL provided."


async def test_scrape_html_no_properties(client):
    with patch.object(ClaudeService, "analyze", _analyze(_extraction())):
        resp = await client.post("/scrape/html", json={"html": LISTING_HTML})
    assert resp.status_code == 200
    assert resp.json() == {"count": 0, "properties": []}

    history = await client.get("/history")
    assert history.json()[0]["type"] == "HTML"
    assert history.json()[0]["propertyCount"] == 0


async def test_scrape_html_too_short_is_422(client):
    resp = await client.post("/scrape/html", json={"html": "<p>x</p>"})
    assert resp.status_code == 422


@respx.mock
async def test_scrape_bulk_sync(client):
    respx.get("https://a.com/1").mock(return_value=Response(200, html="<html>1</html>"))
    respx.get("https://a.com/2").mock(return_value=Response(404))

    with patch.object(ClaudeService, "analyze", _analyze(_extraction({"title": "One", "location": "X"}))):
        resp = await client.post("/scrape/bulk/sync", json={"urls": "https://a.com/1\nhttps://a.com/2"})

    assert resp.status_code == 200
    assert resp.json()["count"] == 1
    assert resp.json()["properties"][0]["original_url"] == "https://a.com/1"


async def test_scrape_bulk_empty_is_422(client):
    resp = await client.post("/scrape/bulk", json={"urls": "  \n "})
    assert resp.status_code == 422


@respx.mock
async def test_scrape_bulk_job(client):
    respx.get("https://a.com/1").mock(return_value=Response(200, html="<html>1</html>"))

    with patch.object(ClaudeService, "analyze", _analyze(_extraction({"title": "One"}))):
        job = await submit_and_wait(client, json={"urls": "https://a.com/1"})

    assert job["status"] == "completed"
    assert job["url_count"] == 1
    assert job["result"]["count"] == 1


async def test_unknown_job_is_404(client):
    resp = await client.get("/jobs/nope")
    assert resp.status_code == 404
