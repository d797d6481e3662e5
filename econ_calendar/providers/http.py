"""HTTP fetching for calendar sources."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
}


class SourceFetchError(RuntimeError):
    """A calendar source timed out, was unreachable or answered with an error status."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


async def fetch_html(
    client: httpx.AsyncClient,
    url: str,
    *,
    source: str,
    timeout: float,
    scraper_api_key: str | None = None,
    scraper_api_url: str = "https://api.scraperapi.com/",
    proxy_timeout: float = 45.0,
) -> str:
    """GET ``url`` and return the body, optionally through a scraping proxy.

    ``timeout`` bounds the whole request including the body; httpx's own
    timeout only bounds each individual read.
    """

    params: dict[str, str] | None = None
    target = url
    if scraper_api_key:
        params = {"api_key": scraper_api_key, "url": url}
        target = scraper_api_url
        timeout = proxy_timeout
    try:
        response = await asyncio.wait_for(
            client.get(
                target,
                params=params,
                headers=BROWSER_HEADERS,
                timeout=timeout,
                follow_redirects=True,
            ),
            timeout=timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise SourceFetchError(source, f"request timed out after {timeout:g} seconds") from exc
    except httpx.HTTPError as exc:
        raise SourceFetchError(source, f"request failed: {exc}") from exc
    if response.status_code >= 400:
        raise SourceFetchError(source, f"HTTP {response.status_code} from {url}")
    logger.info("Fetched %s (%d bytes) from %s", url, len(response.text), source)
    return response.text


__all__ = ["BROWSER_HEADERS", "SourceFetchError", "fetch_html"]
