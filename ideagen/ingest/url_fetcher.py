"""URL fetching for idea pages: fetch and extract main content as plain text.

``fetch_url_content`` never raises; every failure comes back as a
``FetchResult`` with ``success=False`` and a human-readable ``error``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "User-Agent": "Mozilla/5.0 (compatible; IdeaExtractor/1.0)",
}

BOILERPLATE_TAGS = ["script", "style", "nav", "header", "footer", "aside"]

CONTENT_SELECTORS = [
    "article",
    '[role="main"]',
    ".idea-content",
    ".content",
    ".post-content",
    ".article-content",
    "main",
]

MIN_SELECTOR_TEXT = 100  # a selector match shorter than this is treated as chrome


@dataclass
class FetchResult:
    success: bool
    content: str = ""
    error: str | None = None


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def fetch_url_content(
    url: str,
    timeout: float = 15.0,
    transport: httpx.BaseTransport | None = None,
) -> FetchResult:
    """Fetch ``url`` and return its main text, or a failure value."""
    if not url or not is_valid_url(url.strip()):
        return FetchResult(success=False, error="Invalid URL format")
    url = url.strip()

    try:
        with httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers=REQUEST_HEADERS,
            transport=transport,
        ) as client:
            response = client.get(url)
    except httpx.HTTPError as e:
        logger.warning("URL fetch failed for %s: %s", url, e)
        return FetchResult(success=False, error=str(e) or "Failed to fetch URL")

    if not response.is_success:
        return FetchResult(
            success=False,
            error=f"Failed to fetch URL: {response.status_code} {response.reason_phrase}",
        )

    try:
        content = extract_text(response.text)
    except Exception as e:  # malformed markup; never escape the boundary
        logger.warning("Content extraction failed for %s: %s", url, e)
        content = ""

    if not content:
        return FetchResult(success=False, error="Could not extract content from the page")
    return FetchResult(success=True, content=content)


def extract_text(html: str) -> str:
    """Main-content text: trafilatura first, then selector-based fallback."""
    if not html.strip():
        return ""
    text = trafilatura.extract(html) or ""
    if text.strip():
        return text.strip()
    return _extract_by_selectors(html)


def _extract_by_selectors(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.find_all(BOILERPLATE_TAGS):
        el.decompose()

    for selector in CONTENT_SELECTORS:
        el = soup.select_one(selector)
        if el is not None:
            text = clean_text(el.get_text(" "))
            if len(text) > MIN_SELECTOR_TEXT:
                return text

    body = soup.body
    if body is not None:
        return clean_text(body.get_text(" "))
    return ""


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()
