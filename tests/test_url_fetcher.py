"""Tests for URL fetching and content extraction (no network: httpx.MockTransport)."""

import httpx
import pytest

from ideagen.ingest.url_fetcher import (
    _extract_by_selectors,
    clean_text,
    fetch_url_content,
    is_valid_url,
)

ARTICLE = (
    "Dental practices lose thousands of dollars every month to no-shows and "
    "last-minute cancellations. An AI receptionist can fill those gaps by "
    "messaging patients on the waitlist the moment a slot opens. "
)

PAGE = f"""
<html>
  <head><title>AI Scheduling for Dentists</title><script>var x = 1;</script></head>
  <body>
    <nav>Home | Ideas | Pricing</nav>
    <article>
      <h1>AI Scheduling for Dentists</h1>
      <p>{ARTICLE}</p>
      <p>{ARTICLE}</p>
      <p>{ARTICLE}</p>
    </article>
    <footer>Copyright IdeaBrowser</footer>
  </body>
</html>
"""


def _transport(status=200, body="", exc=None):
    def handler(request):
        if exc is not None:
            raise exc(f"connection refused to {request.url.host}", request=request)
        return httpx.Response(status, text=body)

    return httpx.MockTransport(handler)


@pytest.mark.parametrize("url", ["", "not a url", "ftp://example.com/file", "https://"])
def test_invalid_urls_rejected(url):
    result = fetch_url_content(url)
    assert result.success is False
    assert result.error == "Invalid URL format"


def test_is_valid_url():
    assert is_valid_url("https://www.ideabrowser.com/idea/x")
    assert is_valid_url("http://localhost:8000/")
    assert not is_valid_url("mailto:someone@example.com")


def test_non_success_status_reported():
    result = fetch_url_content("https://example.com/missing", transport=_transport(status=404))
    assert result.success is False
    assert result.error == "Failed to fetch URL: 404 Not Found"


def test_transport_error_reported_not_raised():
    result = fetch_url_content("https://example.com/", transport=_transport(exc=httpx.ConnectError))
    assert result.success is False
    assert "connection refused" in result.error


def test_empty_page_reported():
    result = fetch_url_content("https://example.com/", transport=_transport(body="   "))
    assert result.success is False
    assert result.error == "Could not extract content from the page"


def test_article_text_extracted():
    result = fetch_url_content("https://example.com/idea", transport=_transport(body=PAGE))
    assert result.success is True
    assert "AI receptionist" in result.content
    assert "var x" not in result.content


# --- Selector fallback ---


def test_selector_fallback_skips_short_matches_and_boilerplate():
    html = f"""
    <body>
      <header>Site header</header>
      <article>Too short</article>
      <div class="content">{ARTICLE}</div>
      <aside>Sidebar ads</aside>
    </body>
    """
    text = _extract_by_selectors(html)
    assert text == clean_text(ARTICLE)
    assert "Sidebar" not in text


def test_selector_fallback_uses_body_when_nothing_matches():
    html = "<body><nav>Menu</nav><div>Just a short note</div><p>and another</p></body>"
    assert _extract_by_selectors(html) == "Just a short note and another"


def test_clean_text_collapses_whitespace():
    assert clean_text("  a\n\n b\t c  ") == "a b c"
