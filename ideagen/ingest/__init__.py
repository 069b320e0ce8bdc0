"""Content ingestion: URL fetch and text extraction."""

from ideagen.ingest.url_fetcher import FetchResult, fetch_url_content

__all__ = ["FetchResult", "fetch_url_content"]
