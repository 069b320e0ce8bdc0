"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Settings are read at import time by the API module; point them at a scratch
# directory before anything from ideagen/backend is imported.
os.environ.setdefault("IDEAGEN_DATA_DIR", tempfile.mkdtemp(prefix="ideagen-test-"))
os.environ.setdefault("RATE_LIMIT_MAX", "10000")
os.environ.setdefault("AUTH_USERS", "admin:changeme,alice:wonderland")
os.environ.pop("IDEAGEN_DATABASE_URL", None)

import pytest  # noqa: E402

from ideagen.billing import usage_for  # noqa: E402
from ideagen.billing.usage_store import FileUsageStore  # noqa: E402
from ideagen.ideas.store import FileIdeaStore  # noqa: E402
from ideagen.ingest.url_fetcher import FetchResult  # noqa: E402
from ideagen.pipeline import GenerationEngine  # noqa: E402
from ideagen.schemas.models import (  # noqa: E402
    DocumentResult,
    ExtractedIdea,
    ExtractionResult,
)
from ideagen.sessions.store import FileSessionStore  # noqa: E402

OWNER = "admin"

SAMPLE_IDEA = {
    "title": "AI Scheduling for Dentists",
    "summary": "An AI receptionist that books and reshuffles dental appointments.",
    "arr_potential": "$1M-$5M ARR",
    "pricing": "$199/month per practice",
    "target_market": "Independent dental practices",
    "market_size": "$2B",
    "time_to_mvp": "2 months",
    "capital_needed": "Bootstrappable",
    "competition_level": "Medium",
    "required_skills": ["Python", "LLM integration"],
    "market_type": "B2B",
    "founder_fit_tags": ["technical_founder", "b2b_sales"],
    "growth_channels": "Dental associations, cold email",
    "key_risks": "Incumbent practice-management software",
    "key_opportunities": "Front-desk staffing shortage",
    "competitors_mentioned": "NexHealth, Weave",
}


class FakeGenerator:
    """IdeaGenerator that records every call and can be told to fail."""

    def __init__(self, fail_on=None):
        self.calls: list[str] = []
        self.fail_on = fail_on or {}

    def _call(self, operation: str):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def extract_idea(self, email_preview, full_content):
        self._call("extract_idea")
        return ExtractionResult(
            idea=ExtractedIdea(**SAMPLE_IDEA),
            usage=usage_for(1000, 400, model="fake-model"),
        )

    def generate_prd(self, idea):
        self._call("generate_prd")
        return DocumentResult(content=f"# PRD: {idea.title}", usage=usage_for(800, 3000, model="fake-model"))

    def generate_gtm(self, idea):
        self._call("generate_gtm")
        return DocumentResult(content=f"# GTM: {idea.title}", usage=usage_for(800, 2000, model="fake-model"))

    def generate_marketing_plan(self, idea):
        self._call("generate_marketing")
        return DocumentResult(content=f"# Marketing: {idea.title}", usage=usage_for(800, 2000, model="fake-model"))


class FakeFetcher:
    """Fetcher returning a fixed result and recording requested URLs."""

    def __init__(self, result: FetchResult):
        self.result = result
        self.urls: list[str] = []

    def __call__(self, url: str) -> FetchResult:
        self.urls.append(url)
        return self.result


@pytest.fixture
def session_store(tmp_path):
    return FileSessionStore(tmp_path)


@pytest.fixture
def idea_store(tmp_path):
    return FileIdeaStore(tmp_path)


@pytest.fixture
def usage_store(tmp_path):
    return FileUsageStore(tmp_path)


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def ok_fetcher():
    return FakeFetcher(FetchResult(success=True, content="Full idea page text. " * 20))


@pytest.fixture
def failing_fetcher():
    return FakeFetcher(FetchResult(success=False, error="Failed to fetch URL: 404 Not Found"))


@pytest.fixture
def engine(session_store, generator, ok_fetcher, usage_store):
    return GenerationEngine(session_store, generator, fetcher=ok_fetcher, usage_store=usage_store)
