"""Tests for document filenames, ZIP bundles and CSV exports."""

import csv
import io
import zipfile

import pytest

from ideagen.export import build_zip, document_filename, ideas_csv, slugify, usage_csv, zip_filename
from ideagen.schemas.models import Idea, UsageLog

from conftest import OWNER, SAMPLE_IDEA


@pytest.mark.parametrize(
    "title, slug",
    [
        ("AI Scheduling for Dentists", "ai-scheduling-for-dentists"),
        ("  $10k/mo -- SaaS!  ", "10k-mo-saas"),
        ("Café Finder", "caf-finder"),
    ],
)
def test_slugify(title, slug):
    assert slugify(title) == slug


def test_document_filenames():
    title = SAMPLE_IDEA["title"]
    assert document_filename(title, "prd") == "ai-scheduling-for-dentists-prd.md"
    assert document_filename(title, "gtm") == "ai-scheduling-for-dentists-gtm-strategy.md"
    assert document_filename(title, "marketing") == "ai-scheduling-for-dentists-marketing-plan.md"
    assert zip_filename(title) == "ai-scheduling-for-dentists-complete-analysis.zip"
    with pytest.raises(ValueError):
        document_filename(title, "pdf")


def test_zip_contains_three_documents():
    data = build_zip(SAMPLE_IDEA["title"], "# PRD", "# GTM", "# Marketing")
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        names = sorted(zf.namelist())
        assert names == [
            "ai-scheduling-for-dentists-gtm-strategy.md",
            "ai-scheduling-for-dentists-marketing-plan.md",
            "ai-scheduling-for-dentists-prd.md",
        ]
        assert zf.read("ai-scheduling-for-dentists-prd.md").decode("utf-8") == "# PRD"


def test_usage_csv_labels_and_idea_titles():
    logs = [
        UsageLog(id="usage_1", owner_id=OWNER, operation_type="generate_prd", input_tokens=10,
                 output_tokens=20, total_tokens=30, cost_usd=0.00033, idea_id="idea_1"),
        UsageLog(id="usage_2", owner_id=OWNER, operation_type="extract_idea", idea_id="idea_gone"),
        UsageLog(id="usage_3", owner_id=OWNER, operation_type="custom_op"),
    ]
    rows = list(csv.reader(io.StringIO(usage_csv(logs, {"idea_1": "Dentist AI"}))))

    assert rows[0] == ["Date", "Operation", "Idea", "Input Tokens", "Output Tokens", "Total Tokens", "Cost (USD)"]
    assert rows[1][1:] == ["Generate PRD", "Dentist AI", "10", "20", "30", "0.000330"]
    assert rows[2][1:3] == ["Extract Idea", "Unknown"]
    assert rows[3][1:3] == ["custom_op", "N/A"]


def test_ideas_csv_quotes_and_joins_lists():
    idea = Idea(id="idea_1", owner_id=OWNER, quality_score=92, **{**SAMPLE_IDEA, "summary": 'Says "hi", twice'})
    text = ideas_csv([idea])
    rows = list(csv.reader(io.StringIO(text)))

    assert rows[0][0] == "Title" and rows[0][-1] == "Date Added"
    record = dict(zip(rows[0], rows[1]))
    assert record["Summary"] == 'Says "hi", twice'
    assert record["Required Skills"] == "Python, LLM integration"
    assert record["Quality Score"] == "92"
    assert record["Status"] == "new"
    assert text.startswith('"Title"')
