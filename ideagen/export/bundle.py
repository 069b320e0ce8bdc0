"""Markdown/ZIP document bundles and CSV exports for ideas and usage."""

from __future__ import annotations

import csv
import io
import re
import zipfile
from typing import Iterable

from ideagen.schemas.models import Idea, UsageLog

DOCUMENT_SUFFIXES = {
    "prd": "prd",
    "gtm": "gtm-strategy",
    "marketing": "marketing-plan",
}

OPERATION_LABELS = {
    "extract_idea": "Extract Idea",
    "generate_prd": "Generate PRD",
    "generate_gtm": "Generate GTM",
    "generate_marketing": "Generate Marketing",
}


def slugify(text: str) -> str:
    """Lowercase, runs of non-alphanumerics to single dashes, no edge dashes."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def document_filename(title: str, kind: str) -> str:
    if kind not in DOCUMENT_SUFFIXES:
        raise ValueError(f"Unknown document type: {kind}")
    return f"{slugify(title)}-{DOCUMENT_SUFFIXES[kind]}.md"


def zip_filename(title: str) -> str:
    return f"{slugify(title)}-complete-analysis.zip"


def build_zip(title: str, prd: str, gtm: str, marketing: str) -> bytes:
    """Bundle the three documents into one ZIP archive."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(document_filename(title, "prd"), prd.encode("utf-8"))
        zf.writestr(document_filename(title, "gtm"), gtm.encode("utf-8"))
        zf.writestr(document_filename(title, "marketing"), marketing.encode("utf-8"))
    return buf.getvalue()


def usage_csv(logs: Iterable[UsageLog], idea_titles: dict[str, str] | None = None) -> str:
    idea_titles = idea_titles or {}
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([
        "Date", "Operation", "Idea", "Input Tokens", "Output Tokens", "Total Tokens", "Cost (USD)",
    ])
    for log in logs:
        if log.idea_id:
            idea = idea_titles.get(log.idea_id, "Unknown")
        else:
            idea = "N/A"
        writer.writerow([
            log.created_at.isoformat(),
            OPERATION_LABELS.get(log.operation_type, log.operation_type),
            idea,
            log.input_tokens,
            log.output_tokens,
            log.total_tokens,
            f"{log.cost_usd:.6f}",
        ])
    return buf.getvalue()


IDEA_CSV_COLUMNS = [
    ("Title", "title"),
    ("Summary", "summary"),
    ("ARR Potential", "arr_potential"),
    ("Pricing", "pricing"),
    ("Target Market", "target_market"),
    ("Market Size", "market_size"),
    ("Time to MVP", "time_to_mvp"),
    ("Capital Needed", "capital_needed"),
    ("Competition Level", "competition_level"),
    ("Required Skills", "required_skills"),
    ("Market Type", "market_type"),
    ("Founder Fit Tags", "founder_fit_tags"),
    ("Growth Channels", "growth_channels"),
    ("Key Risks", "key_risks"),
    ("Key Opportunities", "key_opportunities"),
    ("Competitors", "competitors_mentioned"),
    ("Quality Score", "quality_score"),
    ("Status", "status"),
    ("Date Added", "date_added"),
]


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ", ".join(value)
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def ideas_csv(ideas: Iterable[Idea]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow([header for header, _ in IDEA_CSV_COLUMNS])
    for idea in ideas:
        writer.writerow([_cell(getattr(idea, attr)) for _, attr in IDEA_CSV_COLUMNS])
    return buf.getvalue()
