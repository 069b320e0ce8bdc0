"""Heuristic 0-100 quality score for an extracted idea."""

import re

from ideagen.schemas.models import ExtractedIdea

COMPLETENESS_POINTS = 30
_HAS_DIGIT = re.compile(r"\d")


def _filled(value: str) -> bool:
    return bool(value and value.strip())


def completeness_score(idea: ExtractedIdea) -> float:
    """Share of the 15 business fields that are filled, scaled to 30 points."""
    fields = [
        idea.title,
        idea.summary,
        idea.arr_potential,
        idea.pricing,
        idea.target_market,
        idea.market_size,
        idea.time_to_mvp,
        idea.capital_needed,
        idea.competition_level,
        "yes" if idea.required_skills else "",
        idea.market_type,
        "yes" if idea.founder_fit_tags else "",
        idea.growth_channels,
        idea.key_risks,
        idea.key_opportunities,
    ]
    filled = sum(1 for f in fields if _filled(f))
    return filled / len(fields) * COMPLETENESS_POINTS


def competition_score(level: str) -> int:
    level = level.lower()
    if "low" in level:
        return 20
    if "medium" in level:
        return 12
    if "high" in level:
        return 5
    return 0


def arr_score(arr_potential: str) -> int:
    if not _filled(arr_potential):
        return 0
    return 20 if _HAS_DIGIT.search(arr_potential) else 10


def market_size_score(market_size: str) -> int:
    if not _filled(market_size):
        return 0
    return 15 if _HAS_DIGIT.search(market_size) else 8


def time_to_mvp_score(time_to_mvp: str) -> int:
    # Shorter is better
    t = time_to_mvp.lower()
    if "week" in t or "1 month" in t or "2 month" in t:
        return 15
    if "3 month" in t or "4 month" in t:
        return 12
    if "month" in t:
        return 8
    if "year" in t:
        return 3
    return 0


def calculate_quality_score(idea: ExtractedIdea) -> int:
    score = (
        completeness_score(idea)
        + competition_score(idea.competition_level)
        + arr_score(idea.arr_potential)
        + market_size_score(idea.market_size)
        + time_to_mvp_score(idea.time_to_mvp)
    )
    return min(max(round(score), 0), 100)
