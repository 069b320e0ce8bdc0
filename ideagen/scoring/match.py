"""Founder match: rank saved ideas against a founder's skills, budget and time."""

from __future__ import annotations

import math
import re
from typing import Iterable

from pydantic import BaseModel

from ideagen.errors import MissingInputError
from ideagen.schemas.models import Idea

SKILLS = ("code", "design", "marketing", "sales")
BUDGET_LIMITS = {
    "<$1K": 1_000,
    "$1K-5K": 5_000,
    "$5K-20K": 20_000,
    "$20K-50K": 50_000,
    "$50K+": 100_000,
}
LOW_BUDGETS = ("<$1K", "$1K-5K")
TIME_OPTIONS = ("full-time", "nights-weekends")

SKILL_POINTS = 40
MIN_MATCH_SCORE = 20
FIT_TAGS = {
    "code": "technical_founder",
    "design": "design_founder",
    "marketing": "marketing_founder",
}

_NON_DIGIT = re.compile(r"[^0-9]")


class IdeaMatch(BaseModel):
    idea: Idea
    match_score: int
    reasons: list[str]


def skills_score(skills: list[str], required: list[str], reasons: list[str]) -> float:
    if not required:
        return SKILL_POINTS / 2
    matching = [s for s in skills if any(s.lower() in r.lower() for r in required)]
    if matching:
        reasons.append(f"{len(matching)} of {len(required)} required skills match")
    return len(matching) / len(required) * SKILL_POINTS


def budget_score(capital_needed: str, budget: str, reasons: list[str]) -> int:
    capital = capital_needed or ""
    lowered = capital.lower()
    if "bootstrap" in lowered or "low" in lowered:
        if budget in LOW_BUDGETS:
            reasons.append("Low capital requirements match your budget")
            return 30
        return 20
    if "$" not in capital:
        return 15

    digits = _NON_DIGIT.sub("", capital)
    if not digits:
        return 10
    needed = int(digits)
    limit = BUDGET_LIMITS[budget]
    if needed <= limit:
        reasons.append("Capital requirements fit within your budget")
        return 30
    if needed <= limit * 1.5:
        reasons.append("Capital requirements slightly above budget")
        return 20
    return 10


def time_score(time_to_mvp: str, tags: list[str], availability: str, reasons: list[str]) -> int:
    t = (time_to_mvp or "").lower()
    if availability == "full-time":
        if "quick_shipper" in tags or "week" in t or "1 month" in t or "2 month" in t:
            reasons.append("Quick MVP timeline suits full-time commitment")
            return 30
        return 20

    if "nights_weekends" in tags or "bootstrapper" in tags:
        reasons.append("Tagged for nights/weekends founders")
        return 30
    if "month" in t and "1 month" not in t:
        reasons.append("Longer timeline works for part-time effort")
        return 20
    return 10


def fit_tag_bonus(skills: list[str], tags: list[str], reasons: list[str]) -> int:
    matching = [tag for tag in tags if any(FIT_TAGS.get(s) == tag for s in skills)]
    if not matching:
        return 0
    reasons.append(f"Founder fit: {', '.join(matching)}")
    return 5


def score_idea(idea: Idea, skills: list[str], budget: str, availability: str) -> IdeaMatch:
    reasons: list[str] = []
    tags = idea.founder_fit_tags or []
    score = (
        skills_score(skills, idea.required_skills or [], reasons)
        + budget_score(idea.capital_needed, budget, reasons)
        + time_score(idea.time_to_mvp, tags, availability, reasons)
        + fit_tag_bonus(skills, tags, reasons)
    )
    if idea.quality_score and idea.quality_score > 70:
        reasons.append(f"High quality score: {idea.quality_score}/100")
    # Half-up rounding
    return IdeaMatch(idea=idea, match_score=min(math.floor(score + 0.5), 100), reasons=reasons)


def match_ideas(
    ideas: Iterable[Idea],
    skills: list[str],
    budget: str,
    availability: str,
    limit: int | None = 3,
) -> list[IdeaMatch]:
    """Best matches first, ranked by match score plus a fifth of the quality score.

    Ideas scoring 20 or less are left out.
    """
    skills = [s.strip().lower() for s in skills if s and s.strip()]
    if not skills or not budget or not availability:
        raise MissingInputError("Please provide skills, budget and time availability")
    if budget not in BUDGET_LIMITS:
        raise ValueError(f"Unknown budget range: {budget} (expected one of {', '.join(BUDGET_LIMITS)})")
    if availability not in TIME_OPTIONS:
        raise ValueError(f"Unknown time availability: {availability} (expected one of {', '.join(TIME_OPTIONS)})")

    matches = []
    for idea in ideas:
        m = score_idea(idea, skills, budget, availability)
        if m.match_score > MIN_MATCH_SCORE:
            matches.append(m)
    matches.sort(key=lambda m: m.match_score + (m.idea.quality_score or 0) * 0.2, reverse=True)
    return matches[:limit] if limit else matches
