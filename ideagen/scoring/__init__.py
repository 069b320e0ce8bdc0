"""Idea quality scoring and founder matching."""

from ideagen.scoring.match import IdeaMatch, match_ideas
from ideagen.scoring.quality import calculate_quality_score

__all__ = ["IdeaMatch", "calculate_quality_score", "match_ideas"]
