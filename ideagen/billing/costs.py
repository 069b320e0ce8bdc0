"""Token cost calculation and estimates."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ideagen.schemas.models import Usage


@dataclass(frozen=True)
class Pricing:
    """USD per million tokens."""

    input_per_million: float = 3.0
    output_per_million: float = 15.0


DEFAULT_PRICING = Pricing()

# Typical output size per operation (tokens): (min, max, avg)
OUTPUT_TOKEN_RANGES: dict[str, tuple[int, int, int]] = {
    "extract_idea": (300, 600, 450),
    "generate_prd": (2000, 4000, 3000),
    "generate_gtm": (1500, 3000, 2000),
    "generate_marketing": (1500, 3000, 2000),
}
_DEFAULT_RANGE = (500, 2000, 1000)


@dataclass
class CostBreakdown:
    input_tokens: int
    output_tokens: int
    input_cost: float
    output_cost: float

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> float:
        return self.input_cost + self.output_cost


def calculate_cost(
    input_tokens: int,
    output_tokens: int,
    pricing: Pricing = DEFAULT_PRICING,
) -> CostBreakdown:
    return CostBreakdown(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        input_cost=input_tokens / 1_000_000 * pricing.input_per_million,
        output_cost=output_tokens / 1_000_000 * pricing.output_per_million,
    )


def usage_for(
    input_tokens: int,
    output_tokens: int,
    model: str = "",
    pricing: Pricing = DEFAULT_PRICING,
) -> Usage:
    cost = calculate_cost(input_tokens, output_tokens, pricing)
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cost_usd=cost.total_cost,
        model=model,
    )


def estimate_cost(
    content_length: int,
    operation: str,
    pricing: Pricing = DEFAULT_PRICING,
) -> dict[str, float]:
    """Rough cost range for an operation, assuming ~4 characters per token."""
    input_tokens = math.ceil(content_length / 4)
    lo, hi, avg = OUTPUT_TOKEN_RANGES.get(operation, _DEFAULT_RANGE)
    return {
        "min": calculate_cost(input_tokens, lo, pricing).total_cost,
        "max": calculate_cost(input_tokens, hi, pricing).total_cost,
        "estimate": calculate_cost(input_tokens, avg, pricing).total_cost,
    }


def format_cost(cost: float) -> str:
    if cost < 0.01:
        return f"${cost:.4f}"
    return f"${cost:.2f}"


def format_tokens(tokens: int) -> str:
    if tokens >= 1_000_000:
        return f"{tokens / 1_000_000:.2f}M"
    if tokens >= 1_000:
        return f"{tokens / 1_000:.1f}K"
    return str(tokens)
