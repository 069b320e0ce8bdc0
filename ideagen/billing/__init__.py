"""Token cost accounting, usage log and balance tracking."""

from ideagen.billing.balance import BalanceLevel, BalanceStatus, BalanceSummary, get_balance_status, summarize_balance
from ideagen.billing.costs import (
    DEFAULT_PRICING,
    CostBreakdown,
    Pricing,
    calculate_cost,
    estimate_cost,
    format_cost,
    format_tokens,
    usage_for,
)
from ideagen.billing.usage_store import FileUsageStore, PostgresUsageStore, UsageStore, get_usage_store

__all__ = [
    "BalanceLevel",
    "BalanceStatus",
    "BalanceSummary",
    "CostBreakdown",
    "DEFAULT_PRICING",
    "FileUsageStore",
    "PostgresUsageStore",
    "Pricing",
    "UsageStore",
    "calculate_cost",
    "estimate_cost",
    "format_cost",
    "format_tokens",
    "get_balance_status",
    "get_usage_store",
    "summarize_balance",
    "usage_for",
]
