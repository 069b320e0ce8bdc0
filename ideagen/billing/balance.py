"""Balance tracking against a manually entered starting balance."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable

from pydantic import BaseModel

from ideagen.schemas.models import BalanceSetting, UsageLog

HEALTHY_ABOVE_USD = 20.0
RESYNC_AFTER = timedelta(days=14)


class BalanceLevel(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    LOW = "low"
    CRITICAL = "critical"
    NOT_SET = "not_set"


class BalanceStatus(BaseModel):
    level: BalanceLevel
    message: str
    show_alert: bool


class BalanceSummary(BaseModel):
    balance_usd: float = 0.0
    starting_balance_usd: float | None = None
    total_spent_since_sync: float = 0.0
    balance_synced_at: datetime | None = None
    status: BalanceStatus
    average_daily_spend: float = 0.0
    estimated_days_remaining: int | None = None
    needs_resync: bool = False
    low_balance_threshold: float = 10.0
    balance_not_set: bool = False


def get_balance_status(balance: float, threshold: float) -> BalanceStatus:
    if balance > HEALTHY_ABOVE_USD:
        return BalanceStatus(level=BalanceLevel.HEALTHY, message="Your balance is healthy", show_alert=False)
    if balance > threshold:
        return BalanceStatus(
            level=BalanceLevel.WARNING,
            message="Balance getting low - consider adding credits soon",
            show_alert=True,
        )
    if balance > 1:
        return BalanceStatus(
            level=BalanceLevel.LOW,
            message="Low balance - add credits soon to avoid service interruption",
            show_alert=True,
        )
    if balance > 0:
        return BalanceStatus(
            level=BalanceLevel.CRITICAL,
            message="Critical: Add credits immediately to avoid service interruption",
            show_alert=True,
        )
    return BalanceStatus(
        level=BalanceLevel.CRITICAL,
        message="Balance depleted - add credits to continue",
        show_alert=True,
    )


def summarize_balance(
    setting: BalanceSetting | None,
    logs: Iterable[UsageLog],
    now: datetime | None = None,
) -> BalanceSummary:
    """Current balance = starting balance minus spend logged since the sync time."""
    now = now or datetime.now(timezone.utc)
    if setting is None or setting.starting_balance_usd is None:
        return BalanceSummary(
            balance_not_set=True,
            status=BalanceStatus(
                level=BalanceLevel.NOT_SET,
                message="Set your balance in Settings to start tracking",
                show_alert=True,
            ),
        )

    synced_at = setting.balance_synced_at or datetime.fromtimestamp(0, tz=timezone.utc)
    spent = sum(log.cost_usd for log in logs if log.created_at >= synced_at)
    current = max(0.0, setting.starting_balance_usd - spent)
    threshold = setting.low_balance_threshold_usd

    days = max(1.0, (now - synced_at).total_seconds() / 86400)
    daily = spent / days
    return BalanceSummary(
        balance_usd=current,
        starting_balance_usd=setting.starting_balance_usd,
        total_spent_since_sync=spent,
        balance_synced_at=synced_at,
        status=get_balance_status(current, threshold),
        average_daily_spend=daily,
        estimated_days_remaining=math.floor(current / daily) if daily > 0 else None,
        needs_resync=synced_at < now - RESYNC_AFTER,
        low_balance_threshold=threshold,
    )
