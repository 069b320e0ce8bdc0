"""Usage dashboard API: per-call cost log, CSV export and manual balance."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field

from backend.auth import current_owner
from backend.deps import idea_store_dep, usage_store_dep
from ideagen.billing import BalanceSummary, summarize_balance
from ideagen.config import get_settings
from ideagen.export import usage_csv
from ideagen.schemas.models import BalanceSetting, UsageLog, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


class OperationStats(BaseModel):
    count: int = 0
    cost_usd: float = 0.0


class UsageReport(BaseModel):
    logs: list[UsageLog]
    total_cost: float = 0.0
    total_tokens: int = 0
    average_cost_per_operation: float = 0.0
    by_operation: dict[str, OperationStats] = Field(default_factory=dict)


class BalanceUpdate(BaseModel):
    starting_balance_usd: float = Field(ge=0)
    low_balance_threshold_usd: Optional[float] = Field(default=None, ge=0)


def _since(days: Optional[int]) -> Optional[datetime]:
    if not days:
        return None
    return datetime.now(timezone.utc) - timedelta(days=days)


def build_report(logs: list[UsageLog]) -> UsageReport:
    report = UsageReport(logs=logs)
    for log in logs:
        report.total_cost += log.cost_usd
        report.total_tokens += log.total_tokens
        stats = report.by_operation.setdefault(log.operation_type, OperationStats())
        stats.count += 1
        stats.cost_usd += log.cost_usd
    if logs:
        report.average_cost_per_operation = report.total_cost / len(logs)
    return report


@router.get("/usage", response_model=UsageReport)
def get_usage(
    days: Optional[int] = 30,
    operation_type: Optional[str] = None,
    owner: str = Depends(current_owner),
    store=Depends(usage_store_dep),
):
    """Usage log for the last ``days`` days (all time when 0)."""
    return build_report(store.list(owner, since=_since(days), operation_type=operation_type))


@router.get("/usage/export.csv")
def export_usage(
    days: Optional[int] = 30,
    operation_type: Optional[str] = None,
    owner: str = Depends(current_owner),
    store=Depends(usage_store_dep),
    idea_store=Depends(idea_store_dep),
):
    logs = store.list(owner, since=_since(days), operation_type=operation_type)
    titles = {i.id: i.title for i in idea_store.list(owner)}
    filename = f"usage-report-{date.today().isoformat()}.csv"
    return Response(
        content=usage_csv(logs, titles),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/usage/balance", response_model=BalanceSummary)
def get_balance(owner: str = Depends(current_owner), store=Depends(usage_store_dep)):
    setting = store.get_balance(owner)
    since = setting.balance_synced_at if setting else None
    return summarize_balance(setting, store.list(owner, since=since))


@router.put("/usage/balance", response_model=BalanceSummary)
def set_balance(
    body: BalanceUpdate,
    owner: str = Depends(current_owner),
    store=Depends(usage_store_dep),
):
    """Record the balance shown in the provider console; spend is counted from now."""
    existing = store.get_balance(owner)
    threshold = body.low_balance_threshold_usd
    if threshold is None:
        threshold = existing.low_balance_threshold_usd if existing else get_settings().low_balance_threshold_usd
    setting = store.set_balance(BalanceSetting(
        owner_id=owner,
        starting_balance_usd=body.starting_balance_usd,
        balance_synced_at=utcnow(),
        low_balance_threshold_usd=threshold,
    ))
    logger.info("Balance for %s set to $%.2f", owner, body.starting_balance_usd)
    return summarize_balance(setting, [])
