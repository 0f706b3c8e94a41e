"""
Financeiro Analyzer
====================
Runs the whole financial analytics pass for one period selection:
window resolution, KPIs for the current and previous period, deltas,
12-month trend, breakdowns, rankings and rule-based insights.

Exports:
    run_financial_analysis, filtered_closures
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from models.financeiro_models import FinancialClosure, FinancialReport
from scripts.financeiro.aggregation import (
    compute_cost_breakdown,
    compute_kpis,
    filter_closures,
    revenue_by_service,
    top_clients,
)
from scripts.financeiro.config import FinanceConfig
from scripts.financeiro.data_loader import FinanceDataset
from scripts.financeiro.deltas import compute_kpi_deltas
from scripts.financeiro.insights import InsightInput, compute_insights
from scripts.financeiro.joins import index_orders
from scripts.financeiro.periods import PeriodSelection, ResolvedPeriod
from scripts.financeiro.trend import build_trend, margin_trend
from scripts.lib.logger import setup_logger
from scripts.lib.utils import now_utc

logger = setup_logger(__name__)


def _select(
    closures: List[FinancialClosure],
    resolved: ResolvedPeriod,
    month: Optional[str],
    config: FinanceConfig,
) -> tuple[List[FinancialClosure], List[FinancialClosure]]:
    if resolved.invalid_range:
        return [], []
    current = filter_closures(closures, resolved.current, month=month, tz=config.tz)
    # Drill-down month narrows only the current period
    previous = filter_closures(closures, resolved.previous, tz=config.tz)
    return current, previous


def filtered_closures(
    dataset: FinanceDataset,
    selection: PeriodSelection,
    now: Optional[datetime] = None,
    month: Optional[str] = None,
    config: Optional[FinanceConfig] = None,
) -> List[FinancialClosure]:
    """Closures of the current period selection (what the export writes)."""
    config = config or FinanceConfig()
    resolved = selection.resolve(now or now_utc(), tz=config.tz)
    current, _ = _select(dataset.closures, resolved, month, config)
    return current


def run_financial_analysis(
    dataset: FinanceDataset,
    selection: PeriodSelection,
    now: Optional[datetime] = None,
    month: Optional[str] = None,
    config: Optional[FinanceConfig] = None,
) -> FinancialReport:
    """
    Build the financial report for a period selection.

    Args:
        dataset: Records loaded from the data store (may carry a load error).
        selection: Period kind and optional custom bounds.
        now: Reference instant (defaults to current UTC time).
        month: Optional 'YYYY-MM' drill-down applied on top of the window.
        config: Engine configuration.

    Returns:
        FinancialReport. An inverted custom range yields an all-zero
        current/previous period with ``date_error`` set.
    """
    config = config or FinanceConfig()
    now = now or now_utc()
    logger.info(
        "Running financial analysis: period=%s start=%s end=%s month=%s",
        selection.kind.value, selection.start, selection.end, month,
    )

    resolved = selection.resolve(now, tz=config.tz)
    if resolved.invalid_range:
        logger.warning("Invalid custom range %s > %s", selection.start, selection.end)

    current, previous = _select(dataset.closures, resolved, month, config)
    orders_by_id = index_orders(dataset.orders)

    kpis = compute_kpis(current)
    previous_kpis = compute_kpis(previous)
    trend = build_trend(dataset.closures, now, tz=config.tz)
    services = revenue_by_service(current, orders_by_id)
    clients = top_clients(current, orders_by_id)

    insights = compute_insights(
        InsightInput(
            current=kpis,
            previous=previous_kpis,
            top_clients=clients,
            revenue_by_service=services,
            trend=trend,
        ),
        limit=config.insight_limit,
    )

    report = FinancialReport(
        generated_at=now,
        period=selection.kind,
        window_start=resolved.current.start if resolved.current else None,
        window_end=resolved.current.end if resolved.current else None,
        month_filter=month,
        date_error=resolved.invalid_range,
        load_error=dataset.load_error,
        kpis=kpis,
        previous_kpis=previous_kpis,
        deltas=compute_kpi_deltas(kpis, previous_kpis),
        trend=trend,
        margin_trend=margin_trend(trend),
        cost_breakdown=compute_cost_breakdown(current),
        revenue_by_service=services,
        top_clients=clients,
        insights=insights,
    )
    logger.info(
        "Analysis complete: %d closures in period, revenue=%.2f, %d insight(s)",
        kpis.project_count, kpis.revenue, len(insights),
    )
    return report
