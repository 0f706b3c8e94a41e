"""
Financeiro — Financial Analytics Router
=========================================
KPIs, trends, insights and the quote conversion funnel for the financial
dashboard. Records are read in full from Supabase per request and
analysed in-process.

Endpoints:
  GET /api/financeiro/report      - KPIs, deltas, trend, rankings, insights
  GET /api/financeiro/conversion  - Quote conversion funnel
  GET /api/financeiro/ai-insights - AI insights over the funnel (cached)
  GET /api/financeiro/export.csv  - Filtered closures as CSV

Common query parameters:
  period  day | week | month | year | custom (legacy pt-BR labels accepted)
  start   custom start, YYYY-MM-DD
  end     custom end, YYYY-MM-DD
  month   drill-down month, YYYY-MM
"""
from __future__ import annotations

from datetime import datetime
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from scripts.financeiro.ai_insights import AIInsightFetcher
from scripts.financeiro.analyzer import filtered_closures, run_financial_analysis
from scripts.financeiro.config import FinanceConfig, load_config
from scripts.financeiro.conversion import compute_conversion_data
from scripts.financeiro.data_loader import FinanceDataset, load_dataset
from scripts.financeiro.export import closures_to_csv, export_filename
from scripts.financeiro.joins import index_orders
from scripts.financeiro.periods import MONTH_PATTERN, PeriodSelection
from scripts.lib.kv_store import JsonFileStore, KeyValueStore
from scripts.lib.logger import setup_logger
from scripts.lib.utils import now_utc

logger = setup_logger("financeiro_router")

router = APIRouter(prefix="/api/financeiro", tags=["financeiro"])


# ─── Dependencies ───────────────────────────────────────────

@lru_cache
def get_config() -> FinanceConfig:
    return load_config()


def get_now() -> datetime:
    return now_utc()


async def get_dataset() -> FinanceDataset:
    return await load_dataset()


def get_store(config: FinanceConfig = Depends(get_config)) -> KeyValueStore:
    return JsonFileStore(config.state_path)


def get_fetcher(
    store: KeyValueStore = Depends(get_store),
    config: FinanceConfig = Depends(get_config),
) -> AIInsightFetcher:
    return AIInsightFetcher(store, config=config)


def get_selection(
    period: str = Query("month", description="day | week | month | year | custom"),
    start: str = Query(None, description="Custom start (YYYY-MM-DD)"),
    end: str = Query(None, description="Custom end (YYYY-MM-DD)"),
) -> PeriodSelection:
    try:
        return PeriodSelection.from_params(period, start, end)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid period parameters: {e}")


# ─── Endpoints ──────────────────────────────────────────────

@router.get("/report")
async def financial_report(
    month: str = Query(None, pattern=MONTH_PATTERN, description="Drill-down month (YYYY-MM)"),
    selection: PeriodSelection = Depends(get_selection),
    dataset: FinanceDataset = Depends(get_dataset),
    config: FinanceConfig = Depends(get_config),
    now: datetime = Depends(get_now),
):
    """KPIs, deltas, 12-month trend, breakdowns and rule-based insights."""
    try:
        report = run_financial_analysis(dataset, selection, now=now, month=month, config=config)
        return report.model_dump(mode="json")
    except Exception as e:
        logger.error("Financial report failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to build financial report")


@router.get("/conversion")
async def conversion_funnel(dataset: FinanceDataset = Depends(get_dataset)):
    """Quote conversion by service, price band, locality, follow-up and payment."""
    try:
        data = compute_conversion_data(dataset.quotes, dataset.orders)
        return {**data.model_dump(mode="json"), "load_error": dataset.load_error}
    except Exception as e:
        logger.error("Conversion funnel failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to build conversion funnel")


@router.get("/ai-insights")
async def ai_insights(
    dataset: FinanceDataset = Depends(get_dataset),
    fetcher: AIInsightFetcher = Depends(get_fetcher),
):
    """Supplementary AI insights; empty when skipped, rate-limited or failed."""
    data = compute_conversion_data(dataset.quotes, dataset.orders)
    insights = await fetcher.fetch(data)
    return {
        "insights": [i.model_dump(mode="json") for i in insights],
        "count": len(insights),
        "load_error": dataset.load_error,
    }


@router.get("/export.csv")
async def export_csv(
    month: str = Query(None, pattern=MONTH_PATTERN, description="Drill-down month (YYYY-MM)"),
    selection: PeriodSelection = Depends(get_selection),
    dataset: FinanceDataset = Depends(get_dataset),
    config: FinanceConfig = Depends(get_config),
    now: datetime = Depends(get_now),
):
    """Closures of the selected period as CSV."""
    rows = filtered_closures(dataset, selection, now=now, month=month, config=config)
    content = closures_to_csv(rows, index_orders(dataset.orders), tz=config.tz)
    headers = {"Content-Disposition": f'attachment; filename="{export_filename(now, config.tz)}"'}
    if dataset.load_error:
        headers["X-Load-Error"] = dataset.load_error
    return Response(content=content, media_type="text/csv; charset=utf-8", headers=headers)
