"""
Trend Series Generator
=======================

Twelve calendar months ending with the month that contains ``now``,
oldest first, bucketed by the civil-timezone 'YYYY-MM' of each closure.
Empty months are zero-filled so the chart always gets 12 points.
"""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable, List, Tuple

from models.financeiro_models import FinancialClosure, MarginPoint, TrendMonth
from scripts.financeiro.config import DEFAULT_TZ
from scripts.financeiro.formatting import month_label
from scripts.financeiro.periods import local_date, year_month_key

TREND_MONTHS = 12


def trailing_months(now: datetime, count: int = TREND_MONTHS,
                    tz: tzinfo = DEFAULT_TZ) -> List[Tuple[int, int]]:
    """(year, month) pairs for the ``count`` months ending at ``now``, oldest first."""
    today = local_date(now, tz)
    index = today.year * 12 + (today.month - 1)
    months = []
    for offset in range(count - 1, -1, -1):
        year, month0 = divmod(index - offset, 12)
        months.append((year, month0 + 1))
    return months


def build_trend(
    closures: Iterable[FinancialClosure],
    now: datetime,
    tz: tzinfo = DEFAULT_TZ,
) -> List[TrendMonth]:
    """Monthly revenue / costs / profit / margin over the trailing 12 months."""
    buckets = {
        f"{year:04d}-{month:02d}": {"label": month_label(month), "revenue": 0.0, "costs": 0.0, "profit": 0.0}
        for year, month in trailing_months(now, tz=tz)
    }

    for closure in closures:
        bucket = buckets.get(year_month_key(closure.created_at, tz))
        if bucket is None:
            continue
        bucket["revenue"] += closure.amount_received
        bucket["costs"] += closure.total_costs
        bucket["profit"] += closure.final_profit

    series = []
    for key, b in buckets.items():
        margin = b["profit"] / b["revenue"] * 100 if b["revenue"] > 0 else 0.0
        series.append(TrendMonth(
            label=b["label"],
            year_month=key,
            revenue=b["revenue"],
            costs=b["costs"],
            profit=b["profit"],
            margin=margin,
        ))
    return series


def margin_trend(trend: Iterable[TrendMonth]) -> List[MarginPoint]:
    return [MarginPoint(label=m.label, margin=m.margin) for m in trend]
