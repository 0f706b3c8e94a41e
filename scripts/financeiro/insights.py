"""
Insight Rule Engine
====================

Six threshold rules over the current/previous KPIs, rankings and the
12-month trend. Rules run in a fixed order and each emits at most one
insight; the output keeps that order (not severity order) and is cut to
the first ``limit`` insights that fired.

Rules:
    1. margin_trend: margin moved more than 5 points (both periods > 0)
    2. negative_profit: period closed at a loss
    3. best_month: highest-revenue month (needs 2+ months with revenue)
    4. client_concentration: top client above 40% of revenue
    5. top_service: most profitable service (needs 2+ services)
    6. revenue_momentum: last 3 months vs the 3 before, ±15%
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from models.financeiro_models import (
    ClientRevenue,
    Insight,
    InsightKind,
    KPISnapshot,
    ServiceRevenue,
    TrendMonth,
)
from scripts.financeiro.formatting import format_brl, to_fixed
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_LIMIT = 5

MARGIN_SWING_POINTS = 5.0
CONCENTRATION_SHARE = 40.0
MOMENTUM_THRESHOLD = 15.0
MOMENTUM_WINDOW = 3


@dataclass
class InsightInput:
    current: KPISnapshot
    previous: KPISnapshot
    top_clients: Sequence[ClientRevenue] = field(default_factory=list)
    revenue_by_service: Sequence[ServiceRevenue] = field(default_factory=list)
    trend: Sequence[TrendMonth] = field(default_factory=list)


def margin_trend_rule(data: InsightInput) -> Optional[Insight]:
    current, previous = data.current.margin, data.previous.margin
    if not (current > 0 and previous > 0):
        return None
    diff = current - previous
    if diff > MARGIN_SWING_POINTS:
        return Insight(
            id="margin-up",
            kind=InsightKind.SUCCESS,
            title="Margin on the rise",
            description=f"Margin up {to_fixed(diff, 1)} pp vs previous period ({to_fixed(current, 1)}%)",
        )
    if diff < -MARGIN_SWING_POINTS:
        return Insight(
            id="margin-down",
            kind=InsightKind.WARNING,
            title="Margin falling",
            description=f"Margin down {to_fixed(abs(diff), 1)} pp vs previous period ({to_fixed(current, 1)}%)",
            action="Check recent material and labor costs against quoted prices.",
        )
    return None


def negative_profit_rule(data: InsightInput) -> Optional[Insight]:
    if data.current.profit >= 0:
        return None
    return Insight(
        id="negative-profit",
        kind=InsightKind.DANGER,
        title="Negative profit in the period",
        description=f"Costs exceeded revenue by {format_brl(abs(data.current.profit))}.",
        action="Review your costs.",
    )


def best_month_rule(data: InsightInput) -> Optional[Insight]:
    with_revenue = [m for m in data.trend if m.revenue > 0]
    if len(with_revenue) < 2:
        return None
    # max() keeps the earliest month on ties
    best = max(with_revenue, key=lambda m: m.revenue)
    return Insight(
        id="best-month",
        kind=InsightKind.INFO,
        title=f"Best month: {best.label}",
        description=f"Highest revenue of the period with {format_brl(best.revenue)}",
    )


def client_concentration_rule(data: InsightInput) -> Optional[Insight]:
    if not data.top_clients or data.current.revenue <= 0:
        return None
    top = data.top_clients[0]
    share = top.revenue / data.current.revenue * 100
    if share <= CONCENTRATION_SHARE:
        return None
    return Insight(
        id="client-concentration",
        kind=InsightKind.WARNING,
        title="Revenue concentration",
        description=f"{top.name} accounts for {to_fixed(share)}% of revenue.",
        action="Diversify your client base.",
    )


def top_service_rule(data: InsightInput) -> Optional[Insight]:
    if len(data.revenue_by_service) < 2:
        return None
    best = max(data.revenue_by_service, key=lambda s: s.profit)
    if best.profit <= 0:
        return None
    return Insight(
        id="top-service",
        kind=InsightKind.SUCCESS,
        title=f"Most profitable service: {best.service}",
        description=f"{format_brl(best.profit)} profit in the period",
    )


def revenue_momentum_rule(data: InsightInput) -> Optional[Insight]:
    if len(data.trend) < 2 * MOMENTUM_WINDOW:
        return None
    recent = sum(m.revenue for m in data.trend[-MOMENTUM_WINDOW:])
    prior = sum(m.revenue for m in data.trend[-2 * MOMENTUM_WINDOW:-MOMENTUM_WINDOW])
    if prior <= 0:
        return None
    growth = (recent - prior) / prior * 100
    if growth > MOMENTUM_THRESHOLD:
        return Insight(
            id="revenue-growth",
            kind=InsightKind.SUCCESS,
            title="Growth trend",
            description=f"Revenue grew {to_fixed(growth)}% in the last 3 months vs the previous quarter",
        )
    if growth < -MOMENTUM_THRESHOLD:
        return Insight(
            id="revenue-decline",
            kind=InsightKind.DANGER,
            title="Downward trend",
            description=f"Revenue fell {to_fixed(abs(growth))}% in the last 3 months vs the previous quarter",
            action="Follow up on open quotes and recent visits.",
        )
    return None


RULES: Sequence[Callable[[InsightInput], Optional[Insight]]] = (
    margin_trend_rule,
    negative_profit_rule,
    best_month_rule,
    client_concentration_rule,
    top_service_rule,
    revenue_momentum_rule,
)


def compute_insights(data: InsightInput, limit: int = DEFAULT_LIMIT) -> List[Insight]:
    """Evaluate every rule in order and keep the first ``limit`` that fired."""
    fired = []
    for rule in RULES:
        insight = rule(data)
        if insight is not None:
            fired.append(insight)
    if len(fired) > limit:
        logger.debug("Dropping %d insight(s) past the limit of %d", len(fired) - limit, limit)
    return fired[:limit]
