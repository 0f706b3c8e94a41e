"""
Aggregation Engine
===================

Filters closures by period window (and optional drill-down month) and
reduces them to KPI figures and the per-service / per-client breakdowns
shown next to the KPI cards.

Every function is pure: inputs are never mutated and an empty input
yields zeros.
"""
from __future__ import annotations

from collections import defaultdict
from datetime import tzinfo
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from models.financeiro_models import (
    ClientRevenue,
    CostBreakdown,
    FinancialClosure,
    KPISnapshot,
    ServiceOrder,
    ServiceRevenue,
)
from scripts.financeiro.config import DEFAULT_TZ
from scripts.financeiro.joins import client_label, lookup_order, service_label
from scripts.financeiro.periods import DateWindow, year_month_key
from scripts.lib.logger import setup_logger
from scripts.lib.utils import safe_div

logger = setup_logger(__name__)

TOP_SERVICES = 6
TOP_CLIENTS = 5


def filter_closures(
    closures: Iterable[FinancialClosure],
    window: Optional[DateWindow],
    month: Optional[str] = None,
    tz: tzinfo = DEFAULT_TZ,
) -> List[FinancialClosure]:
    """
    Closures created inside ``window`` (inclusive) and, when ``month`` is
    given, whose creation falls in that 'YYYY-MM' of the civil timezone.

    A None window means no date restriction.
    """
    selected = []
    for closure in closures:
        if window is not None and not window.contains(closure.created_at):
            continue
        if month and year_month_key(closure.created_at, tz) != month:
            continue
        selected.append(closure)
    logger.debug("Filtered closures: %d selected (month=%s)", len(selected), month)
    return selected


def compute_kpis(closures: Sequence[FinancialClosure]) -> KPISnapshot:
    """Revenue, costs, stored profit, margin %, average ticket and count."""
    revenue = sum(c.amount_received for c in closures)
    costs = sum(c.total_costs for c in closures)
    profit = sum(c.final_profit for c in closures)
    count = len(closures)

    return KPISnapshot(
        revenue=revenue,
        costs=costs,
        profit=profit,
        margin=profit / revenue * 100 if revenue > 0 else 0.0,
        average_ticket=safe_div(revenue, count),
        project_count=count,
    )


def compute_cost_breakdown(closures: Sequence[FinancialClosure]) -> CostBreakdown:
    return CostBreakdown(
        distributor=sum(c.cost_distributor for c in closures),
        installer=sum(c.cost_installer for c in closures),
        extras=sum(c.cost_extras for c in closures),
    )


def revenue_by_service(
    closures: Sequence[FinancialClosure],
    orders_by_id: Mapping[str, ServiceOrder],
    limit: int = TOP_SERVICES,
) -> List[ServiceRevenue]:
    """Revenue and profit per service type, highest revenue first."""
    totals: Dict[str, Dict[str, float]] = defaultdict(lambda: {"revenue": 0.0, "profit": 0.0})
    for closure in closures:
        entry = totals[service_label(lookup_order(orders_by_id, closure.order_id))]
        entry["revenue"] += closure.amount_received
        entry["profit"] += closure.final_profit

    ranked = sorted(totals.items(), key=lambda kv: kv[1]["revenue"], reverse=True)
    return [ServiceRevenue(service=name, **values) for name, values in ranked[:limit]]


def top_clients(
    closures: Sequence[FinancialClosure],
    orders_by_id: Mapping[str, ServiceOrder],
    limit: int = TOP_CLIENTS,
) -> List[ClientRevenue]:
    """Clients ranked by revenue in the filtered set."""
    totals: Dict[str, Dict[str, float]] = defaultdict(
        lambda: {"revenue": 0.0, "profit": 0.0, "projects": 0}
    )
    for closure in closures:
        entry = totals[client_label(lookup_order(orders_by_id, closure.order_id))]
        entry["revenue"] += closure.amount_received
        entry["profit"] += closure.final_profit
        entry["projects"] += 1

    ranked = sorted(totals.items(), key=lambda kv: kv[1]["revenue"], reverse=True)
    return [ClientRevenue(name=name, **values) for name, values in ranked[:limit]]
