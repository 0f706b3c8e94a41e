"""
Period-over-period deltas for KPI cards: ↑12% / ↓5% / ↑∞.
"""
from typing import Optional

from models.financeiro_models import Delta, KPIDeltas, KPISnapshot
from scripts.financeiro.formatting import to_fixed

UP = "↑"
DOWN = "↓"
INFINITY = "∞"


def compute_delta(current: float, previous: float) -> Optional[Delta]:
    """
    Compare a KPI against its previous-period value.

    Returns None when both are zero. A zero baseline with a non-zero
    current value gives the ∞ sentinel signed by ``current``. Otherwise the
    change is measured against ``abs(previous)`` so negative baselines
    (e.g. a loss-making month) still produce a meaningful direction.
    """
    if previous == 0 and current == 0:
        return None
    if previous == 0:
        positive = current > 0
        return Delta(
            label=f"{UP if positive else DOWN}{INFINITY}",
            positive=positive,
            infinite=True,
        )

    percent = (current - previous) / abs(previous) * 100
    positive = percent >= 0
    return Delta(
        label=f"{UP if positive else DOWN}{to_fixed(abs(percent))}%",
        positive=positive,
        percent=percent,
    )


def compute_kpi_deltas(current: KPISnapshot, previous: KPISnapshot) -> KPIDeltas:
    return KPIDeltas(
        revenue=compute_delta(current.revenue, previous.revenue),
        costs=compute_delta(current.costs, previous.costs),
        profit=compute_delta(current.profit, previous.profit),
        margin=compute_delta(current.margin, previous.margin),
        average_ticket=compute_delta(current.average_ticket, previous.average_ticket),
        project_count=compute_delta(current.project_count, previous.project_count),
    )
