"""
Conversion Funnel Analyzer
===========================

Quote outcomes sliced by service type, price band, locality, follow-up
presence and payment method, plus the average days from service order to
approved quote.

Only quotes that left draft (sent / approved / rejected) are counted.
Quotes whose service order is missing stay in every total under the
fallback labels.
"""
from __future__ import annotations

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple

from models.financeiro_models import (
    ConversionData,
    FollowupStats,
    LocalityConversion,
    OutcomeCount,
    PaymentMethod,
    PaymentMethodStats,
    PriceBandConversion,
    Quote,
    QuoteStatus,
    ServiceOrder,
    ServiceTypeConversion,
)
from scripts.financeiro.joins import (
    has_followup,
    index_orders,
    locality_label,
    lookup_order,
    service_label,
)
from scripts.lib.logger import setup_logger
from scripts.lib.utils import safe_div

logger = setup_logger(__name__)

RELEVANT_STATUSES = frozenset({QuoteStatus.SENT, QuoteStatus.APPROVED, QuoteStatus.REJECTED})

# (label, inclusive lower bound, exclusive upper bound)
PRICE_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("Up to R$2.000", 0, 2000),
    ("R$2.000 – R$5.000", 2000, 5000),
    ("R$5.000 – R$10.000", 5000, 10000),
    ("Above R$10.000", 10000, math.inf),
)

MIN_LOCALITY_QUOTES = 2
TOP_LOCALITIES = 10
SECONDS_PER_DAY = 86400.0


def conversion_rate(approved: int, total: int) -> float:
    return safe_div(approved, total) * 100


def relevant_quotes(quotes: Iterable[Quote]) -> List[Quote]:
    return [q for q in quotes if q.status in RELEVANT_STATUSES]


def _is_approved(quote: Quote) -> bool:
    return quote.status is QuoteStatus.APPROVED


def _by_service_type(quotes: Sequence[Quote], orders_by_id: Dict[str, ServiceOrder]) -> List[ServiceTypeConversion]:
    stats: Dict[str, Dict[str, float]] = defaultdict(
        lambda: {"total": 0, "approved": 0, "rejected": 0, "value_sum": 0.0}
    )
    for quote in quotes:
        entry = stats[service_label(lookup_order(orders_by_id, quote.order_id))]
        entry["total"] += 1
        entry["value_sum"] += quote.total_value
        if _is_approved(quote):
            entry["approved"] += 1
        elif quote.status is QuoteStatus.REJECTED:
            entry["rejected"] += 1

    rows = [
        ServiceTypeConversion(
            service_type=name,
            total=v["total"],
            approved=v["approved"],
            rejected=v["rejected"],
            conversion_rate=conversion_rate(v["approved"], v["total"]),
            average_value=safe_div(v["value_sum"], v["total"]),
        )
        for name, v in stats.items()
    ]
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows


def _by_price_band(quotes: Sequence[Quote]) -> List[PriceBandConversion]:
    rows = []
    for label, low, high in PRICE_BANDS:
        in_band = [q for q in quotes if low <= q.total_value < high]
        if not in_band:
            continue
        approved = sum(1 for q in in_band if _is_approved(q))
        rows.append(PriceBandConversion(
            band=label,
            total=len(in_band),
            approved=approved,
            conversion_rate=conversion_rate(approved, len(in_band)),
        ))
    return rows


def _by_locality(quotes: Sequence[Quote], orders_by_id: Dict[str, ServiceOrder]) -> List[LocalityConversion]:
    stats: Dict[str, OutcomeCount] = defaultdict(OutcomeCount)
    for quote in quotes:
        entry = stats[locality_label(lookup_order(orders_by_id, quote.order_id))]
        entry.total += 1
        if _is_approved(quote):
            entry.approved += 1

    rows = [
        LocalityConversion(
            locality=name,
            total=c.total,
            approved=c.approved,
            conversion_rate=conversion_rate(c.approved, c.total),
        )
        for name, c in stats.items()
        if c.total >= MIN_LOCALITY_QUOTES
    ]
    rows.sort(key=lambda r: r.total, reverse=True)
    return rows[:TOP_LOCALITIES]


def _followup_stats(quotes: Sequence[Quote], orders_by_id: Dict[str, ServiceOrder]) -> FollowupStats:
    stats = FollowupStats()
    for quote in quotes:
        if has_followup(lookup_order(orders_by_id, quote.order_id)):
            bucket = stats.with_followup
        else:
            bucket = stats.without_followup
        bucket.total += 1
        if _is_approved(quote):
            bucket.approved += 1
    return stats


def _payment_stats(quotes: Sequence[Quote]) -> PaymentMethodStats:
    stats = PaymentMethodStats()
    for quote in quotes:
        bucket = stats.installment if quote.payment_method is PaymentMethod.INSTALLMENT else stats.cash
        bucket.total += 1
        if _is_approved(quote):
            bucket.approved += 1
    return stats


def _avg_days_to_approval(quotes: Sequence[Quote], orders_by_id: Dict[str, ServiceOrder]) -> float:
    """Mean days from order creation to approved quote creation.

    Quotes created before their order (clock or import glitches) are skipped.
    """
    durations = []
    for quote in quotes:
        if not _is_approved(quote):
            continue
        order = lookup_order(orders_by_id, quote.order_id)
        if order is None or order.created_at is None:
            continue
        days = (quote.created_at - order.created_at).total_seconds() / SECONDS_PER_DAY
        if days >= 0:
            durations.append(days)
    return safe_div(sum(durations), len(durations))


def compute_conversion_data(quotes: Iterable[Quote], orders: Iterable[ServiceOrder]) -> ConversionData:
    """Build the full conversion funnel from every quote and service order."""
    orders_by_id = index_orders(orders)
    relevant = relevant_quotes(quotes)
    approved = sum(1 for q in relevant if _is_approved(q))

    data = ConversionData(
        by_service_type=_by_service_type(relevant, orders_by_id),
        by_price_band=_by_price_band(relevant),
        by_locality=_by_locality(relevant, orders_by_id),
        followup=_followup_stats(relevant, orders_by_id),
        by_payment_method=_payment_stats(relevant),
        avg_days_to_approval=_avg_days_to_approval(relevant, orders_by_id),
        total_quotes=len(relevant),
        overall_conversion_rate=conversion_rate(approved, len(relevant)),
    )
    logger.debug(
        "Conversion funnel: %d relevant quotes, %.1f%% approved",
        data.total_quotes, data.overall_conversion_rate,
    )
    return data
