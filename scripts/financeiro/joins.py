"""
Record joins between closures/quotes and their owning service order.

A lookup either finds the order or returns None; the label helpers are the
only places that decide what an absent order (or an empty field) becomes.
"""
from typing import Dict, Iterable, Mapping, Optional

from models.financeiro_models import ServiceOrder

OTHER_SERVICE = "Other"
UNKNOWN_CLIENT = "Unknown"
UNKNOWN_LOCALITY = "Unknown"


def index_orders(orders: Iterable[ServiceOrder]) -> Dict[str, ServiceOrder]:
    """Map order id -> order. Later duplicates win."""
    return {order.id: order for order in orders}


def lookup_order(orders_by_id: Mapping[str, ServiceOrder], order_id: str) -> Optional[ServiceOrder]:
    return orders_by_id.get(order_id)


def service_label(order: Optional[ServiceOrder]) -> str:
    if order is None or not order.service_type:
        return OTHER_SERVICE
    return order.service_type


def client_label(order: Optional[ServiceOrder]) -> str:
    if order is None or not order.client_name:
        return UNKNOWN_CLIENT
    return order.client_name


def locality_label(order: Optional[ServiceOrder]) -> str:
    """Neighborhood, then city, then a fixed fallback."""
    if order is None:
        return UNKNOWN_LOCALITY
    return order.neighborhood or order.city or UNKNOWN_LOCALITY


def has_followup(order: Optional[ServiceOrder]) -> bool:
    return order is not None and order.followup_count > 0
