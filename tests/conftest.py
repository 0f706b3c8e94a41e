"""Shared record factories for the financeiro tests."""

from datetime import datetime, timezone

import pytest

from models.financeiro_models import FinancialClosure, Quote, ServiceOrder

# Monday 2024-01-15, 12:00 in Brasília (UTC-3)
NOW = datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc)


def make_closure(id="c1", order_id="o1", created_at="2024-01-10T15:00:00Z", received=1000.0,
                 distributor=200.0, installer=300.0, extras=50.0, profit=None, **kwargs):
    if profit is None:
        profit = received - distributor - installer - extras
    return FinancialClosure(
        id=id,
        order_id=order_id,
        created_at=created_at,
        amount_received=received,
        cost_distributor=distributor,
        cost_installer=installer,
        cost_extras=extras,
        final_profit=profit,
        **kwargs,
    )


def make_order(id="o1", client_name="Maria Silva", service_type="Drywall", neighborhood=None,
               city=None, followup_count=0, created_at="2024-01-01T12:00:00Z", **kwargs):
    return ServiceOrder(
        id=id,
        client_name=client_name,
        service_type=service_type,
        neighborhood=neighborhood,
        city=city,
        followup_count=followup_count,
        created_at=created_at,
        **kwargs,
    )


def make_quote(id="q1", order_id="o1", status="approved", value=1000.0, payment="cash",
               created_at="2024-01-05T12:00:00Z"):
    return Quote(
        id=id,
        order_id=order_id,
        status=status,
        total_value=value,
        payment_method=payment,
        created_at=created_at,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def sample_closures():
    return [
        make_closure("c1", "o1", received=1000, distributor=200, installer=300, extras=50, profit=450),
        make_closure("c2", "o2", received=2000, distributor=400, installer=600, extras=100, profit=900),
    ]


@pytest.fixture
def sample_orders():
    return [
        make_order("o1", client_name="Maria Silva", service_type="Drywall"),
        make_order("o2", client_name="João Souza", service_type="Gesso"),
    ]


@pytest.fixture
def funnel_quotes():
    return [
        make_quote("q1", "oA", status="approved", value=1000),
        make_quote("q2", "oB", status="approved", value=3000),
        make_quote("q3", "oA", status="rejected", value=500),
        make_quote("q4", "oA", status="draft", value=999),
    ]


@pytest.fixture
def funnel_orders():
    return [
        make_order("oA", service_type="A"),
        make_order("oB", service_type="B"),
    ]
