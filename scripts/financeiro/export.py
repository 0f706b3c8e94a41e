"""
CSV export of the currently filtered closures.

Rows are written with the csv module, so client or service names containing
commas, quotes or line breaks are quoted and escaped rather than splitting
the row.
"""
import csv
import io
from datetime import datetime, tzinfo
from typing import Iterable, Mapping

from models.financeiro_models import FinancialClosure, ServiceOrder
from scripts.financeiro.config import DEFAULT_TZ
from scripts.financeiro.formatting import format_date_br
from scripts.financeiro.joins import lookup_order

CSV_HEADER = ("Client", "Service", "Date", "Received", "Distributor", "Installer", "Extras", "Profit")
MISSING = "N/A"


def _amount(value: float) -> str:
    # 1500.0 -> "1500", 12.5 -> "12.5"
    return str(int(value)) if float(value).is_integer() else str(value)


def closures_to_csv(
    closures: Iterable[FinancialClosure],
    orders_by_id: Mapping[str, ServiceOrder],
    tz: tzinfo = DEFAULT_TZ,
) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for closure in closures:
        order = lookup_order(orders_by_id, closure.order_id)
        writer.writerow((
            (order.client_name if order else None) or MISSING,
            (order.service_type if order else None) or MISSING,
            format_date_br(closure.created_at, tz),
            _amount(closure.amount_received),
            _amount(closure.cost_distributor),
            _amount(closure.cost_installer),
            _amount(closure.cost_extras),
            _amount(closure.final_profit),
        ))
    return buffer.getvalue()


def export_filename(now: datetime, tz: tzinfo = DEFAULT_TZ) -> str:
    return f"financeiro-{now.astimezone(tz).strftime('%Y-%m-%d')}.csv"
