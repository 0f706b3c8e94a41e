"""
Bulk reads of closures, service orders and quotes from Supabase.

The three tables are independent, so they are read concurrently. A failed
read is reported once through ``FinanceDataset.load_error`` and the engine
carries on with whatever was loaded.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.financeiro_models import FinancialClosure, Quote, ServiceOrder
from scripts.lib.errors import DataFetchError, SchemaValidationError
from scripts.lib.logger import setup_logger
from scripts.lib.supabase_client import fetch_all

logger = setup_logger(__name__)

CLOSURES_TABLE = "fechamentos"
ORDERS_TABLE = "atendimentos"
QUOTES_TABLE = "orcamentos"

M = TypeVar("M", bound=BaseModel)
FetchFn = Callable[..., List[Dict]]


@dataclass
class FinanceDataset:
    closures: List[FinancialClosure] = field(default_factory=list)
    orders: List[ServiceOrder] = field(default_factory=list)
    quotes: List[Quote] = field(default_factory=list)
    load_error: Optional[str] = None


def parse_rows(rows: List[Dict], model: Type[M], table: str) -> List[M]:
    """Validate rows into records, skipping (and logging) malformed ones."""
    records = []
    for row in rows:
        try:
            records.append(model.model_validate(row))
        except ValidationError as e:
            error = SchemaValidationError(
                f"{e.error_count()} validation error(s)", table=table, row_id=str(row.get("id")),
            )
            logger.warning("Skipping row: %s", error)
    return records


async def _read(fetch: FetchFn, table: str) -> List[Dict]:
    return await asyncio.to_thread(fetch, table, order_by="created_at")


async def load_dataset(fetch: FetchFn = fetch_all) -> FinanceDataset:
    """Read all three tables concurrently and parse them into records."""
    tables = (CLOSURES_TABLE, ORDERS_TABLE, QUOTES_TABLE)
    results = await asyncio.gather(
        *(_read(fetch, table) for table in tables), return_exceptions=True,
    )

    rows: Dict[str, List[Dict]] = {}
    failures = []
    for table, result in zip(tables, results):
        if isinstance(result, DataFetchError):
            failures.append(table)
            rows[table] = []
        elif isinstance(result, BaseException):
            logger.error("Unexpected failure reading %s: %s", table, result)
            failures.append(table)
            rows[table] = []
        else:
            rows[table] = result

    dataset = FinanceDataset(
        closures=parse_rows(rows[CLOSURES_TABLE], FinancialClosure, CLOSURES_TABLE),
        orders=parse_rows(rows[ORDERS_TABLE], ServiceOrder, ORDERS_TABLE),
        quotes=parse_rows(rows[QUOTES_TABLE], Quote, QUOTES_TABLE),
        load_error=f"Failed to load: {', '.join(failures)}" if failures else None,
    )
    logger.info(
        "Loaded %d closures, %d orders, %d quotes%s",
        len(dataset.closures), len(dataset.orders), len(dataset.quotes),
        f" ({dataset.load_error})" if dataset.load_error else "",
    )
    return dataset
