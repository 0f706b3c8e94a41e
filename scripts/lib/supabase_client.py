"""
Supabase Client Helper for the Financeiro engine.
Provides the connection and full-table reads used to feed the analytics.

Usage:
    from scripts.lib.supabase_client import get_client, fetch_all

    rows = fetch_all("fechamentos", order_by="created_at")
"""
import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv

from scripts.lib.errors import ConfigError, DataFetchError
from scripts.lib.logger import setup_logger

logger = setup_logger(__name__)

# Load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")

PAGE_SIZE = 1000

_client = None


def get_client():
    """Create and return a Supabase client (singleton)."""
    global _client
    if _client is not None:
        return _client

    url = os.environ.get("SUPABASE_URL", "")
    key = (
        os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
        or os.environ.get("SUPABASE_KEY", "")
    )
    if not url or not key:
        raise ConfigError(
            "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in .env",
            setting="SUPABASE_URL",
        )

    from supabase import create_client
    _client = create_client(url, key)
    logger.info("Supabase client connected to %s", url)
    return _client


def fetch_all(
    table: str,
    select: str = "*",
    order_by: str = None,
    desc: bool = True,
    client=None,
) -> List[Dict]:
    """
    Read every row of a table, paging through PostgREST's row limit.

    Args:
        table: Table name.
        select: Columns to select (default "*").
        order_by: Column to order by.
        desc: Descending order (default True).
        client: Client override (defaults to the shared singleton).

    Returns:
        List of row dicts.

    Raises:
        DataFetchError: Connection, configuration or query failure.
    """
    try:
        client = client or get_client()
        rows: List[Dict] = []
        offset = 0
        while True:
            query = client.table(table).select(select)
            if order_by:
                query = query.order(order_by, desc=desc)
            result = query.range(offset, offset + PAGE_SIZE - 1).execute()
            page = result.data or []
            rows.extend(page)
            if len(page) < PAGE_SIZE:
                break
            offset += PAGE_SIZE
    except Exception as e:
        logger.error("Supabase read failed on %s: %s", table, e)
        raise DataFetchError(f"Failed to read {table}: {e}", source=table) from e

    logger.debug("Fetched %d rows from %s", len(rows), table)
    return rows
