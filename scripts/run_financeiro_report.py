"""
Financeiro Report Runner
=========================
Loads closures, service orders and quotes from Supabase, runs the
financial analytics and writes data/processed/financeiro_report.json.

Usage:
    python scripts/run_financeiro_report.py --period month
    python scripts/run_financeiro_report.py --period custom --start 2024-01-01 --end 2024-03-31
    python scripts/run_financeiro_report.py --month 2024-02 --csv out.csv --with-ai
"""
from __future__ import annotations

import argparse
import asyncio
import re
import sys
from datetime import date
from pathlib import Path

from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup
# ---------------------------------------------------------------------------
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

from models.financeiro_models import PeriodKind
from scripts.financeiro.ai_insights import AIInsightFetcher
from scripts.financeiro.analyzer import filtered_closures, run_financial_analysis
from scripts.financeiro.config import load_config
from scripts.financeiro.conversion import compute_conversion_data
from scripts.financeiro.data_loader import load_dataset
from scripts.financeiro.export import closures_to_csv
from scripts.financeiro.joins import index_orders
from scripts.financeiro.periods import MONTH_PATTERN, PeriodSelection, parse_date
from scripts.lib.kv_store import JsonFileStore
from scripts.lib.logger import setup_logger
from scripts.lib.utils import atomic_write_json, now_utc

logger = setup_logger("run_financeiro_report")

PROCESSED_DIR = PROJECT_ROOT / "data" / "processed"


def _date_arg(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def _month_arg(value: str) -> str:
    if not re.match(MONTH_PATTERN, value):
        raise argparse.ArgumentTypeError(f"invalid month '{value}', expected YYYY-MM")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Financeiro analytics report")
    parser.add_argument(
        "--period", default=PeriodKind.MONTH.value,
        choices=[k.value for k in PeriodKind],
        help="Period kind (default: month)",
    )
    parser.add_argument("--start", type=_date_arg, help="Custom period start (YYYY-MM-DD)")
    parser.add_argument("--end", type=_date_arg, help="Custom period end (YYYY-MM-DD)")
    parser.add_argument("--month", type=_month_arg, help="Drill-down month (YYYY-MM)")
    parser.add_argument("--csv", type=Path, help="Also export the filtered closures to this CSV path")
    parser.add_argument("--with-ai", action="store_true", help="Fetch AI insights over the conversion funnel")
    parser.add_argument(
        "--output", type=Path, default=PROCESSED_DIR / "financeiro_report.json",
        help="Report JSON path",
    )
    return parser


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    now = now_utc()

    selection = PeriodSelection.from_params(args.period, args.start, args.end)
    dataset = await load_dataset()

    report = run_financial_analysis(dataset, selection, now=now, month=args.month, config=config)
    conversion = compute_conversion_data(dataset.quotes, dataset.orders)

    output = {
        "report": report.model_dump(mode="json"),
        "conversion": conversion.model_dump(mode="json"),
    }

    if args.with_ai:
        fetcher = AIInsightFetcher(JsonFileStore(config.state_path), config=config)
        ai_insights = await fetcher.fetch(conversion)
        output["ai_insights"] = [i.model_dump(mode="json") for i in ai_insights]

    atomic_write_json(output, args.output)
    logger.info("Report saved to %s", args.output)

    if args.csv:
        rows = filtered_closures(dataset, selection, now=now, month=args.month, config=config)
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        args.csv.write_text(closures_to_csv(rows, index_orders(dataset.orders), tz=config.tz), encoding="utf-8")
        logger.info("CSV export (%d rows) saved to %s", len(rows), args.csv)

    if report.date_error:
        logger.error("Custom range start is after its end; report is empty")
        return 2
    return 1 if report.load_error else 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
