"""Tests for the report runner CLI."""

import json
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from conftest import make_closure, make_order
from scripts import run_financeiro_report
from scripts.financeiro.data_loader import FinanceDataset


def dataset(load_error=None):
    return FinanceDataset(
        closures=[make_closure("c1", "o1", created_at="2024-01-10T15:00:00Z")],
        orders=[make_order("o1")],
        load_error=load_error,
    )


class TestRunFinanceiroReport:
    @pytest.mark.asyncio
    async def test_writes_report_and_csv(self, tmp_path):
        output = tmp_path / "report.json"
        csv_path = tmp_path / "export" / "closures.csv"
        with patch.object(run_financeiro_report, "load_dataset", AsyncMock(return_value=dataset())):
            code = await run_financeiro_report.main([
                "--period", "custom", "--start", "2024-01-01", "--end", "2024-01-31",
                "--output", str(output), "--csv", str(csv_path),
            ])
        assert code == 0
        report = json.loads(output.read_text(encoding="utf-8"))
        assert report["report"]["kpis"]["revenue"] == 1000
        assert "conversion" in report
        assert "ai_insights" not in report
        assert csv_path.read_text(encoding="utf-8").count("\n") == 2

    @pytest.mark.asyncio
    async def test_inverted_range_exit_code(self, tmp_path):
        with patch.object(run_financeiro_report, "load_dataset", AsyncMock(return_value=dataset())):
            code = await run_financeiro_report.main([
                "--period", "custom", "--start", "2024-02-01", "--end", "2024-01-01",
                "--output", str(tmp_path / "r.json"),
            ])
        assert code == 2

    @pytest.mark.asyncio
    async def test_load_error_exit_code(self, tmp_path):
        loaded = dataset(load_error="Failed to load: orcamentos")
        with patch.object(run_financeiro_report, "load_dataset", AsyncMock(return_value=loaded)):
            code = await run_financeiro_report.main(["--output", str(tmp_path / "r.json")])
        assert code == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("argv", [
        ["--month", "2024-13"],
        ["--month", "24-02"],
        ["--period", "custom", "--start", "2024-02-30", "--end", "2024-03-01"],
        ["--period", "custom", "--start", "2024-02-01", "--end", "march"],
    ])
    async def test_malformed_dates_rejected_by_parser(self, argv, capsys):
        loader = AsyncMock(return_value=dataset())
        with patch.object(run_financeiro_report, "load_dataset", loader):
            with pytest.raises(SystemExit) as exc:
                await run_financeiro_report.main(argv)
        assert exc.value.code == 2
        assert "expected YYYY-MM" in capsys.readouterr().err
        loader.assert_not_awaited()


class TestBuildParser:
    def test_dates_and_month_parsed(self):
        args = run_financeiro_report.build_parser().parse_args(
            ["--period", "custom", "--start", "2024-01-01", "--end", "2024-01-31", "--month", "2024-01"]
        )
        assert args.start == date(2024, 1, 1)
        assert args.end == date(2024, 1, 31)
        assert args.month == "2024-01"
