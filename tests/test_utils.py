"""Tests for shared helpers."""

from datetime import datetime, timedelta, timezone

from scripts.financeiro.formatting import format_brl, format_date_br, month_label, to_fixed
from scripts.lib.utils import atomic_write_json, parse_ts, read_json, safe_div, safe_float


class TestParseTs:
    def test_z_suffix(self):
        assert parse_ts("2024-01-10T15:00:00Z") == datetime(2024, 1, 10, 15, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        parsed = parse_ts("2024-01-10T12:00:00-03:00")
        assert parsed == datetime(2024, 1, 10, 15, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_taken_as_utc(self):
        assert parse_ts("2024-01-10T15:00:00").tzinfo is not None

    def test_garbage(self):
        assert parse_ts("soon") is None
        assert parse_ts(None) is None


class TestSafeMath:
    def test_safe_div(self):
        assert safe_div(1, 0) == 0.0
        assert safe_div(3, 2) == 1.5

    def test_safe_float(self):
        assert safe_float("1.5") == 1.5
        assert safe_float("x", default=-1) == -1


class TestJsonFiles:
    def test_atomic_write_then_read(self, tmp_path):
        path = tmp_path / "nested" / "data.json"
        atomic_write_json({"a": "ção"}, path)
        assert read_json(path) == {"a": "ção"}
        assert not path.with_suffix(".json.tmp").exists()

    def test_read_missing(self, tmp_path):
        assert read_json(tmp_path / "nope.json") is None


class TestFormatting:
    def test_brl(self):
        assert format_brl(1234.56) == "R$ 1.234,56"
        assert format_brl(-1500) == "-R$ 1.500,00"
        assert format_brl(0) == "R$ 0,00"

    def test_brl_half_cent_rounds_up(self):
        assert format_brl(0.125) == "R$ 0,13"

    def test_to_fixed_ties_away_from_zero(self):
        assert to_fixed(12.5) == "13"
        assert to_fixed(2.5) == "3"
        assert to_fixed(-2.5) == "-3"
        assert to_fixed(10.25, 1) == "10.3"
        assert to_fixed(7) == "7"

    def test_date_br(self):
        assert format_date_br(datetime(2024, 3, 1, 2, tzinfo=timezone.utc)) == "29/02/2024"

    def test_month_label(self):
        assert month_label(1) == "jan"
        assert month_label(12) == "dez"
