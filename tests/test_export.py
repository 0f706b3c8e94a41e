"""Tests for the CSV export."""

import csv
import io
from datetime import datetime, timezone

from conftest import make_closure, make_order
from scripts.financeiro.export import CSV_HEADER, closures_to_csv, export_filename
from scripts.financeiro.joins import index_orders


def parse(text):
    return list(csv.reader(io.StringIO(text)))


class TestClosuresToCsv:
    def test_simple_records(self, sample_closures, sample_orders):
        text = closures_to_csv(sample_closures, index_orders(sample_orders))
        lines = text.splitlines()
        assert lines[0] == "Client,Service,Date,Received,Distributor,Installer,Extras,Profit"
        assert lines[1] == "Maria Silva,Drywall,10/01/2024,1000,200,300,50,450"
        assert len(lines) == 3

    def test_header_only_when_empty(self):
        assert parse(closures_to_csv([], {})) == [list(CSV_HEADER)]

    def test_missing_order_writes_placeholders(self):
        rows = parse(closures_to_csv([make_closure(order_id="ghost")], {}))
        assert rows[1][:2] == ["N/A", "N/A"]

    def test_fractional_amounts_kept(self):
        closure = make_closure(received=1234.56, distributor=0, installer=0, extras=0.5, profit=1234.06)
        rows = parse(closures_to_csv([closure], {}))
        assert rows[1][3:] == ["1234.56", "0", "0", "0.5", "1234.06"]

    def test_date_in_civil_timezone(self):
        # 01:00Z on the 11th is still the 10th in UTC-3
        rows = parse(closures_to_csv([make_closure(created_at="2024-01-11T01:00:00Z")], {}))
        assert rows[1][2] == "10/01/2024"

    def test_commas_and_quotes_are_escaped(self):
        order = make_order("o1", client_name='Silva, "Zé"', service_type="Pintura, externa")
        text = closures_to_csv([make_closure(order_id="o1")], index_orders([order]))
        assert '"Silva, ""Zé"""' in text
        rows = parse(text)
        assert rows[1][0] == 'Silva, "Zé"'
        assert rows[1][1] == "Pintura, externa"
        assert len(rows[1]) == len(CSV_HEADER)


class TestExportFilename:
    def test_uses_local_date(self):
        now = datetime(2024, 3, 1, 2, 0, tzinfo=timezone.utc)
        assert export_filename(now) == "financeiro-2024-02-29.csv"
