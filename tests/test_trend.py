"""Tests for the 12-month trend series."""

from datetime import datetime, timezone

import pytest

from conftest import NOW, make_closure
from scripts.financeiro.trend import build_trend, margin_trend, trailing_months


class TestTrailingMonths:
    def test_crosses_year_boundary(self):
        months = trailing_months(NOW)
        assert len(months) == 12
        assert months[0] == (2023, 2)
        assert months[-1] == (2024, 1)

    def test_december(self):
        months = trailing_months(datetime(2024, 12, 15, 12, tzinfo=timezone.utc))
        assert months[0] == (2024, 1)
        assert months[-1] == (2024, 12)


class TestBuildTrend:
    def test_always_twelve_zero_filled_months(self):
        trend = build_trend([], NOW)
        assert len(trend) == 12
        assert [m.year_month for m in trend][:2] == ["2023-02", "2023-03"]
        assert all(m.revenue == m.costs == m.profit == m.margin == 0 for m in trend)

    def test_labels_are_short_month_names(self):
        trend = build_trend([], NOW)
        assert trend[0].label == "fev"
        assert trend[-1].label == "jan"

    def test_buckets_by_month(self, sample_closures):
        older = make_closure("old", created_at="2023-11-05T12:00:00Z", received=500,
                             distributor=100, installer=100, extras=0, profit=300)
        trend = build_trend(sample_closures + [older], NOW)
        by_key = {m.year_month: m for m in trend}
        assert by_key["2024-01"].revenue == 3000
        assert by_key["2024-01"].margin == pytest.approx(45.0)
        assert by_key["2023-11"].profit == 300
        assert by_key["2023-12"].revenue == 0

    def test_closures_outside_range_ignored(self):
        ancient = make_closure(created_at="2022-01-10T12:00:00Z")
        future = make_closure(created_at="2024-03-10T12:00:00Z")
        trend = build_trend([ancient, future], NOW)
        assert sum(m.revenue for m in trend) == 0

    def test_month_end_late_evening_uses_civil_timezone(self):
        # 23:30 local on Dec 31 is already Jan 1 in UTC
        late = make_closure(created_at="2024-01-01T02:30:00Z", received=700)
        by_key = {m.year_month: m for m in build_trend([late], NOW)}
        assert by_key["2023-12"].revenue == 700
        assert by_key["2024-01"].revenue == 0

    def test_margin_trend_mirrors_series(self, sample_closures):
        trend = build_trend(sample_closures, NOW)
        points = margin_trend(trend)
        assert len(points) == 12
        assert points[-1].margin == pytest.approx(45.0)
        assert points[-1].label == "jan"
