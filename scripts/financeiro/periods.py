"""
Period Range Resolver
======================

Turns a period selection (day / week / month / year / custom) into an
inclusive UTC window aligned to local-day boundaries in one fixed civil
timezone, plus the comparable previous window of the same kind.

A local day runs from 00:00:00.000 to 23:59:59.999. Weeks run Sunday to
Saturday. A missing custom bound means "no window" (unfiltered); a custom
start after its end is reported through ``invalid_range`` and callers must
treat the filtered set as empty.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from models.financeiro_models import PeriodKind
from scripts.financeiro.config import DEFAULT_TZ

ONE_MS = timedelta(milliseconds=1)
ONE_DAY = timedelta(days=1)

# Drill-down month selector, YYYY-MM
MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"

# Labels used by the legacy dashboard's period selector
_KIND_ALIASES = {
    "hoje": PeriodKind.DAY,
    "semana": PeriodKind.WEEK,
    "mes": PeriodKind.MONTH,
    "mês": PeriodKind.MONTH,
    "ano": PeriodKind.YEAR,
    "personalizado": PeriodKind.CUSTOM,
}

DateLike = Union[date, datetime, str, None]


@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] pair of UTC instants."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class ResolvedPeriod:
    current: Optional[DateWindow]
    previous: Optional[DateWindow]
    invalid_range: bool = False


def parse_period_kind(value: Union[PeriodKind, str]) -> PeriodKind:
    """Accept a PeriodKind, its value, or a legacy Portuguese label."""
    if isinstance(value, PeriodKind):
        return value
    key = str(value).strip().lower()
    if key in _KIND_ALIASES:
        return _KIND_ALIASES[key]
    return PeriodKind(key)


def parse_date(value: DateLike) -> Optional[date]:
    """'YYYY-MM-DD', a date, or a datetime (its own calendar date)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant


def local_date(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> date:
    """Calendar date of an instant in the civil timezone."""
    return _as_utc(instant).astimezone(tz).date()


def year_month_key(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> str:
    """'YYYY-MM' of an instant in the civil timezone."""
    local = _as_utc(instant).astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}"


def span_window(first: date, last: date, tz: tzinfo = DEFAULT_TZ) -> DateWindow:
    """Window from local midnight of ``first`` to the last ms of ``last``."""
    start = datetime.combine(first, time.min, tzinfo=tz)
    end = datetime.combine(last + ONE_DAY, time.min, tzinfo=tz) - ONE_MS
    return DateWindow(start.astimezone(timezone.utc), end.astimezone(timezone.utc))


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def is_invalid_range(kind: Union[PeriodKind, str], start: DateLike, end: DateLike) -> bool:
    """True only for a custom period whose start falls after its end."""
    if parse_period_kind(kind) is not PeriodKind.CUSTOM:
        return False
    first, last = parse_date(start), parse_date(end)
    return first is not None and last is not None and first > last


def resolve_window(
    kind: Union[PeriodKind, str],
    now: datetime,
    start: DateLike = None,
    end: DateLike = None,
    previous: bool = False,
    tz: tzinfo = DEFAULT_TZ,
) -> Optional[DateWindow]:
    """
    Compute the current (or comparable previous) window for a period kind.

    Args:
        kind: Period kind.
        now: Reference instant; naive values are taken as UTC.
        start, end: Inclusive custom bounds (ignored for other kinds).
        previous: Return the comparable previous window instead.
        tz: Civil timezone for all calendar arithmetic.

    Returns:
        The window, or None when a custom bound is missing (unfiltered)
        or the custom range is inverted.
    """
    kind = parse_period_kind(kind)
    today = local_date(now, tz)

    if kind is PeriodKind.DAY:
        day = today - ONE_DAY if previous else today
        return span_window(day, day, tz)

    if kind is PeriodKind.WEEK:
        # date.weekday(): Monday=0 … Sunday=6
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        if previous:
            sunday -= timedelta(days=7)
        return span_window(sunday, sunday + timedelta(days=6), tz)

    if kind is PeriodKind.MONTH:
        first = today.replace(day=1)
        if previous:
            first = (first - ONE_DAY).replace(day=1)
        return span_window(first, last_day_of_month(first.year, first.month), tz)

    if kind is PeriodKind.YEAR:
        year = today.year - 1 if previous else today.year
        return span_window(date(year, 1, 1), date(year, 12, 31), tz)

    first, last = parse_date(start), parse_date(end)
    if first is None or last is None or first > last:
        return None
    if previous:
        length = last - first
        prev_end = first - ONE_DAY
        return span_window(prev_end - length, prev_end, tz)
    return span_window(first, last, tz)


@dataclass(frozen=True)
class PeriodSelection:
    """What the user picked in the period selector."""
    kind: PeriodKind = PeriodKind.MONTH
    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def from_params(cls, kind: Union[PeriodKind, str] = PeriodKind.MONTH,
                    start: DateLike = None, end: DateLike = None) -> "PeriodSelection":
        return cls(parse_period_kind(kind), parse_date(start), parse_date(end))

    @property
    def invalid_range(self) -> bool:
        return is_invalid_range(self.kind, self.start, self.end)

    def resolve(self, now: datetime, tz: tzinfo = DEFAULT_TZ) -> ResolvedPeriod:
        if self.invalid_range:
            return ResolvedPeriod(current=None, previous=None, invalid_range=True)
        return ResolvedPeriod(
            current=resolve_window(self.kind, now, self.start, self.end, tz=tz),
            previous=resolve_window(self.kind, now, self.start, self.end, previous=True, tz=tz),
        )
