"""Brazilian display formats for amounts, percentages and dates."""
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal

from scripts.financeiro.config import DEFAULT_TZ

# Short pt-BR month names, as the dashboard axis shows them
MONTH_LABELS = ("jan", "fev", "mar", "abr", "mai", "jun",
                "jul", "ago", "set", "out", "nov", "dez")


def round_half_up(value: float, places: int = 0) -> Decimal:
    """Round with ties away from zero (2.5 -> 3, -2.5 -> -3), as dashboard labels do."""
    return Decimal(str(value)).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def to_fixed(value: float, places: int = 0) -> str:
    """Fixed-point text of ``value`` rounded half away from zero."""
    return f"{round_half_up(value, places):.{places}f}"


def format_brl(value: float) -> str:
    """R$ 1.234,56 (negative amounts as -R$ 1.234,56)."""
    sign = "-" if value < 0 else ""
    body = f"{round_half_up(abs(value), 2):,.2f}"
    body = body.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {body}"


def format_date_br(instant: datetime, tz: tzinfo = DEFAULT_TZ) -> str:
    """dd/mm/yyyy in the civil timezone."""
    return instant.astimezone(tz).strftime("%d/%m/%Y")


def month_label(month: int) -> str:
    return MONTH_LABELS[month - 1]
