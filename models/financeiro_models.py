"""
Financeiro — Pydantic Models
==============================

Records read from the data store (closures, service orders, quotes) and
the derived structures the analytics engine hands to the dashboard.

Record models accept both the English field names and the column names
used by the data store (``fechamentos``, ``atendimentos``, ``orcamentos``).
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from scripts.lib.utils import parse_ts


# ─── Enums ──────────────────────────────────────────────────

class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentMethod(str, Enum):
    CASH = "cash"
    INSTALLMENT = "installment"


class InsightKind(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"
    DANGER = "danger"


class PeriodKind(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


_QUOTE_STATUS_ALIASES = {
    "rascunho": QuoteStatus.DRAFT,
    "enviado": QuoteStatus.SENT,
    "aprovado": QuoteStatus.APPROVED,
    "reprovado": QuoteStatus.REJECTED,
}

_PAYMENT_ALIASES = {
    "parcelado": PaymentMethod.INSTALLMENT,
    "installment": PaymentMethod.INSTALLMENT,
}


# ─── Records (read-only inputs) ─────────────────────────────

class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, extra="ignore")

    @field_validator("created_at", mode="before", check_fields=False)
    @classmethod
    def _parse_created_at(cls, value: Any) -> Any:
        parsed = parse_ts(value)
        return parsed if parsed is not None else value


class FinancialClosure(_Record):
    """A finalized deal. ``final_profit`` is trusted as stored."""
    id: str
    order_id: str = Field(validation_alias=AliasChoices("order_id", "atendimento_id"))
    created_at: datetime
    amount_received: float = Field(0.0, validation_alias=AliasChoices("amount_received", "valor_recebido"))
    cost_distributor: float = Field(0.0, validation_alias=AliasChoices("cost_distributor", "custo_distribuidor"))
    cost_installer: float = Field(0.0, validation_alias=AliasChoices("cost_installer", "custo_instalador"))
    cost_extras: float = Field(0.0, validation_alias=AliasChoices("cost_extras", "custo_extras"))
    notes: Optional[str] = Field(None, validation_alias=AliasChoices("notes", "observacoes_extras"))
    final_profit: float = Field(0.0, validation_alias=AliasChoices("final_profit", "lucro_final"))

    @field_validator(
        "amount_received", "cost_distributor", "cost_installer", "cost_extras", "final_profit",
        mode="before",
    )
    @classmethod
    def _null_amount(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @property
    def total_costs(self) -> float:
        return self.cost_distributor + self.cost_installer + self.cost_extras


class ServiceOrder(_Record):
    """A client engagement (``atendimento``)."""
    id: str
    client_name: Optional[str] = Field(None, validation_alias=AliasChoices("client_name", "cliente_nome"))
    service_type: Optional[str] = Field(None, validation_alias=AliasChoices("service_type", "tipo_servico"))
    neighborhood: Optional[str] = Field(None, validation_alias=AliasChoices("neighborhood", "bairro"))
    city: Optional[str] = Field(None, validation_alias=AliasChoices("city", "cidade"))
    followup_count: int = 0
    status: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("followup_count", mode="before")
    @classmethod
    def _default_followups(cls, value: Any) -> Any:
        return 0 if value is None else value


class Quote(_Record):
    """A priced proposal (``orcamento``) tied to one service order."""
    id: str
    order_id: str = Field(validation_alias=AliasChoices("order_id", "atendimento_id"))
    status: QuoteStatus = QuoteStatus.DRAFT
    total_value: float = Field(0.0, validation_alias=AliasChoices("total_value", "valor_total"))
    payment_method: PaymentMethod = Field(
        PaymentMethod.CASH, validation_alias=AliasChoices("payment_method", "forma_pagamento"),
    )
    created_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _map_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _QUOTE_STATUS_ALIASES.get(value.lower(), value.lower())
        return value

    @field_validator("total_value", mode="before")
    @classmethod
    def _null_value(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("payment_method", mode="before")
    @classmethod
    def _map_payment(cls, value: Any) -> Any:
        # Anything that isn't explicitly an installment plan is cash
        if isinstance(value, PaymentMethod):
            return value
        if isinstance(value, str):
            return _PAYMENT_ALIASES.get(value.lower(), PaymentMethod.CASH)
        return PaymentMethod.CASH


# ─── KPIs & Trend ───────────────────────────────────────────

class KPISnapshot(BaseModel):
    revenue: float = 0.0
    costs: float = 0.0
    profit: float = 0.0
    margin: float = 0.0
    average_ticket: float = 0.0
    project_count: int = 0


class Delta(BaseModel):
    """Directional change vs. the previous period.

    ``infinite`` marks growth from a zero baseline; ``percent`` is None then.
    """
    label: str
    positive: bool
    percent: Optional[float] = None
    infinite: bool = False


class KPIDeltas(BaseModel):
    revenue: Optional[Delta] = None
    costs: Optional[Delta] = None
    profit: Optional[Delta] = None
    margin: Optional[Delta] = None
    average_ticket: Optional[Delta] = None
    project_count: Optional[Delta] = None


class TrendMonth(BaseModel):
    label: str
    year_month: str
    revenue: float = 0.0
    costs: float = 0.0
    profit: float = 0.0
    margin: float = 0.0


class MarginPoint(BaseModel):
    label: str
    margin: float


class CostBreakdown(BaseModel):
    distributor: float = 0.0
    installer: float = 0.0
    extras: float = 0.0


class ServiceRevenue(BaseModel):
    service: str
    revenue: float = 0.0
    profit: float = 0.0


class ClientRevenue(BaseModel):
    name: str
    revenue: float = 0.0
    profit: float = 0.0
    projects: int = 0


# ─── Insights ───────────────────────────────────────────────

class Insight(BaseModel):
    id: str
    kind: InsightKind
    title: str
    description: str
    action: Optional[str] = None


# ─── Conversion Funnel ──────────────────────────────────────

class ServiceTypeConversion(BaseModel):
    service_type: str
    total: int = 0
    approved: int = 0
    rejected: int = 0
    conversion_rate: float = 0.0
    average_value: float = 0.0


class PriceBandConversion(BaseModel):
    band: str
    total: int = 0
    approved: int = 0
    conversion_rate: float = 0.0


class LocalityConversion(BaseModel):
    locality: str
    total: int = 0
    approved: int = 0
    conversion_rate: float = 0.0


class OutcomeCount(BaseModel):
    total: int = 0
    approved: int = 0


class FollowupStats(BaseModel):
    without_followup: OutcomeCount = Field(default_factory=OutcomeCount)
    with_followup: OutcomeCount = Field(default_factory=OutcomeCount)


class PaymentMethodStats(BaseModel):
    cash: OutcomeCount = Field(default_factory=OutcomeCount)
    installment: OutcomeCount = Field(default_factory=OutcomeCount)


class ConversionData(BaseModel):
    by_service_type: list[ServiceTypeConversion] = Field(default_factory=list)
    by_price_band: list[PriceBandConversion] = Field(default_factory=list)
    by_locality: list[LocalityConversion] = Field(default_factory=list)
    followup: FollowupStats = Field(default_factory=FollowupStats)
    by_payment_method: PaymentMethodStats = Field(default_factory=PaymentMethodStats)
    avg_days_to_approval: float = 0.0
    total_quotes: int = 0
    overall_conversion_rate: float = 0.0


# ─── Report ─────────────────────────────────────────────────

class FinancialReport(BaseModel):
    """Everything the financial dashboard renders for one period selection."""
    generated_at: datetime
    period: PeriodKind
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    month_filter: Optional[str] = None
    date_error: bool = False
    load_error: Optional[str] = None
    kpis: KPISnapshot
    previous_kpis: KPISnapshot
    deltas: KPIDeltas
    trend: list[TrendMonth]
    margin_trend: list[MarginPoint]
    cost_breakdown: CostBreakdown
    revenue_by_service: list[ServiceRevenue]
    top_clients: list[ClientRevenue]
    insights: list[Insight]
