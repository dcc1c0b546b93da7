"""Data models for the payment flow calculator.

This module defines dataclasses representing the entities used by the
calculator: the payment plan typed in by the agent (currency, down payment,
installment buckets and property metadata), the monetary index handed in from
outside, and the calculated result. Every model is frozen, so a plan can be
used as a cache key and a result cannot be patched in place after creation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

ZERO = Decimal("0")


@dataclass(frozen=True)
class Currency:
    """Currency used to display the plan.

    Attributes
    ----------
    code: str
        ISO code (``"BRL"``, ``"USD"``...).
    symbol: str
        Prefix printed before amounts.
    rate: Decimal
        How many units of the base currency one unit of this currency is
        worth. The base currency has ``rate == 1``.
    name: str
        Display name.
    """

    code: str
    symbol: str
    rate: Decimal
    name: str


BASE_CURRENCY = Currency(code="BRL", symbol="R$", rate=Decimal("1"), name="Real Brasileiro")

CURRENCIES = {
    "BRL": BASE_CURRENCY,
    "USD": Currency(code="USD", symbol="US$", rate=Decimal("5.50"), name="Dólar Americano"),
    "EUR": Currency(code="EUR", symbol="€", rate=Decimal("6.00"), name="Euro"),
    "GBP": Currency(code="GBP", symbol="£", rate=Decimal("7.00"), name="Libra Esterlina"),
}


class AmountKind(str, Enum):
    """How an amount specification is expressed."""

    PERCENTAGE = "percentage"
    ABSOLUTE = "absolute"


@dataclass(frozen=True)
class LumpSumSpec:
    """A single charge expressed either as a percentage or as a value.

    Used for the upfront portion of the down payment, the construction start
    payment and the keys payment. ``percentage`` is relative to the property
    value (``20`` means 20 %).
    """

    kind: AmountKind = AmountKind.PERCENTAGE
    percentage: Optional[Decimal] = None
    value: Optional[Decimal] = None
    first_due_date: Optional[date] = None


@dataclass(frozen=True)
class DownPaymentSpec(LumpSumSpec):
    """Down payment specification.

    The ``kind``/``percentage``/``value`` fields inherited from
    :class:`LumpSumSpec` always describe the installment part of the down
    payment. The ``upfront`` portion only exists when it is given explicitly,
    and it is added on top of the installment part.
    """

    installment_count: int = 1
    upfront: Optional[LumpSumSpec] = None


@dataclass(frozen=True)
class InstallmentSpec:
    """A recurring bucket: monthly installments or reinforcements.

    For the monthly bucket ``percentage`` is the share of the property value
    spread over all ``count`` installments; for semiannual and annual
    reinforcements it is the share charged by each installment.
    ``auto_calculate`` is only honoured for the monthly bucket.
    """

    enabled: bool = False
    count: int = 0
    value: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    first_due_date: Optional[date] = None
    auto_calculate: bool = False


@dataclass(frozen=True)
class PropertyDetails:
    constructor: Optional[str] = None
    development: Optional[str] = None
    unit: Optional[str] = None
    private_area: Optional[Decimal] = None  # m²
    description: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (self.constructor, self.development, self.unit, self.private_area, self.description)
        )


@dataclass(frozen=True)
class PaymentPlanInput:
    """Snapshot of everything the agent typed in for one proposal.

    All amounts are expressed in the base currency; ``currency`` only selects
    how they are displayed.
    """

    property_value: Decimal
    down_payment: DownPaymentSpec = field(default_factory=DownPaymentSpec)
    currency: Currency = BASE_CURRENCY
    delivery_date: Optional[date] = None
    construction_start_date: Optional[date] = None
    construction_start: Optional[LumpSumSpec] = None
    monthly: Optional[InstallmentSpec] = None
    semiannual: Optional[InstallmentSpec] = None
    annual: Optional[InstallmentSpec] = None
    keys: Optional[LumpSumSpec] = None
    details: PropertyDetails = field(default_factory=PropertyDetails)
    client_name: str = ""


@dataclass(frozen=True, order=True)
class IndexPeriod:
    """A calendar month. Ordering is chronological."""

    year: int
    month: int

    @classmethod
    def from_date(cls, d: date) -> "IndexPeriod":
        return cls(year=d.year, month=d.month)

    def __str__(self) -> str:
        return f"{self.month:02d}/{self.year}"


@dataclass(frozen=True)
class MonetaryIndex:
    """Value of the external monetary index for one month.

    ``requested_period`` is the month the caller asked for. When it differs
    from ``period`` the value is the most recent prior one and is stale.
    """

    value: Decimal
    period: IndexPeriod
    requested_period: Optional[IndexPeriod] = None

    @property
    def is_stale(self) -> bool:
        return self.requested_period is not None and self.requested_period != self.period


@dataclass(frozen=True)
class BucketResult:
    """Computed amounts for one payment bucket."""

    total: Decimal
    percentage: Decimal  # of the property value
    installment_count: int = 1
    installment_value: Decimal = ZERO
    first_due_date: Optional[date] = None


@dataclass(frozen=True)
class DownPaymentResult:
    upfront: Optional[BucketResult]
    installments: BucketResult
    total: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class Timeline:
    """Split of the payments around the delivery date."""

    months_until_delivery: int
    total_until_delivery: Decimal
    total_after_delivery: Decimal
    percentage_until_delivery: Decimal
    percentage_after_delivery: Decimal
    monthly_until_delivery: int = 0
    semiannual_until_delivery: int = 0
    annual_until_delivery: int = 0


@dataclass(frozen=True)
class CalculatedPlan:
    """Read-only result of :func:`payment_flow.engine.calculate_plan`.

    Buckets that were not configured are ``None`` rather than zero.
    """

    down_payment: DownPaymentResult
    timeline: Timeline
    total_paid: Decimal
    total_percentage: Decimal
    exceeds_limit: bool
    exceeded_amount: Decimal
    remaining_amount: Decimal
    construction_start: Optional[BucketResult] = None
    monthly: Optional[BucketResult] = None
    semiannual: Optional[BucketResult] = None
    annual: Optional[BucketResult] = None
    keys: Optional[BucketResult] = None
    price_per_area: Optional[Decimal] = None
    total_in_index_units: Optional[Decimal] = None
    index: Optional[MonetaryIndex] = None
    index_staleness_warning: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.warnings
