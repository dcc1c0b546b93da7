"""Core calculation engine for the payment flow calculator.

This module turns a :class:`PaymentPlanInput` into a :class:`CalculatedPlan`:
it resolves every payment bucket (down payment, construction start, monthly
installments, semiannual and annual reinforcements, keys), sums them, splits
the total around the delivery date and attaches advisory warnings. The
calculation is a pure function. It never raises for well-typed input; every
division guards its denominator so degenerate plans (a zero property value, an
empty bucket) still produce a usable result.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
from functools import lru_cache
from typing import List, Optional

from .data_models import (
    AmountKind,
    BucketResult,
    CalculatedPlan,
    DownPaymentResult,
    InstallmentSpec,
    LumpSumSpec,
    MonetaryIndex,
    PaymentPlanInput,
    Timeline,
)
from .index import staleness_warning
from .money import format_amount, format_percentage
from .utils import ZERO, percent_of, safe_div, whole_months_between

getcontext().prec = 28  # increase precision for financial calculations

# Plans may overshoot 100 % by half a point before being flagged, to absorb
# rounding in percentages typed by the agent.
LIMIT_TOLERANCE = Decimal("100.5")
CLOSURE_TOLERANCE = Decimal("1")
MIN_UNTIL_DELIVERY = Decimal("50")
MAX_MONTHLY_SHARE = Decimal("0.02")


def resolve_amount(spec: Optional[LumpSumSpec], property_value: Decimal) -> Decimal:
    """Return the amount described by ``spec``; zero when nothing is populated."""
    if spec is None:
        return ZERO
    if spec.kind == AmountKind.PERCENTAGE:
        if spec.percentage is None:
            return ZERO
        return spec.percentage / 100 * property_value
    return spec.value if spec.value is not None else ZERO


def first_payment_date(plan: PaymentPlanInput) -> Optional[date]:
    """Earliest due date among the buckets that start the payment flow."""
    candidates = [plan.down_payment.first_due_date]
    if plan.down_payment.upfront is not None:
        candidates.append(plan.down_payment.upfront.first_due_date)
    if plan.construction_start is not None:
        candidates.append(plan.construction_start.first_due_date)
    if plan.monthly is not None:
        candidates.append(plan.monthly.first_due_date)
    dates = [d for d in candidates if d is not None]
    return min(dates) if dates else None


def months_until_delivery(plan: PaymentPlanInput) -> int:
    start = first_payment_date(plan)
    if start is None or plan.delivery_date is None:
        return 0
    return whole_months_between(start, plan.delivery_date)


def _lump_sum(spec: Optional[LumpSumSpec], property_value: Decimal) -> Optional[BucketResult]:
    total = resolve_amount(spec, property_value)
    if spec is None or not total:
        return None
    return BucketResult(
        total=total,
        percentage=percent_of(total, property_value),
        installment_count=1,
        installment_value=total,
        first_due_date=spec.first_due_date,
    )


def _down_payment(plan: PaymentPlanInput) -> DownPaymentResult:
    spec = plan.down_payment
    pv = plan.property_value
    upfront = _lump_sum(spec.upfront, pv)

    subtotal = resolve_amount(spec, pv)
    count = max(spec.installment_count or 1, 1)
    per_installment = subtotal / count if count > 1 else subtotal
    installments = BucketResult(
        total=subtotal,
        percentage=percent_of(subtotal, pv),
        installment_count=count,
        installment_value=per_installment,
        first_due_date=spec.first_due_date,
    )

    total = subtotal + (upfront.total if upfront else ZERO)
    return DownPaymentResult(
        upfront=upfront,
        installments=installments,
        total=total,
        percentage=percent_of(total, pv),
    )


def _reinforcement(spec: Optional[InstallmentSpec], property_value: Decimal) -> Optional[BucketResult]:
    """Semiannual or annual reinforcements.

    The explicit value wins over the percentage; a bucket with neither set
    charges nothing even when it is enabled.
    """
    if spec is None or not spec.enabled or spec.count <= 0:
        return None
    if spec.value is not None and spec.value > 0:
        per_installment = spec.value
    elif spec.percentage is not None and spec.percentage > 0:
        per_installment = spec.percentage / 100 * property_value
    else:
        return None
    total = per_installment * spec.count
    return BucketResult(
        total=total,
        percentage=percent_of(total, property_value),
        installment_count=spec.count,
        installment_value=per_installment,
        first_due_date=spec.first_due_date,
    )


def _monthly(spec: Optional[InstallmentSpec], property_value: Decimal, residual: Decimal) -> Optional[BucketResult]:
    """Monthly installments.

    Precedence: ``auto_calculate`` (the residual after every other bucket),
    then the explicit per-installment value, then the percentage of the
    property value spread over ``count``.
    """
    if spec is None or not spec.enabled or spec.count <= 0:
        return None
    count = spec.count
    if spec.auto_calculate:
        total = residual
        per_installment = total / count
    elif spec.value is not None and spec.value > 0:
        per_installment = spec.value
        total = per_installment * count
    elif spec.percentage is not None and spec.percentage > 0:
        total = spec.percentage / 100 * property_value
        per_installment = total / count
    else:
        return None
    if not total:
        return None
    return BucketResult(
        total=total,
        percentage=percent_of(total, property_value),
        installment_count=count,
        installment_value=per_installment,
        first_due_date=spec.first_due_date,
    )


def _until_delivery(bucket: Optional[BucketResult], installments: int) -> Decimal:
    """Amount of ``bucket`` paid by the first ``installments`` installments."""
    if bucket is None or installments <= 0:
        return ZERO
    if installments >= bucket.installment_count:
        return bucket.total
    return bucket.installment_value * installments


def _warnings(
    plan: PaymentPlanInput,
    total_percentage: Decimal,
    percentage_until_delivery: Decimal,
    monthly: Optional[BucketResult],
) -> List[str]:
    warnings: List[str] = []
    diff = abs(total_percentage - 100)
    if diff > CLOSURE_TOLERANCE:
        warnings.append(
            f"Total calculado: {format_percentage(total_percentage)} "
            f"(diferença de {format_percentage(diff)} dos 100%)"
        )
    if percentage_until_delivery < MIN_UNTIL_DELIVERY:
        warnings.append(
            f"Apenas {format_percentage(percentage_until_delivery)} do valor é pago até a entrega "
            f"(recomendado: no mínimo {format_percentage(MIN_UNTIL_DELIVERY)})"
        )
    if monthly is not None and monthly.installment_value > plan.property_value * MAX_MONTHLY_SHARE:
        warnings.append(
            f"Parcela mensal de {format_amount(monthly.installment_value)} "
            f"excede 2% do valor do imóvel"
        )
    return warnings


def calculate_plan(plan: PaymentPlanInput, index: Optional[MonetaryIndex] = None) -> CalculatedPlan:
    """Compute the payment flow for ``plan``.

    Parameters
    ----------
    plan: PaymentPlanInput
        Immutable snapshot of the proposal. Amounts are in the base currency.
    index: MonetaryIndex, optional
        Value of the external monetary index. When given (and positive) the
        property value is also expressed in index units.

    Returns
    -------
    CalculatedPlan
        The computed result. Buckets that are not configured are ``None``.
    """
    pv = plan.property_value
    months = months_until_delivery(plan)

    down_payment = _down_payment(plan)
    construction_start = _lump_sum(plan.construction_start, pv)
    semiannual = _reinforcement(plan.semiannual, pv)
    annual = _reinforcement(plan.annual, pv)
    keys = _lump_sum(plan.keys, pv)

    others = [construction_start, semiannual, annual, keys]
    residual = pv - down_payment.total - sum((b.total for b in others if b), ZERO)
    monthly = _monthly(plan.monthly, pv, residual)

    total_paid = down_payment.total + sum(
        (b.total for b in (construction_start, monthly, semiannual, annual, keys) if b), ZERO
    )
    total_percentage = percent_of(total_paid, pv)

    # Semiannual and annual reinforcements fall due every 6 and 12 months.
    monthly_until = min(monthly.installment_count, months) if monthly else 0
    semiannual_until = min(semiannual.installment_count, months * 2 // 12) if semiannual else 0
    annual_until = min(annual.installment_count, months // 12) if annual else 0

    until_delivery = (
        down_payment.total
        + (construction_start.total if construction_start else ZERO)
        + _until_delivery(monthly, monthly_until)
        + _until_delivery(semiannual, semiannual_until)
        + _until_delivery(annual, annual_until)
    )
    after_delivery = total_paid - until_delivery
    percentage_until = percent_of(until_delivery, pv)
    timeline = Timeline(
        months_until_delivery=months,
        total_until_delivery=until_delivery,
        total_after_delivery=after_delivery,
        percentage_until_delivery=percentage_until,
        percentage_after_delivery=percent_of(after_delivery, pv),
        monthly_until_delivery=monthly_until,
        semiannual_until_delivery=semiannual_until,
        annual_until_delivery=annual_until,
    )

    exceeds_limit = total_percentage > LIMIT_TOLERANCE
    area = plan.details.private_area
    price_per_area = pv / area if area is not None and area > 0 else None

    total_in_index_units = None
    staleness = None
    if index is not None and index.value > 0:
        total_in_index_units = safe_div(pv, index.value)
        staleness = staleness_warning(index)
    else:
        index = None

    return CalculatedPlan(
        down_payment=down_payment,
        construction_start=construction_start,
        monthly=monthly,
        semiannual=semiannual,
        annual=annual,
        keys=keys,
        timeline=timeline,
        total_paid=total_paid,
        total_percentage=total_percentage,
        exceeds_limit=exceeds_limit,
        exceeded_amount=total_paid - pv if exceeds_limit else ZERO,
        remaining_amount=max(ZERO, pv - total_paid),
        price_per_area=price_per_area,
        total_in_index_units=total_in_index_units,
        index=index,
        index_staleness_warning=staleness,
        warnings=tuple(_warnings(plan, total_percentage, percentage_until, monthly)),
    )


@lru_cache(maxsize=256)
def calculate_plan_cached(plan: PaymentPlanInput, index: Optional[MonetaryIndex] = None) -> CalculatedPlan:
    """Memoized :func:`calculate_plan`; inputs are frozen and hashable."""
    return calculate_plan(plan, index)
